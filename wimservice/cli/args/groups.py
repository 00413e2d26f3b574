# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/cli/args/groups.py
from __future__ import annotations

import argparse

from ...orchestrator.models import DEFAULT_IMAGE_INDEX, DEFAULT_IMAGE_NAME, DEFAULT_MOUNT_DIR_NAME
from ...tools.dism import DISM_EXE
from ...tools.reg import REG_EXE


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv (trace)")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q warnings, -qq errors")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON log lines.")


def _add_servicing_inputs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # What to service
    # ------------------------------------------------------------------
    p.add_argument(
        "working_folder",
        nargs="?",
        default=None,
        help="Folder holding the install image (or YAML `working_folder:`).",
    )
    p.add_argument(
        "--package-list",
        dest="package_list",
        default=None,
        help="Provisioned-package removal list, relative to the working folder.",
    )
    p.add_argument(
        "--registry-file",
        dest="registry_file",
        default=None,
        help="Registry-import file written against the offline hive aliases, relative to the working folder.",
    )


def _add_image_layout(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Image / mount layout
    # ------------------------------------------------------------------
    p.add_argument("--image-name", dest="image_name", default=DEFAULT_IMAGE_NAME, help="Image file inside the working folder.")
    p.add_argument("--index", dest="index", type=int, default=DEFAULT_IMAGE_INDEX, help="Image index to mount.")
    p.add_argument(
        "--mount-dir-name",
        dest="mount_dir_name",
        default=DEFAULT_MOUNT_DIR_NAME,
        help="Mount-point subfolder of the working folder.",
    )


def _add_operation_flags(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Run behaviour
    # ------------------------------------------------------------------
    p.add_argument(
        "--disposition",
        dest="disposition",
        default=None,
        choices=["commit", "discard"],
        help="Commit or discard without asking (unattended runs). Default: ask.",
    )
    p.add_argument("--dry-run", dest="dry_run", action="store_true", help="Log tool commands without running them.")
    p.add_argument("--no-pause", dest="no_pause", action="store_true", help="Do not wait for a key press before exiting.")
    p.add_argument(
        "--report",
        dest="report",
        default=None,
        help="Write a JSON run report (plus Markdown sidecar); relative to the working folder if not absolute.",
    )
    p.add_argument("--check-tools", dest="check_tools", action="store_true", help="Verify dism/reg are available and exit.")


def _add_tool_paths(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # External tools
    # ------------------------------------------------------------------
    p.add_argument("--dism-path", dest="dism_path", default=DISM_EXE, help="DISM executable.")
    p.add_argument("--reg-path", dest="reg_path", default=REG_EXE, help="reg.exe executable.")
