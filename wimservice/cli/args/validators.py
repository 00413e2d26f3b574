# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/cli/args/validators.py
"""
Shape checks on the parsed arguments.

Only argument-level problems are rejected here. Whether the working folder and
image exist, and whether any action was requested, is decided by the orchestrator
so the operator sees those failures through the same halt-and-acknowledge path.
"""
from __future__ import annotations

import argparse
import logging
from typing import Any, Dict

from ...core.exceptions import EXIT_USAGE
from ...core.utils import U
from .helpers import _merged_get, _require


def _validate_working_folder(args: argparse.Namespace, conf: Dict[str, Any], logger: logging.Logger) -> None:
    if not _require(_merged_get(args, conf, "working_folder")):
        U.die(logger, "missing working folder: pass it as the first argument or set `working_folder:` (YAML)", EXIT_USAGE)


def _validate_index(args: argparse.Namespace, logger: logging.Logger) -> None:
    idx = getattr(args, "index", 1)
    if not isinstance(idx, int) or idx < 1:
        U.die(logger, f"--index must be a positive integer, got {idx!r}", EXIT_USAGE)


def _validate_disposition(args: argparse.Namespace, logger: logging.Logger) -> None:
    d = getattr(args, "disposition", None)
    if _require(d) and str(d).lower() not in ("commit", "discard"):
        U.die(logger, f"disposition must be commit or discard, got {d!r}", EXIT_USAGE)


def _validate_names(args: argparse.Namespace, logger: logging.Logger) -> None:
    # These are names inside the working folder, not paths elsewhere.
    for key in ("image_name", "mount_dir_name"):
        v = getattr(args, key, None)
        if not _require(v):
            U.die(logger, f"{key} must not be empty", EXIT_USAGE)
        if any(sep in str(v) for sep in ("/", "\\")):
            U.die(logger, f"{key} must be a plain name inside the working folder, got {v!r}", EXIT_USAGE)


def validate_args(args: argparse.Namespace, conf: Dict[str, Any], logger: logging.Logger) -> None:
    if getattr(args, "check_tools", False):
        return
    _validate_working_folder(args, conf, logger)
    _validate_index(args, logger)
    _validate_disposition(args, logger)
    _validate_names(args, logger)
