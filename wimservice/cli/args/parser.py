# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/cli/args/parser.py
from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...config.config_loader import Config
from ...core.logger import Log, c
from ...core.utils import U
from .builder import HelpFormatter, _build_epilog
from .groups import (
    _add_global_config_logging,
    _add_image_layout,
    _add_operation_flags,
    _add_servicing_inputs,
    _add_tool_paths,
)
from .validators import validate_args

# Flags that decide where config comes from and how logging looks; they must be
# known before the config files are read.
_EARLY_FLAGS: List[Tuple[Tuple[str, ...], Dict[str, Any]]] = [
    (("--config",), {"action": "append", "default": []}),
    (("-v", "--verbose"), {"action": "count", "default": 0}),
    (("-q", "--quiet"), {"action": "count", "default": 0}),
    (("--log-file",), {"dest": "log_file", "default": None}),
    (("--json-logs",), {"dest": "json_logs", "action": "store_true"}),
    (("--dump-config",), {"action": "store_true"}),
    (("--dump-args",), {"action": "store_true"}),
]
_LOGGING_KEYS = ("verbose", "quiet", "log_file", "json_logs")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wimservice",
        description=c("wimservice: offline servicing of Windows install images", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )
    for add_group in (
        _add_global_config_logging,
        _add_servicing_inputs,
        _add_image_layout,
        _add_operation_flags,
        _add_tool_paths,
    ):
        add_group(p)
    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    for flags, kwargs in _EARLY_FLAGS:
        pre.add_argument(*flags, **kwargs)
    return pre


def _load_merged_config(logger: logging.Logger, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    return Config.load_many(logger, Config.expand_configs(logger, list(cfgs)))


def _setup_logging(ns: argparse.Namespace) -> logging.Logger:
    return Log.setup(
        getattr(ns, "verbose", 0) or 0,
        getattr(ns, "log_file", None),
        quiet=getattr(ns, "quiet", 0) or 0,
        json_logs=bool(getattr(ns, "json_logs", False)),
    )


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], logging.Logger]:
    """
    Parse the command line with YAML/JSON config files as defaults.

    The early flags are read first so logging exists before any config file is
    touched. Config values then become parser defaults, the full command line is
    parsed on top of them, and the result is validated. If a config file changed
    the logging flags, the logger is set up again with the final values.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    early, _rest = _build_preparser().parse_known_args(argv)

    own_logger = logger is None
    if logger is None:
        logger = _setup_logging(early)

    conf = _load_merged_config(logger, early.config or [])
    if early.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    parser = build_parser()
    Config.apply_as_defaults(logger, parser, conf)
    args = parser.parse_args(argv)

    if early.dump_args:
        print(U.json_dump(vars(args)))
        raise SystemExit(0)

    if own_logger and any(getattr(args, k, None) != getattr(early, k, None) for k in _LOGGING_KEYS):
        logger = _setup_logging(args)

    validate_args(args, conf, logger)
    return args, conf, logger
