# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/__main__.py
from __future__ import annotations

import argparse
import logging
import sys
import traceback
from typing import Optional

from .cli.args.parser import parse_args_with_config
from .core.exceptions import EXIT_INTERRUPTED, EXIT_OK, Fatal, format_exception_for_cli
from .core.logger import Log
from .orchestrator.orchestrator import ServicingOrchestrator
from .tools.dism import DISM_EXE, DismImageService
from .tools.reg import REG_EXE, RegHiveService


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger, level: str, msg: str) -> None:
    if logger is None:
        _print_stderr(msg)
        return

    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg)
    else:
        _print_stderr(msg)


def check_tools(logger: logging.Logger, args: argparse.Namespace) -> int:
    """Report whether dism and reg resolve; 0 if both do."""
    tools = [
        ("dism", DismImageService(logger, getattr(args, "dism_path", None) or DISM_EXE)),
        ("reg", RegHiveService(logger, getattr(args, "reg_path", None) or REG_EXE)),
    ]
    rc = EXIT_OK
    for name, tool in tools:
        if tool.available():
            Log.ok(logger, f"{name}: {tool.executable}")
        else:
            Log.fail(logger, f"{name}: {tool.executable} not found")
            rc = 1
    return rc


def main(argv: Optional[list] = None) -> None:
    logger: Optional[logging.Logger] = None

    # Phase 1: parse (Fatal can happen here)
    try:
        args, _conf, logger = parse_args_with_config(argv)
    except Fatal as e:
        # Parse-time failures come from U.die(logger, ...), which already logged them.
        raise SystemExit(getattr(e, "code", 1))
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        raise SystemExit(EXIT_INTERRUPTED)

    # Phase 2: service the image
    try:
        if getattr(args, "check_tools", False):
            rc = check_tools(logger, args)
        else:
            ServicingOrchestrator.from_args(logger, args).run()
            rc = EXIT_OK
    except Fatal as e:
        # The orchestrator logged and showed this to the operator already.
        rc = getattr(e, "code", 1)
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        rc = EXIT_INTERRUPTED
    except Exception as e:
        _safe_log(logger, "error", f"💥 UNHANDLED {format_exception_for_cli(e, verbose=2)}")
        _safe_log(logger, "debug", traceback.format_exc())
        rc = 1

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
