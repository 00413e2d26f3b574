# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/tools/reg.py
"""
reg.exe adapters: offline hive load/unload and .reg import.
"""
from __future__ import annotations

import logging
from pathlib import Path

from .base import CommandTool, ToolResult

REG_EXE = "reg"
# A hive held open by another process makes reg.exe hang rather than fail.
REG_TIMEOUT = 300


class RegHiveService(CommandTool):
    def __init__(
        self,
        logger: logging.Logger,
        executable: str = REG_EXE,
        *,
        dry_run: bool = False,
        timeout: int = REG_TIMEOUT,
    ):
        super().__init__(logger, executable, dry_run=dry_run, timeout=timeout)

    def load_hive(self, key: str, hive_file: Path) -> ToolResult:
        return self._run(["load", key, str(hive_file)])

    def unload_hive(self, key: str) -> ToolResult:
        return self._run(["unload", key])


class RegImportService(CommandTool):
    def __init__(
        self,
        logger: logging.Logger,
        executable: str = REG_EXE,
        *,
        dry_run: bool = False,
        timeout: int = REG_TIMEOUT,
    ):
        super().__init__(logger, executable, dry_run=dry_run, timeout=timeout)

    def import_file(self, path: Path) -> ToolResult:
        return self._run(["import", str(path)])
