# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/tools/base.py
"""
Narrow interfaces to the external servicing tools.

The orchestrator only ever talks to these protocols. Production adapters live in
``tools.dism`` and ``tools.reg``; tests substitute in-memory fakes.

Adapters report failures through ``ToolResult`` rather than raising, because most
servicing steps are best-effort: the caller decides which failures end the run.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol

from ..core.utils import U


class Disposition(Enum):
    COMMIT = "commit"
    DISCARD = "discard"

    @property
    def dism_flag(self) -> str:
        return "/Commit" if self is Disposition.COMMIT else "/Discard"


@dataclass
class ToolResult:
    ok: bool
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    command: List[str] = field(default_factory=list)

    @property
    def detail(self) -> str:
        """Most useful single line of output for error messages."""
        text = (self.stderr or self.stdout or "").strip()
        for line in reversed(text.splitlines()):
            if line.strip():
                return line.strip()
        return f"exit code {self.returncode}"

    @classmethod
    def from_completed(cls, cp: subprocess.CompletedProcess) -> "ToolResult":
        return cls(
            ok=(cp.returncode == 0),
            returncode=cp.returncode,
            stdout=U.to_text(cp.stdout),
            stderr=U.to_text(cp.stderr),
            command=[str(x) for x in cp.args] if isinstance(cp.args, (list, tuple)) else [str(cp.args)],
        )


@dataclass(frozen=True)
class ProvisionedPackage:
    display_name: str
    package_name: str
    version: Optional[str] = None


class ImageService(Protocol):
    def cleanup(self) -> ToolResult: ...

    def mount(self, image: Path, index: int, mount_dir: Path) -> ToolResult: ...

    def unmount(self, mount_dir: Path, disposition: Disposition) -> ToolResult: ...


class PackageService(Protocol):
    def list_packages(self, mount_dir: Path) -> List[ProvisionedPackage]: ...

    def remove_package(self, mount_dir: Path, package_name: str) -> ToolResult: ...


class HiveService(Protocol):
    def load_hive(self, key: str, hive_file: Path) -> ToolResult: ...

    def unload_hive(self, key: str) -> ToolResult: ...


class RegistryImportService(Protocol):
    def import_file(self, path: Path) -> ToolResult: ...


class CommandTool:
    """
    Shared plumbing for the subprocess-backed adapters: executable resolution,
    dry-run short-circuit and CompletedProcess -> ToolResult conversion.
    """

    def __init__(
        self,
        logger: logging.Logger,
        executable: str,
        *,
        dry_run: bool = False,
        stream: bool = False,
        timeout: Optional[int] = None,
    ):
        self.logger = logger
        self.executable = executable
        self.dry_run = bool(dry_run)
        self.stream = bool(stream)
        self.timeout = timeout

    def available(self) -> bool:
        return Path(self.executable).is_file() or U.which(self.executable) is not None

    def _run(self, args: List[str], *, stream: Optional[bool] = None, capture: bool = True) -> ToolResult:
        cmd = [self.executable, *args]
        if self.dry_run:
            self.logger.info("🧪 dry-run: %s", U.quote_cmd(cmd))
            return ToolResult(ok=True, returncode=0, command=cmd)
        try:
            cp = U.run_cmd(
                self.logger,
                cmd,
                capture=capture,
                timeout=self.timeout,
                stream=self.stream if stream is None else stream,
            )
        except subprocess.TimeoutExpired:
            return ToolResult(ok=False, returncode=124, stderr=f"timed out after {self.timeout}s", command=cmd)
        except OSError as e:
            # Executable missing or not runnable; run_cmd already logged it.
            return ToolResult(ok=False, returncode=127, stderr=str(e), command=cmd)
        return ToolResult.from_completed(cp)
