# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/core/utils.py
from __future__ import annotations

import json
import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Any, List, Optional

from .exceptions import Fatal

# Console tools on Windows write the OEM code page, not the ANSI one text mode assumes.
TOOL_ENCODING: Optional[str] = "oem" if os.name == "nt" else None


class U:
    @staticmethod
    def die(logger: logging.Logger, msg: str, code: int = 1) -> None:
        """Log *msg* as an error and raise Fatal(code)."""
        logger.error(msg)
        raise Fatal(code, msg)

    @staticmethod
    def ensure_dir(p: Path) -> bool:
        """Create *p* if needed. Returns True if it was created by this call."""
        if p.is_dir():
            return False
        p.mkdir(parents=True, exist_ok=True)
        return True

    @staticmethod
    def which(prog: str) -> Optional[str]:
        return shutil.which(prog)

    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return repr(obj)

    @staticmethod
    def quote_cmd(cmd: List[str]) -> str:
        return " ".join(shlex.quote(str(x)) for x in cmd)

    @staticmethod
    def to_text(x: Any) -> str:
        if x is None:
            return ""
        if isinstance(x, bytes):
            return x.decode("utf-8", "replace")
        return str(x)

    @staticmethod
    def _stream(
        logger: logging.Logger,
        cmd: List[str],
        *,
        timeout: Optional[int],
    ) -> subprocess.CompletedProcess:
        # stderr is folded into stdout so DISM progress and errors keep their order.
        lines: List[str] = []
        with subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding=TOOL_ENCODING,
            errors="replace",
        ) as proc:
            assert proc.stdout is not None
            try:
                for raw in proc.stdout:
                    line = raw.rstrip("\r\n")
                    lines.append(line)
                    if line.strip():
                        logger.info(line)
                rc = proc.wait(timeout=timeout)
            except BaseException:
                proc.kill()
                raise
        return subprocess.CompletedProcess(cmd, rc, stdout="\n".join(lines), stderr="")

    @staticmethod
    def run_cmd(
        logger: logging.Logger,
        cmd: List[str],
        *,
        capture: bool = False,
        timeout: Optional[int] = None,
        stream: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run *cmd* and return the CompletedProcess whatever its exit code.

        stream=True echoes each output line to the logger as it arrives (stderr merged
        into stdout) and still returns the collected output. Output that does not
        decode is replaced, never raised. Timeouts and launch errors are logged and
        re-raised.
        """
        shown = U.quote_cmd(cmd)
        logger.debug("Running: %s", shown)

        try:
            if stream:
                cp = U._stream(logger, cmd, timeout=timeout)
            else:
                cp = subprocess.run(
                    cmd,
                    check=False,
                    capture_output=capture,
                    text=True,
                    encoding=TOOL_ENCODING,
                    errors="replace",
                    timeout=timeout,
                )
        except subprocess.TimeoutExpired:
            logger.error("Command timed out after %ss: %s", timeout, shown)
            raise
        except OSError as e:
            logger.error("Cannot run %s: %s", shown, e)
            raise
        if cp.returncode != 0:
            logger.debug("Command exited rc=%s: %s", cp.returncode, shown)
        return cp


def find_case_insensitive(base_dir: Path, rel_path: str) -> Optional[Path]:
    """
    Walk *base_dir* resolving *rel_path* component-by-component without regard to case.
    Accepts either separator. Returns the real path on disk or None.
    """
    parts = [p for p in rel_path.replace("\\", "/").strip("/").split("/") if p]
    current = Path(base_dir)
    for part in parts:
        exact = current / part
        if exact.exists():
            current = exact
            continue
        try:
            entries = list(current.iterdir())
        except OSError:
            return None
        wanted = part.lower()
        match = next((e for e in entries if e.name.lower() == wanted), None)
        if match is None:
            return None
        current = match
    return current
