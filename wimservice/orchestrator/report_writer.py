# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/orchestrator/report_writer.py
"""
wimservice run report writer (JSON, plus a Markdown sidecar for humans).
"""
from __future__ import annotations

import datetime as _dt
import os
import sys
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from .. import __version__
from ..core.utils import U
from .models import ServicingReport


def _json_safe(obj: Any) -> Any:
    """
    Convert common non-JSON-native objects (Paths, Enums, dataclasses, datetimes)
    into JSON-safe representations.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (_dt.datetime, _dt.date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return _json_safe(obj.value)
    if is_dataclass(obj) and not isinstance(obj, type):
        return _json_safe(asdict(obj))
    if isinstance(obj, dict):
        return {str(k): _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_json_safe(x) for x in obj]
    return str(obj)


def _atomic_write_text(path: Path, content: str, suffix: str = ".tmp.wimservice") -> None:
    """
    Write a temp file in the same directory, fsync it and os.replace it over *path*.
    """
    tmp = Path(str(path) + suffix)
    U.ensure_dir(path.parent)
    try:
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp), str(path))
    finally:
        if tmp.exists():
            tmp.unlink()


def _json_sidecar_path(base: Path) -> Path:
    """
    - base ends with .json -> same path
    - base has another suffix -> replace it with .json
    - base has no suffix -> add .json
    """
    if base.suffix.lower() == ".json":
        return base
    if base.suffix:
        return base.with_suffix(".json")
    return Path(str(base) + ".json")


def _markdown_path_for_base(base: Path) -> Path:
    if base.suffix.lower() == ".md":
        return base
    return base.with_suffix(".md")


def build_payload(report: ServicingReport) -> Dict[str, Any]:
    payload = _json_safe(report)
    payload["ok"] = report.ok
    payload["degraded"] = report.degraded
    payload["meta"] = {
        "version": __version__,
        "python": sys.version.split()[0],
        "generated": _dt.datetime.now().isoformat(timespec="seconds"),
    }
    return payload


def render_markdown(report: ServicingReport) -> str:
    status = "OK" if report.ok else "FAILED"
    if report.degraded:
        status = "OK (with errors)"

    lines: List[str] = [
        "# wimservice report",
        "",
        f"- **Status:** {status}",
        f"- **Image:** `{report.image}` (index {report.image_index})",
        f"- **Mount dir:** `{report.mount_dir}`",
        f"- **Dry run:** {report.dry_run}",
        f"- **Disposition:** {report.disposition or '-'}",
        f"- **States:** {' -> '.join(report.states)}",
        "",
    ]

    if report.packages is not None:
        pk = report.packages
        lines += [
            "## Provisioned packages",
            "",
            f"- Patterns: {len(pk.get('patterns', []))}",
            f"- Removed: {len(pk.get('removed', []))}",
            f"- Failed: {len(pk.get('failed', []))}",
            "",
        ]
        for name in pk.get("removed", []):
            lines.append(f"  - removed `{name}`")
        lines.append("")

    if report.registry is not None:
        rg = report.registry
        lines += [
            "## Registry",
            "",
            f"- File: `{rg.get('file')}`",
            f"- Imported: {rg.get('imported')}",
            "",
        ]
        for ev in rg.get("hive_events", []):
            lines.append(f"  - {ev.get('action')} {ev.get('alias')}: {'ok' if ev.get('ok') else 'FAILED'}")
        lines.append("")

    if report.errors:
        lines += ["## Errors", ""] + [f"- {e}" for e in report.errors] + [""]
    if report.notes:
        lines += ["## Notes", ""] + [f"- {n}" for n in report.notes] + [""]
    if report.failure:
        lines += ["## Failure", "", f"- {report.failure.get('message')}", ""]

    return "\n".join(lines)


def write_report(report: ServicingReport, base: Path) -> Dict[str, Path]:
    """
    Write the JSON report and its Markdown sidecar next to *base*.
    Returns the paths written.
    """
    base = Path(base)
    json_path = _json_sidecar_path(base)
    md_path = _markdown_path_for_base(base)

    _atomic_write_text(json_path, U.json_dump(build_payload(report)) + "\n")
    written = {"json": json_path}
    if md_path != json_path:
        _atomic_write_text(md_path, render_markdown(report))
        written["markdown"] = md_path
    return written
