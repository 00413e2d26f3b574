# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/registry/regfile.py
"""
Registry-import (.reg) file contract.

A modification file may only touch keys below the three offline hive aliases
(see ``registry.hives``). Anything else would be written into the servicing host's
own registry by ``reg import``, so such files are rejected before the image is
mounted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set

from ..core.exceptions import InputNotFoundError, RegistryContractError
from .hives import ALIAS_NAMES

REG_HEADERS = ("Windows Registry Editor Version 5.00", "REGEDIT4")
HKLM_ROOTS = ("HKEY_LOCAL_MACHINE", "HKLM")


@dataclass(frozen=True)
class RegKeyRef:
    line: int
    path: str
    delete: bool = False

    @property
    def root(self) -> str:
        return self.path.split("\\", 1)[0].upper()

    @property
    def alias(self) -> str:
        parts = self.path.split("\\")
        return parts[1].upper() if len(parts) > 1 else ""


@dataclass
class RegFile:
    path: Path
    header: str
    keys: List[RegKeyRef] = field(default_factory=list)

    @property
    def aliases(self) -> Set[str]:
        return {k.alias for k in self.keys}


def decode_reg_bytes(data: bytes) -> str:
    """regedit exports UTF-16LE with BOM; hand-written files are usually UTF-8."""
    if data.startswith(b"\xff\xfe") or data.startswith(b"\xfe\xff"):
        return data.decode("utf-16")
    if data.startswith(b"\xef\xbb\xbf"):
        return data.decode("utf-8-sig")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        # REGEDIT4 files are ANSI; latin-1 keeps key names intact for validation.
        return data.decode("latin-1")


def _key_ref(lineno: int, line: str) -> RegKeyRef:
    inner = line[1:-1].strip()
    delete = inner.startswith("-")
    if delete:
        inner = inner[1:].strip()
    return RegKeyRef(line=lineno, path=inner, delete=delete)


def parse_reg_text(text: str, path: Path) -> RegFile:
    lines = text.splitlines()

    header = ""
    for ln in lines:
        if ln.strip():
            header = ln.strip().lstrip("\ufeff")
            break
    if header not in REG_HEADERS:
        raise RegistryContractError(
            f"{path.name} is not a registry-import file (first line must be {REG_HEADERS[0]!r})",
            path=str(path),
            header=header[:80],
        )

    reg = RegFile(path=path, header=header)
    for idx, raw in enumerate(lines, start=1):
        s = raw.strip()
        if s.startswith("[") and s.endswith("]"):
            reg.keys.append(_key_ref(idx, s))
    return reg


def validate_aliases(reg: RegFile) -> None:
    """Reject keys outside HKLM\\<alias> for the three offline aliases."""
    if not reg.keys:
        raise RegistryContractError(f"{reg.path.name} contains no registry keys", path=str(reg.path))

    bad = [k for k in reg.keys if k.root not in HKLM_ROOTS or k.alias not in ALIAS_NAMES]
    if bad:
        shown = "; ".join(f"line {k.line}: {k.path}" for k in bad[:5])
        more = f" (+{len(bad) - 5} more)" if len(bad) > 5 else ""
        raise RegistryContractError(
            f"{reg.path.name} references keys outside the offline hive aliases "
            f"{', '.join(sorted(ALIAS_NAMES))}: {shown}{more}",
            path=str(reg.path),
            offending=len(bad),
        )


def load_reg_file(path: Path) -> RegFile:
    """Read, decode, parse and validate a registry-modification file."""
    p = Path(path)
    if not p.is_file():
        raise InputNotFoundError(f"Registry file not found: {p}", path=str(p))
    reg = parse_reg_text(decode_reg_bytes(p.read_bytes()), p)
    validate_aliases(reg)
    return reg
