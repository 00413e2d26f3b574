# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/registry/hives.py
"""
Offline hive aliases and the paired load/unload session.

Three hives of the mounted image are bound to fixed keys under HKLM for the duration
of a registry import. Registry-modification files are authored against these alias
names, never against the real hive paths:

  HKLM\\OFFLINE_SOFTWARE  <- Windows\\System32\\config\\SOFTWARE
  HKLM\\OFFLINE_SYSTEM    <- Windows\\System32\\config\\SYSTEM
  HKLM\\OFFLINE_DEFAULT   <- Users\\Default\\ntuser.dat

The hives must be unloaded before the image is unmounted, otherwise DISM cannot
release the mount directory.
"""
from __future__ import annotations

import gc
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generator, List, Tuple

from ..core.logger import Log
from ..core.utils import find_case_insensitive
from ..tools.base import HiveService


@dataclass(frozen=True)
class HiveAlias:
    name: str
    relative_path: str

    @property
    def key(self) -> str:
        return f"HKLM\\{self.name}"

    def resolve(self, mount_dir: Path) -> Path:
        """Real hive file inside *mount_dir* (case-insensitive), or the literal join if absent."""
        found = find_case_insensitive(mount_dir, self.relative_path)
        if found is not None:
            return found
        return Path(mount_dir).joinpath(*self.relative_path.split("\\"))


SOFTWARE = HiveAlias("OFFLINE_SOFTWARE", "Windows\\System32\\config\\SOFTWARE")
SYSTEM = HiveAlias("OFFLINE_SYSTEM", "Windows\\System32\\config\\SYSTEM")
DEFAULT_USER = HiveAlias("OFFLINE_DEFAULT", "Users\\Default\\ntuser.dat")

# Load order; unload uses the same order.
OFFLINE_HIVES: Tuple[HiveAlias, ...] = (SOFTWARE, SYSTEM, DEFAULT_USER)

ALIAS_NAMES = frozenset(h.name.upper() for h in OFFLINE_HIVES)


@dataclass
class HiveSession:
    mount_dir: Path
    loaded: List[HiveAlias] = field(default_factory=list)
    events: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    reclaimed: Dict[str, Any] = field(default_factory=dict)

    @property
    def all_loaded(self) -> bool:
        return len(self.loaded) == len(OFFLINE_HIVES)

    def record(self, action: str, hive: HiveAlias, ok: bool, detail: str = "") -> None:
        self.events.append({"action": action, "alias": hive.name, "ok": bool(ok), "detail": detail})


def reclaim_resources(logger: logging.Logger) -> Dict[str, Any]:
    """
    Ask the interpreter to drop unreachable objects so nothing of ours keeps a hive
    file handle open. Advisory only; the outcome is logged, never raised.
    """
    collected = gc.collect()
    logger.debug("Resource reclamation collected %d object(s)", collected)
    return {"ok": True, "collected": collected}


@contextmanager
def loaded_hives(
    logger: logging.Logger,
    hive_service: HiveService,
    mount_dir: Path,
) -> Generator[HiveSession, None, None]:
    """
    Load the three offline hives, yield, then reclaim and unload every hive that
    actually loaded, in the fixed order, whatever happened inside the block.

    Load failures do not raise: callers check ``session.all_loaded`` before importing.
    """
    session = HiveSession(mount_dir=Path(mount_dir))

    for hive in OFFLINE_HIVES:
        hive_file = hive.resolve(session.mount_dir)
        res = hive_service.load_hive(hive.key, hive_file)
        session.record("load", hive, res.ok, "" if res.ok else res.detail)
        if res.ok:
            session.loaded.append(hive)
            logger.info("Loaded %s from %s", hive.key, hive_file)
        else:
            msg = f"Failed to load {hive.key} from {hive_file}: {res.detail}"
            Log.fail(logger, msg)
            session.errors.append(msg)

    try:
        yield session
    finally:
        session.reclaimed = reclaim_resources(logger)

        for hive in OFFLINE_HIVES:
            if hive not in session.loaded:
                continue
            res = hive_service.unload_hive(hive.key)
            session.record("unload", hive, res.ok, "" if res.ok else res.detail)
            if res.ok:
                session.loaded.remove(hive)
                logger.info("Unloaded %s", hive.key)
            else:
                msg = f"Failed to unload {hive.key}: {res.detail}"
                Log.fail(logger, msg)
                session.errors.append(msg)
