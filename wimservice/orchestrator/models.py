# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/orchestrator/models.py
from __future__ import annotations

import argparse
import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..tools.base import Disposition

DEFAULT_IMAGE_NAME = "install.wim"
DEFAULT_MOUNT_DIR_NAME = "WIM-OFFLINESERVICING"
DEFAULT_IMAGE_INDEX = 1


class ServicingState(Enum):
    START = "start"
    VALIDATED = "validated"
    MOUNT_PREPARED = "mount_prepared"
    MOUNTED = "mounted"
    PACKAGES_REMOVED = "packages_removed"
    REGISTRY_APPLIED = "registry_applied"
    DISPOSITION_CHOSEN = "disposition_chosen"
    FINALIZED = "finalized"
    FAILED = "failed"


def _name_given(v: Optional[str]) -> bool:
    return v is not None and str(v).strip() != ""


@dataclass
class ServicingRequest:
    working_folder: Path
    package_list: Optional[str] = None
    registry_file: Optional[str] = None
    image_name: str = DEFAULT_IMAGE_NAME
    image_index: int = DEFAULT_IMAGE_INDEX
    mount_dir_name: str = DEFAULT_MOUNT_DIR_NAME
    disposition: Optional[Disposition] = None
    dry_run: bool = False
    report_path: Optional[str] = None

    def __post_init__(self) -> None:
        self.working_folder = Path(self.working_folder)
        if not _name_given(self.package_list):
            self.package_list = None
        if not _name_given(self.registry_file):
            self.registry_file = None

    @property
    def has_action(self) -> bool:
        """At least one of the optional servicing actions was requested."""
        return self.package_list is not None or self.registry_file is not None

    @property
    def image_path(self) -> Path:
        return self.working_folder / self.image_name

    @property
    def mount_dir(self) -> Path:
        return self.working_folder / self.mount_dir_name

    @property
    def package_list_path(self) -> Optional[Path]:
        return self.working_folder / self.package_list if self.package_list else None

    @property
    def registry_file_path(self) -> Optional[Path]:
        return self.working_folder / self.registry_file if self.registry_file else None

    @property
    def resolved_report_path(self) -> Optional[Path]:
        if not _name_given(self.report_path):
            return None
        p = Path(str(self.report_path)).expanduser()
        return p if p.is_absolute() else self.working_folder / p

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ServicingRequest":
        disp = getattr(args, "disposition", None)
        return cls(
            working_folder=Path(str(args.working_folder)).expanduser(),
            package_list=getattr(args, "package_list", None),
            registry_file=getattr(args, "registry_file", None),
            image_name=getattr(args, "image_name", None) or DEFAULT_IMAGE_NAME,
            image_index=int(getattr(args, "index", None) or DEFAULT_IMAGE_INDEX),
            mount_dir_name=getattr(args, "mount_dir_name", None) or DEFAULT_MOUNT_DIR_NAME,
            disposition=Disposition(str(disp).lower()) if disp else None,
            dry_run=bool(getattr(args, "dry_run", False)),
            report_path=getattr(args, "report", None),
        )


@dataclass
class ServicingReport:
    working_folder: str
    image: str
    mount_dir: str
    image_index: int
    dry_run: bool = False
    started: str = field(default_factory=lambda: _dt.datetime.now().isoformat(timespec="seconds"))
    finished: Optional[str] = None
    states: List[str] = field(default_factory=list)
    mount_dir_created: Optional[bool] = None
    cleanup: Dict[str, Any] = field(default_factory=dict)
    mount: Dict[str, Any] = field(default_factory=dict)
    packages: Optional[Dict[str, Any]] = None
    registry: Optional[Dict[str, Any]] = None
    disposition: Optional[str] = None
    unmount: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    failure: Optional[Dict[str, Any]] = None

    @property
    def state(self) -> Optional[str]:
        return self.states[-1] if self.states else None

    @property
    def ok(self) -> bool:
        return self.state == ServicingState.FINALIZED.value

    @property
    def degraded(self) -> bool:
        """Completed, but with best-effort steps that reported errors."""
        return self.ok and bool(self.errors)

    @classmethod
    def for_request(cls, req: ServicingRequest) -> "ServicingReport":
        return cls(
            working_folder=str(req.working_folder),
            image=str(req.image_path),
            mount_dir=str(req.mount_dir),
            image_index=req.image_index,
            dry_run=req.dry_run,
        )
