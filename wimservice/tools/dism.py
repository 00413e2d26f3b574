# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/tools/dism.py
"""
DISM adapters: image mount lifecycle and provisioned AppX packages.

Command lines follow the documented DISM syntax:

  dism /Cleanup-Mountpoints
  dism /Mount-Image /ImageFile:<wim> /Index:<n> /MountDir:<dir>
  dism /Unmount-Image /MountDir:<dir> /Commit|/Discard
  dism /English /Image:<dir> /Get-ProvisionedAppxPackages
  dism /Image:<dir> /Remove-ProvisionedAppxPackage /PackageName:<name>
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

from ..core.logger import Log
from .base import CommandTool, Disposition, ProvisionedPackage, ToolResult

DISM_EXE = "dism"


class DismImageService(CommandTool):
    def __init__(self, logger: logging.Logger, executable: str = DISM_EXE, *, dry_run: bool = False):
        super().__init__(logger, executable, dry_run=dry_run, stream=True)

    def cleanup(self) -> ToolResult:
        return self._run(["/Cleanup-Mountpoints"])

    def mount(self, image: Path, index: int, mount_dir: Path) -> ToolResult:
        return self._run(
            [
                "/Mount-Image",
                f"/ImageFile:{image}",
                f"/Index:{int(index)}",
                f"/MountDir:{mount_dir}",
            ]
        )

    def unmount(self, mount_dir: Path, disposition: Disposition) -> ToolResult:
        return self._run(["/Unmount-Image", f"/MountDir:{mount_dir}", disposition.dism_flag])


def parse_provisioned_packages(text: str) -> List[ProvisionedPackage]:
    """
    Parse `dism /English /Get-ProvisionedAppxPackages` output.

    Records are blank-line separated blocks of ``Key : Value`` lines; only blocks
    carrying both DisplayName and PackageName are kept.
    """
    out: List[ProvisionedPackage] = []
    block: Dict[str, str] = {}

    def _flush() -> None:
        if block.get("displayname") and block.get("packagename"):
            out.append(
                ProvisionedPackage(
                    display_name=block["displayname"],
                    package_name=block["packagename"],
                    version=block.get("version") or None,
                )
            )
        block.clear()

    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line:
            _flush()
            continue
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().replace(" ", "").lower()
        if key in ("displayname", "packagename", "version"):
            # A new DisplayName while one is pending means the blank separator was lost.
            if key == "displayname" and block.get("displayname"):
                _flush()
            block[key] = value.strip()
    _flush()
    return out


class DismPackageService(CommandTool):
    def __init__(self, logger: logging.Logger, executable: str = DISM_EXE, *, dry_run: bool = False):
        super().__init__(logger, executable, dry_run=dry_run, stream=False)

    def list_packages(self, mount_dir: Path) -> List[ProvisionedPackage]:
        if self.dry_run:
            Log.warn_once(
                self.logger,
                ("dry-run-inventory", str(mount_dir)),
                "dry-run: provisioned package inventory is not read, no pattern will match",
            )
            return []
        res = self._run(["/English", f"/Image:{mount_dir}", "/Get-ProvisionedAppxPackages"])
        if not res.ok:
            self.logger.error("Listing provisioned packages failed: %s", res.detail)
            return []
        pkgs = parse_provisioned_packages(res.stdout)
        self.logger.debug("Found %d provisioned package(s) in %s", len(pkgs), mount_dir)
        return pkgs

    def remove_package(self, mount_dir: Path, package_name: str) -> ToolResult:
        return self._run(
            [f"/Image:{mount_dir}", "/Remove-ProvisionedAppxPackage", f"/PackageName:{package_name}"],
            stream=True,
        )
