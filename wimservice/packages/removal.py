# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/packages/removal.py
"""
Removal of provisioned AppX packages by display-name pattern.

Each line of the removal list is a wildcard pattern (``*`` and ``?``) matched
case-insensitively against package display names, the way PowerShell's ``-like``
operator does it. The inventory is re-read for every pattern so packages already
removed by an earlier pattern are not attempted twice.
"""
from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from ..core.exceptions import InputNotFoundError
from ..core.logger import Log
from ..tools.base import PackageService, ProvisionedPackage


def read_pattern_list(path: Path) -> List[str]:
    """Non-empty, non-comment lines of *path*, whitespace-stripped, in file order."""
    p = Path(path)
    if not p.is_file():
        raise InputNotFoundError(f"Package list not found: {p}", path=str(p))
    text = p.read_bytes().decode("utf-8-sig", errors="replace")
    out: List[str] = []
    for raw in text.splitlines():
        s = raw.strip()
        if not s or s.startswith("#"):
            continue
        out.append(s)
    return out


def display_name_matches(display_name: str, pattern: str) -> bool:
    # fnmatchcase on lowered strings: fnmatch() would be case-sensitive on POSIX hosts.
    return fnmatch.fnmatchcase(display_name.lower(), pattern.lower())


def match_packages(packages: Iterable[ProvisionedPackage], pattern: str) -> List[ProvisionedPackage]:
    return [p for p in packages if display_name_matches(p.display_name, pattern)]


@dataclass
class RemovalReport:
    patterns: List[str] = field(default_factory=list)
    matches: Dict[str, List[str]] = field(default_factory=dict)
    removed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def unmatched(self) -> List[str]:
        return [p for p in self.patterns if not self.matches.get(p)]


def remove_provisioned_packages(
    logger: logging.Logger,
    package_service: PackageService,
    mount_dir: Path,
    patterns: List[str],
) -> RemovalReport:
    """
    Remove every provisioned package whose display name matches one of *patterns*.
    Zero matches for a pattern is reported, not raised; removal failures are recorded
    and the remaining packages are still attempted.
    """
    report = RemovalReport(patterns=list(patterns))
    attempted: set[str] = set()

    for pattern in patterns:
        inventory = package_service.list_packages(mount_dir)
        hits = [p for p in match_packages(inventory, pattern) if p.package_name not in attempted]
        report.matches[pattern] = [p.package_name for p in hits]

        if not hits:
            logger.info("No provisioned package matches %r", pattern)
            continue

        for pkg in hits:
            attempted.add(pkg.package_name)
            Log.step(logger, f"Removing {pkg.display_name}", package=pkg.package_name)
            res = package_service.remove_package(mount_dir, pkg.package_name)
            if res.ok:
                report.removed.append(pkg.package_name)
            else:
                report.failed.append(pkg.package_name)
                msg = f"Failed to remove {pkg.package_name}: {res.detail}"
                Log.fail(logger, msg)
                report.errors.append(msg)

    logger.info(
        "Package removal: %d removed, %d failed, %d pattern(s) without match",
        len(report.removed),
        len(report.failed),
        len(report.unmatched),
    )
    return report
