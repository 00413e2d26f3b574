# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/orchestrator/orchestrator.py
from __future__ import annotations

import argparse
import datetime as _dt
import logging
from dataclasses import asdict
from typing import List, Optional

from ..core.exceptions import (
    EXIT_INTERRUPTED,
    EXIT_MOUNT_FAILED,
    EXIT_UNMOUNT_FAILED,
    Fatal,
    InputNotFoundError,
    ToolError,
    UsageError,
)
from ..core.logger import Log
from ..core.logging_utils import log_step
from ..core.utils import U
from ..interaction.console import ConsoleOperator, Operator
from ..packages.removal import read_pattern_list, remove_provisioned_packages
from ..registry.hives import loaded_hives
from ..registry.regfile import RegFile, load_reg_file
from ..tools.base import (
    Disposition,
    HiveService,
    ImageService,
    PackageService,
    RegistryImportService,
    ToolResult,
)
from ..tools.dism import DISM_EXE, DismImageService, DismPackageService
from ..tools.reg import REG_EXE, RegHiveService, RegImportService
from .models import ServicingReport, ServicingRequest, ServicingState
from .report_writer import write_report

DISPOSITION_OPTIONS = {
    "1": "Commit: save the changes into the image file",
    "2": "Discard: abandon every change made to the mounted image",
}
_CHOICE_TO_DISPOSITION = {"1": Disposition.COMMIT, "2": Disposition.DISCARD}


def _result_dict(res: ToolResult) -> dict:
    d = asdict(res)
    # Tool output can be megabytes of progress bars; keep the report readable.
    d["stdout"] = d["stdout"][-2000:]
    d["stderr"] = d["stderr"][-2000:]
    return d


class ServicingOrchestrator:
    """
    Mount an install image, apply the requested package removals and registry
    edits, let the operator commit or discard, unmount.

    All collaborators are injected. Validation, mount and unmount failures raise
    ``Fatal`` subclasses after the operator acknowledged them. Any other exception,
    Ctrl-C included, takes the same halt path and is re-raised unchanged; an image
    that is still mounted at that point is discarded first. Package and registry
    steps are best-effort, logged and recorded in the report.
    """

    def __init__(
        self,
        logger: logging.Logger,
        request: ServicingRequest,
        *,
        operator: Operator,
        image_service: ImageService,
        package_service: PackageService,
        hive_service: HiveService,
        import_service: RegistryImportService,
    ):
        self.logger = logger
        self.request = request
        self.operator = operator
        self.image_service = image_service
        self.package_service = package_service
        self.hive_service = hive_service
        self.import_service = import_service

        self.report = ServicingReport.for_request(request)
        self.patterns: List[str] = []
        self.reg_file: Optional[RegFile] = None
        self._mounted = False

        Log.trace(
            self.logger,
            "🧠 Orchestrator init: folder=%r packages=%r registry=%r",
            str(request.working_folder),
            request.package_list,
            request.registry_file,
        )

    @classmethod
    def from_args(
        cls,
        logger: logging.Logger,
        args: argparse.Namespace,
        *,
        operator: Optional[Operator] = None,
    ) -> "ServicingOrchestrator":
        """Production wiring: DISM and reg.exe adapters plus a console operator."""
        request = ServicingRequest.from_args(args)
        dism = getattr(args, "dism_path", None) or DISM_EXE
        reg = getattr(args, "reg_path", None) or REG_EXE
        return cls(
            logger,
            request,
            operator=operator or ConsoleOperator(logger, pause=not getattr(args, "no_pause", False)),
            image_service=DismImageService(logger, dism, dry_run=request.dry_run),
            package_service=DismPackageService(logger, dism, dry_run=request.dry_run),
            hive_service=RegHiveService(logger, reg, dry_run=request.dry_run),
            import_service=RegImportService(logger, reg, dry_run=request.dry_run),
        )

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def state(self) -> Optional[ServicingState]:
        s = self.report.state
        return ServicingState(s) if s else None

    def _to(self, state: ServicingState) -> None:
        self.report.states.append(state.value)
        Log.trace(self.logger, "state -> %s", state.value)

    # ------------------------------------------------------------------
    # phases
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        req = self.request
        if not req.has_action:
            raise UsageError(
                "Nothing to do: supply a package-removal list and/or a registry-modification file"
            )
        if not req.working_folder.is_dir():
            raise InputNotFoundError(
                f"Working folder not found: {req.working_folder}",
                working_folder=str(req.working_folder),
            )
        if not req.image_path.is_file():
            raise InputNotFoundError(
                f"{req.image_name} not found in {req.working_folder}",
                image=str(req.image_path),
            )

        # Inputs are read up front so a typo never costs a mount/unmount cycle.
        if req.package_list_path is not None:
            self.patterns = read_pattern_list(req.package_list_path)
            if not self.patterns:
                Log.warn(self.logger, f"{req.package_list} contains no package patterns")
                self.report.notes.append(f"{req.package_list} contains no package patterns")
        if req.registry_file_path is not None:
            self.reg_file = load_reg_file(req.registry_file_path)
            self.logger.info(
                "Registry file %s: %d key(s) across %s",
                req.registry_file,
                len(self.reg_file.keys),
                ", ".join(sorted(self.reg_file.aliases)),
            )

    def _prepare_mount_dir(self) -> None:
        mount_dir = self.request.mount_dir
        if self.request.dry_run and not mount_dir.is_dir():
            self.logger.info("🧪 dry-run: would create mount point %s", mount_dir)
            self.report.mount_dir_created = False
        else:
            created = U.ensure_dir(mount_dir)
            self.report.mount_dir_created = created
            self.logger.info("%s mount point %s", "Created" if created else "Reusing", mount_dir)

        with log_step(self.logger, "Cleaning up stale mount points"):
            res = self.image_service.cleanup()
        self.report.cleanup = _result_dict(res)
        if not res.ok:
            note = f"mount point cleanup failed: {res.detail}"
            Log.warn(self.logger, note)
            self.report.notes.append(note)

        if mount_dir.is_dir() and any(mount_dir.iterdir()):
            note = f"mount point {mount_dir} is not empty; mounting may fail"
            Log.warn(self.logger, note)
            self.report.notes.append(note)

    def _mount(self) -> None:
        req = self.request
        with log_step(self.logger, f"Mounting {req.image_name} (index {req.image_index})"):
            res = self.image_service.mount(req.image_path, req.image_index, req.mount_dir)
        self.report.mount = _result_dict(res)
        if not res.ok:
            raise ToolError(
                code=EXIT_MOUNT_FAILED,
                msg=f"Mounting {req.image_path} failed: {res.detail}",
                context={"image": str(req.image_path), "index": req.image_index},
            )
        self._mounted = True

    def _remove_packages(self) -> None:
        with log_step(self.logger, f"Removing provisioned packages ({len(self.patterns)} pattern(s))"):
            rr = remove_provisioned_packages(
                self.logger,
                self.package_service,
                self.request.mount_dir,
                self.patterns,
            )
        self.report.packages = asdict(rr)
        self.report.packages["unmatched"] = rr.unmatched
        self.report.errors.extend(rr.errors)

    def _apply_registry(self) -> None:
        assert self.reg_file is not None
        reg_path = self.reg_file.path
        summary = {"file": str(reg_path), "imported": False, "import": None, "hive_events": []}

        with log_step(self.logger, f"Applying {reg_path.name} to offline hives"):
            hive_log = Log.bind(self.logger, reg=reg_path.name)
            with loaded_hives(hive_log, self.hive_service, self.request.mount_dir) as session:
                if session.all_loaded:
                    res = self.import_service.import_file(reg_path)
                    summary["import"] = _result_dict(res)
                    summary["imported"] = res.ok
                    if res.ok:
                        Log.ok(self.logger, f"Imported {reg_path.name}")
                    else:
                        msg = f"Registry import of {reg_path.name} failed: {res.detail}"
                        Log.fail(self.logger, msg)
                        self.report.errors.append(msg)
                else:
                    # Importing with a hive missing would write into the host registry.
                    msg = f"Skipped import of {reg_path.name}: not all offline hives loaded"
                    Log.fail(self.logger, msg)
                    self.report.errors.append(msg)

        summary["hive_events"] = session.events
        summary["still_loaded"] = [h.name for h in session.loaded]
        summary["reclaimed"] = session.reclaimed
        self.report.errors.extend(session.errors)
        self.report.registry = summary

    def _choose_disposition(self) -> Disposition:
        if self.request.disposition is not None:
            self.logger.info("Disposition preset: %s", self.request.disposition.value)
            return self.request.disposition

        if self.report.errors:
            self.operator.notify(
                f"{len(self.report.errors)} servicing step(s) reported errors; "
                "consider discarding the changes.",
                style="bold yellow",
            )
        choice = self.operator.choose("Commit or discard the changes?", DISPOSITION_OPTIONS)
        return _CHOICE_TO_DISPOSITION[choice]

    def _unmount(self, disposition: Disposition) -> None:
        req = self.request
        self._mounted = False
        with log_step(self.logger, f"Unmounting {req.mount_dir} ({disposition.value})"):
            res = self.image_service.unmount(req.mount_dir, disposition)
        self.report.unmount = _result_dict(res)
        if not res.ok:
            raise ToolError(
                code=EXIT_UNMOUNT_FAILED,
                msg=f"Unmounting {req.mount_dir} ({disposition.value}) failed: {res.detail}",
                context={"mount_dir": str(req.mount_dir)},
            )

    # ------------------------------------------------------------------
    # entry point
    # ------------------------------------------------------------------

    def run(self) -> ServicingReport:
        req = self.request
        Log.banner(self.logger, f"Servicing {req.image_path}")
        self._to(ServicingState.START)
        try:
            self._validate()
            self._to(ServicingState.VALIDATED)

            self._prepare_mount_dir()
            self._to(ServicingState.MOUNT_PREPARED)

            self._mount()
            self._to(ServicingState.MOUNTED)

            if req.package_list_path is not None:
                self._remove_packages()
                self._to(ServicingState.PACKAGES_REMOVED)

            if self.reg_file is not None:
                self._apply_registry()
                self._to(ServicingState.REGISTRY_APPLIED)

            disposition = self._choose_disposition()
            self.report.disposition = disposition.value
            self._to(ServicingState.DISPOSITION_CHOSEN)

            self._unmount(disposition)
            self._to(ServicingState.FINALIZED)
        except Fatal as e:
            self._halt(e.to_dict(), str(e))
            raise
        except BaseException as e:
            code = EXIT_INTERRUPTED if isinstance(e, KeyboardInterrupt) else 1
            message = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            self._halt({"type": type(e).__name__, "code": code, "message": message, "context": {}}, message)
            raise

        self._finish()
        if self.report.degraded:
            self.operator.notify(
                f"Finished with {len(self.report.errors)} error(s); see the log above.",
                style="yellow",
            )
        self.operator.notify(f"Image ({self.report.disposition}): {req.image_path}", style="bold green")
        self.operator.acknowledge("Servicing complete.")
        return self.report

    def _halt(self, failure: dict, message: str) -> None:
        self._to(ServicingState.FAILED)
        self.report.failure = failure
        Log.fail(self.logger, message)
        if self._mounted:
            self._abandon_mount()
        self._finish()
        self.operator.notify(message, style="bold red")
        self.operator.acknowledge("Servicing halted.")

    def _abandon_mount(self) -> None:
        """Discard the still-mounted image so the mount point is usable next time."""
        self._mounted = False
        mount_dir = self.request.mount_dir
        try:
            with log_step(self.logger, f"Discarding {mount_dir} after failure"):
                res = self.image_service.unmount(mount_dir, Disposition.DISCARD)
        except Exception as e:
            note = f"discarding {mount_dir} after failure raised {type(e).__name__}: {e}"
            Log.warn(self.logger, note)
            self.report.notes.append(note)
            return
        self.report.unmount = _result_dict(res)
        if not res.ok:
            note = f"discarding {mount_dir} after failure failed: {res.detail}"
            Log.warn(self.logger, note)
            self.report.notes.append(note)

    def _finish(self) -> None:
        self.report.finished = _dt.datetime.now().isoformat(timespec="seconds")
        target = self.request.resolved_report_path
        if target is None:
            return
        folder = self.request.working_folder
        if folder in target.parents and not folder.is_dir():
            Log.warn(self.logger, f"Not writing report: {folder} does not exist")
            return
        try:
            written = write_report(self.report, target)
        except OSError as e:
            Log.warn(self.logger, f"Could not write report to {target}: {e}")
            return
        for kind, path in written.items():
            self.logger.info("Report (%s): %s", kind, path)
