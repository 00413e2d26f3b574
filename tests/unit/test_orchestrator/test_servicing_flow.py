# SPDX-License-Identifier: LGPL-3.0-or-later
import json

import pytest

from fakes.fake_logger import FakeLogger
from fakes.fake_tools import (
    FakeHiveService,
    FakeImageService,
    FakeImportService,
    FakePackageService,
    ScriptedOperator,
    package,
)
from wimservice.core.exceptions import (
    EXIT_INPUT_NOT_FOUND,
    EXIT_INTERRUPTED,
    EXIT_MOUNT_FAILED,
    EXIT_REGISTRY_CONTRACT,
    EXIT_UNMOUNT_FAILED,
    EXIT_USAGE,
    InputNotFoundError,
    RegistryContractError,
    ToolError,
    UsageError,
)
from wimservice.orchestrator import ServicingOrchestrator, ServicingRequest, ServicingState
from wimservice.tools.base import Disposition

GOOD_REG = """Windows Registry Editor Version 5.00

[HKEY_LOCAL_MACHINE\\OFFLINE_SOFTWARE\\Policies\\Microsoft\\Windows\\CloudContent]
"DisableWindowsConsumerFeatures"=dword:00000001

[HKEY_LOCAL_MACHINE\\OFFLINE_SYSTEM\\ControlSet001\\Control\\BitLocker]
"PreventDeviceEncryption"=dword:00000001

[HKEY_LOCAL_MACHINE\\OFFLINE_DEFAULT\\Software\\Microsoft\\Windows\\CurrentVersion\\Search]
"SearchboxTaskbarMode"=dword:00000000
"""

HIVE_KEYS = ["HKLM\\OFFLINE_SOFTWARE", "HKLM\\OFFLINE_SYSTEM", "HKLM\\OFFLINE_DEFAULT"]


class Rig:
    """Orchestrator wired to recording fakes."""

    def __init__(self, folder, *, answers=("1",), packages=(), image_kw=None, hive_kw=None,
                 package_fail=(), import_ok=True, **request_kw):
        self.calls = []
        self.logger = FakeLogger()
        self.operator = ScriptedOperator(answers)
        self.images = FakeImageService(self.calls, **(image_kw or {}))
        self.packages = FakePackageService(self.calls, packages, fail=package_fail)
        self.hives = FakeHiveService(self.calls, **(hive_kw or {}))
        self.importer = FakeImportService(self.calls, self.hives, ok=import_ok)
        self.request = ServicingRequest(working_folder=folder, **request_kw)
        self.orch = ServicingOrchestrator(
            self.logger,
            self.request,
            operator=self.operator,
            image_service=self.images,
            package_service=self.packages,
            hive_service=self.hives,
            import_service=self.importer,
        )

    def run(self):
        return self.orch.run()

    def names(self):
        return [c[0] for c in self.calls]


@pytest.mark.unit
class TestValidationHalts:
    """Test halts before anything is mounted."""

    def test_no_action_halts_with_usage_error_and_no_mount_point(self, working_folder):
        """No action halts before the mount point is created."""
        rig = Rig(working_folder)

        with pytest.raises(UsageError) as ei:
            rig.run()

        assert ei.value.code == EXIT_USAGE
        assert not (working_folder / "WIM-OFFLINESERVICING").exists()
        assert rig.calls == []
        assert rig.operator.acknowledged == ["Servicing halted."]
        assert rig.orch.state is ServicingState.FAILED
        assert rig.orch.report.states == ["start", "failed"]

    def test_whitespace_names_count_as_absent(self, working_folder):
        """Whitespace-only names count as absent."""
        rig = Rig(working_folder, package_list="   ", registry_file="")
        with pytest.raises(UsageError):
            rig.run()

    def test_missing_working_folder(self, tmp_path):
        """A missing working folder halts."""
        rig = Rig(tmp_path / "nope", package_list="remove.txt")

        with pytest.raises(InputNotFoundError) as ei:
            rig.run()

        assert ei.value.code == EXIT_INPUT_NOT_FOUND
        assert rig.calls == []
        assert not (tmp_path / "nope").exists()
        assert rig.operator.acknowledged == ["Servicing halted."]

    def test_missing_image_halts_before_mount(self, tmp_path):
        """A folder without the image halts before mounting."""
        (tmp_path / "remove.txt").write_text("Microsoft.BingNews\n", encoding="utf-8")
        rig = Rig(tmp_path, package_list="remove.txt")

        with pytest.raises(InputNotFoundError) as ei:
            rig.run()

        assert "install.wim not found" in str(ei.value)
        assert "mount" not in rig.names()
        assert not (tmp_path / "WIM-OFFLINESERVICING").exists()

    def test_missing_package_list_halts_before_mount(self, working_folder):
        """A named but missing package list halts before mounting."""
        rig = Rig(working_folder, package_list="missing.txt")
        with pytest.raises(InputNotFoundError):
            rig.run()
        assert rig.calls == []

    def test_registry_outside_aliases_rejected_before_mount(self, working_folder):
        """Keys outside the offline aliases halt before mounting."""
        (working_folder / "bad.reg").write_text(
            "Windows Registry Editor Version 5.00\n\n[HKEY_LOCAL_MACHINE\\SOFTWARE\\Contoso]\n\"x\"=dword:1\n",
            encoding="utf-8",
        )
        rig = Rig(working_folder, registry_file="bad.reg")

        with pytest.raises(RegistryContractError) as ei:
            rig.run()

        assert ei.value.code == EXIT_REGISTRY_CONTRACT
        assert rig.calls == []
        assert rig.orch.report.failure["type"] == "RegistryContractError"


@pytest.mark.unit
class TestPackageRemoval:
    """Test pattern-driven package removal."""

    def test_no_matching_package_still_reaches_prompt(self, working_folder):
        """Zero matches is not an error."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(
            working_folder,
            package_list="remove.txt",
            packages=[package("Microsoft.BingNews")],
            answers=["1"],
        )

        report = rig.run()

        assert rig.names() == ["cleanup", "mount", "unmount"]
        assert report.packages["removed"] == []
        assert report.packages["unmatched"] == ["Contoso.DemoApp"]
        assert rig.operator.prompts == 1
        assert report.ok
        assert not report.degraded

    def test_wildcards_case_insensitive(self, working_folder):
        """Wildcards match regardless of case."""
        (working_folder / "remove.txt").write_text("microsoft.xbox*\n# keep\n\nClipchamp.Clipchamp\n", encoding="utf-8")
        inventory = [
            package("Microsoft.XboxGamingOverlay"),
            package("Microsoft.XboxIdentityProvider"),
            package("Clipchamp.Clipchamp"),
            package("Microsoft.WindowsCalculator"),
        ]
        rig = Rig(working_folder, package_list="remove.txt", packages=inventory)

        report = rig.run()

        removed = [c[1] for c in rig.calls if c[0] == "remove"]
        assert removed == [
            inventory[0].package_name,
            inventory[1].package_name,
            inventory[2].package_name,
        ]
        assert [p.display_name for p in rig.packages.inventory] == ["Microsoft.WindowsCalculator"]
        # Inventory is re-read per pattern.
        assert rig.packages.list_count == 2
        assert report.packages["patterns"] == ["microsoft.xbox*", "Clipchamp.Clipchamp"]

    def test_removal_failure_continues_and_warns_before_prompt(self, working_folder):
        """A failed removal is recorded and the run goes on."""
        (working_folder / "remove.txt").write_text("Microsoft.*\n", encoding="utf-8")
        a, b = package("Microsoft.BingNews"), package("Microsoft.BingWeather")
        rig = Rig(working_folder, package_list="remove.txt", packages=[a, b], package_fail=[a.package_name])

        report = rig.run()

        assert [c[1] for c in rig.calls if c[0] == "remove"] == [a.package_name, b.package_name]
        assert report.packages["failed"] == [a.package_name]
        assert report.packages["removed"] == [b.package_name]
        assert report.degraded
        assert any("consider discarding" in m for m, _s in rig.operator.notifications)


@pytest.mark.unit
class TestRegistryImport:
    """Test hive load, import and unload."""

    def test_commit_with_all_aliases(self, working_folder):
        """Test a full registry import followed by commit."""
        (working_folder / "tweaks.reg").write_text(GOOD_REG, encoding="utf-8")
        rig = Rig(working_folder, registry_file="tweaks.reg", answers=["1"])

        report = rig.run()

        assert rig.names() == [
            "cleanup", "mount",
            "load", "load", "load",
            "import",
            "unload", "unload", "unload",
            "unmount",
        ]
        assert [c[1] for c in rig.calls if c[0] == "load"] == HIVE_KEYS
        assert [c[1] for c in rig.calls if c[0] == "unload"] == HIVE_KEYS
        assert rig.importer.loaded_at_import == HIVE_KEYS
        assert rig.calls[-1] == ("unmount", working_folder / "WIM-OFFLINESERVICING", "commit")
        assert report.registry["imported"] is True
        assert report.registry["still_loaded"] == []
        assert report.registry["reclaimed"]["ok"] is True
        assert report.disposition == "commit"
        assert report.states == [
            "start", "validated", "mount_prepared", "mounted",
            "registry_applied", "disposition_chosen", "finalized",
        ]
        assert rig.operator.acknowledged == ["Servicing complete."]

    def test_hive_paths_point_into_mount_dir(self, working_folder):
        """Hive files are taken from the mounted image."""
        (working_folder / "tweaks.reg").write_text(GOOD_REG, encoding="utf-8")
        rig = Rig(working_folder, registry_file="tweaks.reg")

        rig.run()

        mount = working_folder / "WIM-OFFLINESERVICING"
        loads = {c[1]: c[2] for c in rig.calls if c[0] == "load"}
        assert loads["HKLM\\OFFLINE_SOFTWARE"] == mount / "Windows" / "System32" / "config" / "SOFTWARE"
        assert loads["HKLM\\OFFLINE_SYSTEM"] == mount / "Windows" / "System32" / "config" / "SYSTEM"
        assert loads["HKLM\\OFFLINE_DEFAULT"] == mount / "Users" / "Default" / "ntuser.dat"

    def test_failed_hive_load_skips_import_and_unloads_only_loaded(self, working_folder):
        """A failed load skips the import and unloads what did load."""
        (working_folder / "tweaks.reg").write_text(GOOD_REG, encoding="utf-8")
        rig = Rig(
            working_folder,
            registry_file="tweaks.reg",
            hive_kw={"fail_load": ["HKLM\\OFFLINE_SYSTEM"]},
            answers=["2"],
        )

        report = rig.run()

        assert "import" not in rig.names()
        assert [c[1] for c in rig.calls if c[0] == "unload"] == ["HKLM\\OFFLINE_SOFTWARE", "HKLM\\OFFLINE_DEFAULT"]
        assert report.registry["imported"] is False
        assert report.degraded
        assert report.disposition == "discard"

    def test_import_failure_is_recorded_not_raised(self, working_folder):
        """Import failures are recorded, not raised."""
        (working_folder / "tweaks.reg").write_text(GOOD_REG, encoding="utf-8")
        rig = Rig(working_folder, registry_file="tweaks.reg", import_ok=False, answers=["2"])

        report = rig.run()

        assert report.ok
        assert any("Registry import" in e for e in report.errors)
        assert rig.names().count("unload") == 3

    def test_unload_failure_still_reaches_prompt(self, working_folder):
        """Unload failures still reach the prompt."""
        (working_folder / "tweaks.reg").write_text(GOOD_REG, encoding="utf-8")
        rig = Rig(
            working_folder,
            registry_file="tweaks.reg",
            hive_kw={"fail_unload": ["HKLM\\OFFLINE_DEFAULT"]},
            answers=["2"],
        )

        report = rig.run()

        assert report.registry["still_loaded"] == ["OFFLINE_DEFAULT"]
        assert rig.operator.prompts == 1
        assert rig.calls[-1][0] == "unmount"

    def test_utf16_export_accepted(self, working_folder):
        """Test a UTF-16 regedit export."""
        (working_folder / "tweaks.reg").write_bytes(GOOD_REG.replace("\n", "\r\n").encode("utf-16"))
        rig = Rig(working_folder, registry_file="tweaks.reg")

        report = rig.run()

        assert report.registry["imported"] is True


@pytest.mark.unit
class TestDisposition:
    """Test the commit or discard choice."""

    def test_invalid_answer_reprompts_then_discards(self, working_folder):
        """An invalid answer re-prompts, then discard."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", answers=["3", "2"])

        report = rig.run()

        assert rig.operator.prompts == 2
        assert rig.calls[-1] == ("unmount", working_folder / "WIM-OFFLINESERVICING", "discard")
        assert report.disposition == "discard"

    def test_preset_disposition_skips_prompt(self, working_folder):
        """A preset disposition skips the prompt."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", answers=[], disposition=Disposition.DISCARD)

        report = rig.run()

        assert rig.operator.prompts == 0
        assert report.disposition == "discard"


@pytest.mark.unit
class TestMountLifecycle:
    """Test mount point preparation, mount and unmount."""

    def test_existing_mount_dir_is_reused(self, working_folder):
        """An existing mount point is reused unchanged."""
        (working_folder / "WIM-OFFLINESERVICING").mkdir()
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt")

        report = rig.run()

        assert report.mount_dir_created is False
        assert report.ok

    def test_mount_dir_created_when_absent(self, working_folder):
        """A missing mount point is created."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt")

        report = rig.run()

        assert (working_folder / "WIM-OFFLINESERVICING").is_dir()
        assert report.mount_dir_created is True

    def test_cleanup_failure_is_a_note(self, working_folder):
        """Cleanup failures are notes, not errors."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", image_kw={"cleanup_ok": False})

        report = rig.run()

        assert report.ok
        assert any("cleanup failed" in n for n in report.notes)

    def test_mount_failure_is_fatal_without_unmount(self, working_folder):
        """Mount failure halts without an unmount."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", image_kw={"mount_ok": False}, answers=[])

        with pytest.raises(ToolError) as ei:
            rig.run()

        assert ei.value.code == EXIT_MOUNT_FAILED
        assert "unmount" not in rig.names()
        assert "already mounted" in str(ei.value)
        assert rig.operator.acknowledged == ["Servicing halted."]

    def test_unmount_failure_is_fatal(self, working_folder):
        """Unmount failure halts after the choice."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", image_kw={"unmount_ok": False})

        with pytest.raises(ToolError) as ei:
            rig.run()

        assert ei.value.code == EXIT_UNMOUNT_FAILED
        assert rig.orch.report.states[-2:] == ["disposition_chosen", "failed"]

    def test_custom_image_and_index(self, tmp_path):
        """Test custom image name, index and mount point."""
        (tmp_path / "custom.wim").write_bytes(b"x")
        (tmp_path / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(tmp_path, package_list="remove.txt", image_name="custom.wim", image_index=6, mount_dir_name="mnt")

        rig.run()

        assert ("mount", tmp_path / "custom.wim", 6, tmp_path / "mnt") in rig.calls


@pytest.mark.unit
class TestReport:
    """Test the report written at the end of a run."""

    def test_report_written_on_success(self, working_folder):
        """Test the report after a committed run."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", report_path="run.json")

        rig.run()

        data = json.loads((working_folder / "run.json").read_text(encoding="utf-8"))
        assert data["ok"] is True
        assert data["disposition"] == "commit"
        assert data["states"][-1] == "finalized"
        assert (working_folder / "run.md").is_file()

    def test_report_written_on_failure(self, working_folder):
        """Test the report after a usage halt."""
        rig = Rig(working_folder, report_path="run.json")

        with pytest.raises(UsageError):
            rig.run()

        data = json.loads((working_folder / "run.json").read_text(encoding="utf-8"))
        assert data["ok"] is False
        assert data["failure"]["code"] == EXIT_USAGE

    def test_report_not_written_into_missing_folder(self, tmp_path):
        """No report is written into a missing folder."""
        rig = Rig(tmp_path / "gone", package_list="remove.txt", report_path="run.json")

        with pytest.raises(InputNotFoundError):
            rig.run()

        assert not (tmp_path / "gone").exists()


@pytest.mark.unit
class TestUnexpectedErrors:
    """Test the halt path for errors outside the Fatal family."""

    def test_os_error_before_mount_is_acknowledged_and_reported(self, working_folder):
        """A mount point blocked by a regular file halts at the gate with a report."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        (working_folder / "WIM-OFFLINESERVICING").write_text("not a folder", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", report_path="run.json", answers=[])

        with pytest.raises(OSError):
            rig.run()

        assert rig.orch.report.states == ["start", "validated", "failed"]
        assert rig.names() == []
        assert rig.operator.acknowledged == ["Servicing halted."]
        data = json.loads((working_folder / "run.json").read_text(encoding="utf-8"))
        assert data["ok"] is False
        assert data["failure"]["code"] == 1
        assert data["failure"]["type"] == "FileExistsError"

    def test_interrupt_at_prompt_discards_mounted_image(self, working_folder):
        """Ctrl-C at the prompt discards the image, records the failure and still waits."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", report_path="run.json", answers=[KeyboardInterrupt()])

        with pytest.raises(KeyboardInterrupt):
            rig.run()

        assert rig.names() == ["cleanup", "mount", "unmount"]
        assert rig.calls[-1] == ("unmount", working_folder / "WIM-OFFLINESERVICING", "discard")
        assert rig.orch.report.states[-2:] == ["packages_removed", "failed"]
        assert rig.operator.acknowledged == ["Servicing halted."]
        assert rig.operator.notifications[-1] == ("KeyboardInterrupt", "bold red")
        data = json.loads((working_folder / "run.json").read_text(encoding="utf-8"))
        assert data["failure"]["code"] == EXIT_INTERRUPTED

    def test_failed_discard_after_interrupt_is_a_note(self, working_folder):
        """A discard that fails after an interrupt is noted; the interrupt still propagates."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(
            working_folder,
            package_list="remove.txt",
            image_kw={"unmount_ok": False},
            answers=[KeyboardInterrupt()],
        )

        with pytest.raises(KeyboardInterrupt):
            rig.run()

        assert any("after failure failed" in n for n in rig.orch.report.notes)
        assert rig.operator.acknowledged == ["Servicing halted."]

    def test_unmount_failure_is_not_retried_as_discard(self, working_folder):
        """A failed final unmount halts without a second unmount attempt."""
        (working_folder / "remove.txt").write_text("Contoso.DemoApp\n", encoding="utf-8")
        rig = Rig(working_folder, package_list="remove.txt", image_kw={"unmount_ok": False})

        with pytest.raises(ToolError):
            rig.run()

        assert rig.names().count("unmount") == 1
