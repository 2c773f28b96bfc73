"""
Tests for use cases — run, rollback, verify, status, config check, queries.
"""

import shutil
import textwrap
from pathlib import Path

import pytest

from conftest import make_lifecycles, write_module
from provisioner.core.errors import ModuleNotFound
from provisioner.core.models.result import RunStatus
from provisioner.core.persistence.audit import AuditWriter
from provisioner.core.persistence.state_file import load_state
from provisioner.core.use_cases.config_check import check_config
from provisioner.core.use_cases.modules import (
    list_modules,
    list_presets,
    module_dependencies,
    show_module,
)
from provisioner.core.use_cases.rollback import rollback_modules
from provisioner.core.use_cases.run import run_modules
from provisioner.core.use_cases.status import get_status
from provisioner.core.use_cases.verify import verify_modules
from provisioner.core.use_cases.workspace import open_workspace

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")


def _config(machine: Path) -> Path:
    return machine / "provision.yml"


# ── Run ─────────────────────────────────────────────────────────────


class TestRunModules:
    def test_mock_run_resolves_and_records(self, machine: Path):
        result = run_modules(["tools"], config_path=_config(machine), mock_mode=True)
        assert result.error is None
        assert result.plan.order == ["system-deps", "python", "tools"]
        assert result.exit_code == 0

        state = load_state(machine / ".state" / "current.json")
        assert state.machine_name == "test-machine"
        assert state.last_operation.operation == "run"
        assert state.last_operation.succeeded == 3
        assert state.modules["tools"].status == "installed"

        entries = AuditWriter(machine / ".state" / "audit.ndjson").read_all()
        assert len(entries) == 1
        assert entries[0].modules_requested == ["tools"]
        assert entries[0].modules_affected == ["system-deps", "python", "tools"]

    def test_state_write_failure_still_returns_report(self, machine: Path, caplog):
        (machine / ".state").write_text("not a directory", encoding="utf-8")
        result = run_modules(["python"], config_path=_config(machine), mock_mode=True)
        assert result.error is None
        assert result.exit_code == 0
        assert [r.name for r in result.report.results] == ["system-deps", "python"]
        assert any("Failed to save state" in r.getMessage() for r in caplog.records)

    def test_preset(self, machine: Path):
        result = run_modules(preset="starter", config_path=_config(machine), mock_mode=True)
        assert set(result.plan.order) == {"system-deps", "python", "nodejs"}
        assert result.requested == ["python", "nodejs"]

    def test_only(self, machine: Path):
        result = run_modules(
            preset="starter", only=["nodejs"], config_path=_config(machine), mock_mode=True
        )
        assert result.plan.order == ["system-deps", "nodejs"]

    def test_dry_run_persists_nothing(self, machine: Path):
        result = run_modules(["tools"], config_path=_config(machine), dry_run=True)
        assert result.report.dry_run
        assert result.report.results == []
        assert not (machine / ".state").exists()
        assert not (machine / ".installed-tools").exists()

    def test_unknown_preset_is_config_error(self, machine: Path):
        result = run_modules(preset="nope", config_path=_config(machine))
        assert result.error_kind == "config"
        assert result.exit_code == 1

    def test_nothing_requested(self, machine: Path):
        result = run_modules(config_path=_config(machine))
        assert "Nothing to run" in result.error
        assert result.exit_code == 1

    def test_unknown_module_is_resolution_error(self, machine: Path):
        result = run_modules(["ghost"], config_path=_config(machine), mock_mode=True)
        assert result.error_kind == "resolution"
        assert result.exit_code == 2
        assert "ghost" in result.error
        assert not (machine / ".state").exists()

    def test_no_auto_include(self, machine: Path):
        result = run_modules(
            ["python"], auto_include=False, config_path=_config(machine), mock_mode=True
        )
        assert result.exit_code == 2
        assert "system-deps" in result.error

    def test_strict_deps(self, machine: Path):
        write_module(machine / "modules", "09-extra.sh", "extra", deps=["ghost"])
        lenient = run_modules(["extra"], config_path=_config(machine), mock_mode=True)
        assert lenient.plan.missing == ["ghost"]
        strict = run_modules(
            ["extra"], strict_deps=True, config_path=_config(machine), mock_mode=True
        )
        assert strict.exit_code == 2

    def test_config_policy_applies(self, machine: Path):
        _config(machine).write_text("policy:\n  auto_include: false\n")
        result = run_modules(["python"], config_path=_config(machine), mock_mode=True)
        assert result.error_kind == "resolution"

    def test_failed_module_sets_exit_code(self, machine: Path):
        lifecycles, mocks = make_lifecycles(["system-deps", "python"])
        mocks["system-deps"].set_failure("install", "boom")
        result = run_modules(["python"], config_path=_config(machine), lifecycles=lifecycles)
        assert result.report.statuses() == {
            "system-deps": RunStatus.FAILED,
            "python": RunStatus.INSTALLED,
        }
        assert result.exit_code == 1
        state = load_state(machine / ".state" / "current.json")
        assert state.last_operation.status == "partial"

    def test_defaults_without_config_file(self, tmp_path: Path):
        write_module(tmp_path / "modules", "01-a.sh", "a")
        result = run_modules(["a"], start_dir=tmp_path, mock_mode=True)
        assert result.error is None
        assert result.workspace.config_path is None
        assert result.workspace.root == tmp_path.resolve()

    def test_invalid_config(self, tmp_path: Path):
        (tmp_path / "provision.yml").write_text("- not a mapping\n")
        result = run_modules(["a"], start_dir=tmp_path)
        assert result.error_kind == "config"


@needs_bash
class TestRunWithScripts:
    def test_install_then_rerun(self, machine: Path):
        first = run_modules(["tools"], config_path=_config(machine))
        assert [r.status for r in first.report.results] == [RunStatus.INSTALLED] * 3
        assert (machine / ".installed-tools").is_file()

        second = run_modules(["tools"], config_path=_config(machine))
        assert [r.status for r in second.report.results] == [RunStatus.ALREADY_SATISFIED] * 3

    def test_failing_script_is_isolated(self, machine: Path):
        write_module(
            machine / "modules",
            "05-broken.sh",
            "broken",
            body='[ "$1" = install ] && { echo "no network" >&2; exit 1; }\nexit 1\n',
        )
        result = run_modules(["broken", "nodejs"], config_path=_config(machine))
        statuses = result.report.statuses()
        assert statuses["broken"] is RunStatus.FAILED
        assert statuses["nodejs"] is RunStatus.INSTALLED
        assert "no network" in result.report.result_for("broken").message


# ── Rollback / verify ───────────────────────────────────────────────


class TestRollbackModules:
    def test_rollback_records_state(self, machine: Path):
        run_modules(["python"], config_path=_config(machine), mock_mode=True)
        result = rollback_modules(["python"], config_path=_config(machine), mock_mode=True)
        assert result.exit_code == 0
        assert result.report.results[0].status is RunStatus.ROLLED_BACK
        state = load_state(machine / ".state" / "current.json")
        assert state.modules["python"].status == "rolled_back"
        assert state.modules["system-deps"].status == "installed"

    def test_failed_rollback_never_escalates(self, machine: Path):
        lifecycles, mocks = make_lifecycles(["python", "nodejs"])
        mocks["python"].set_failure("rollback", "files in use")
        result = rollback_modules(
            ["python", "nodejs"], config_path=_config(machine), lifecycles=lifecycles
        )
        assert result.exit_code == 0
        assert result.warnings == ["rollback failed for python: files in use"]
        assert result.report.result_for("nodejs").status is RunStatus.ROLLED_BACK

    def test_unknown_module(self, machine: Path):
        result = rollback_modules(["ghost"], config_path=_config(machine), mock_mode=True)
        assert result.exit_code == 2

    def test_nothing_named(self, machine: Path):
        assert rollback_modules([], config_path=_config(machine)).exit_code == 1


class TestVerifyModules:
    def test_defaults_to_recorded_modules(self, machine: Path):
        run_modules(["python"], config_path=_config(machine), mock_mode=True)
        result = verify_modules(config_path=_config(machine), mock_mode=True)
        assert result.modules == ["system-deps", "python"]
        assert all(r.message == "verified" for r in result.report.results)

    def test_defaults_to_registry_without_records(self, machine: Path):
        result = verify_modules(config_path=_config(machine), mock_mode=True)
        assert result.modules == ["system-deps", "python", "nodejs", "tools"]

    def test_failure_sets_exit_code(self, machine: Path):
        lifecycles, mocks = make_lifecycles(["nodejs"])
        mocks["nodejs"].set_failure("validate", "node not found")
        result = verify_modules(["nodejs"], config_path=_config(machine), lifecycles=lifecycles)
        assert result.exit_code == 1
        state = load_state(machine / ".state" / "current.json")
        assert state.modules["nodejs"].status == "failed"

    def test_passing_verify_keeps_recorded_status(self, machine: Path):
        run_modules(["system-deps"], config_path=_config(machine), mock_mode=True)
        verify_modules(["system-deps"], config_path=_config(machine), mock_mode=True)
        state = load_state(machine / ".state" / "current.json")
        assert state.modules["system-deps"].status == "installed"
        assert state.last_operation.operation == "verify"


# ── Status / config check / queries ─────────────────────────────────


class TestStatus:
    def test_fresh_machine(self, machine: Path):
        result = get_status(config_path=_config(machine))
        assert [m.name for m in result.modules] == ["system-deps", "python", "nodejs", "tools"]
        assert all(m.recorded_status == "" for m in result.modules)
        assert result.recent == []

    def test_after_run(self, machine: Path):
        run_modules(["nodejs"], config_path=_config(machine), mock_mode=True)
        result = get_status(config_path=_config(machine))
        recorded = {m.name: m.recorded_status for m in result.modules}
        assert recorded["nodejs"] == "installed"
        assert recorded["tools"] == ""
        assert len(result.recent) == 1
        data = result.to_dict()
        assert data["machine"]["name"] == "test-machine"
        assert data["last_operation"]["operation"] == "run"


class TestConfigCheck:
    def test_valid(self, machine: Path):
        result = check_config(config_path=_config(machine))
        assert result.valid, result.errors
        # built-in presets name modules this machine doesn't have
        assert any("Preset 'developer'" in w for w in result.warnings)

    def test_missing_modules_dir(self, tmp_path: Path):
        (tmp_path / "provision.yml").write_text("modules_dir: nowhere\n")
        result = check_config(config_path=tmp_path / "provision.yml")
        assert not result.valid
        assert any("Modules directory not found" in e for e in result.errors)

    def test_parse_errors(self, machine: Path):
        (machine / "modules" / "09-bad.sh").write_text('MODULE_NAME="x y"\n')
        result = check_config(config_path=_config(machine))
        assert not result.valid
        assert any("09-bad.sh" in e for e in result.errors)

    def test_configured_preset_with_unknown_module(self, machine: Path):
        _config(machine).write_text("presets:\n  mine: [python, ghost]\n")
        result = check_config(config_path=_config(machine))
        assert not result.valid
        assert any("Preset 'mine'" in e and "ghost" in e for e in result.errors)

    def test_cycle(self, machine: Path):
        write_module(machine / "modules", "08-x.sh", "x", deps=["y"])
        write_module(machine / "modules", "09-y.sh", "y", deps=["x"])
        result = check_config(config_path=_config(machine))
        assert not result.valid
        assert any("Circular dependency" in e for e in result.errors)

    def test_unknown_dependency_warns(self, machine: Path):
        write_module(machine / "modules", "09-z.sh", "z", deps=["ghost"])
        result = check_config(config_path=_config(machine))
        assert result.valid
        assert any("unknown module 'ghost'" in w for w in result.warnings)

    def test_invalid_config(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text(textwrap.dedent("""\
            policy:
              auto_include: maybe-later
        """))
        result = check_config(config_path=path)
        assert not result.valid
        assert result.to_dict()["module_count"] == 0


class TestModuleQueries:
    def test_list(self, machine: Path):
        rows = list_modules(open_workspace(_config(machine)))
        assert [r["name"] for r in rows] == ["system-deps", "python", "nodejs", "tools"]
        assert rows[1]["dependencies"] == ["system-deps"]

    def test_show(self, machine: Path):
        info = show_module(open_workspace(_config(machine)), "system-deps")
        assert info["dependents"] == ["python", "nodejs"]
        assert info["script"].endswith("01-system-deps.sh")

    def test_show_unknown(self, machine: Path):
        with pytest.raises(ModuleNotFound):
            show_module(open_workspace(_config(machine)), "ghost")

    def test_deps(self, machine: Path):
        info = module_dependencies(open_workspace(_config(machine)), "tools")
        assert info["direct"] == ["python"]
        assert info["install_order"] == ["system-deps", "python", "tools"]

    def test_presets(self, machine: Path):
        presets = list_presets(open_workspace(_config(machine)))
        assert presets["starter"] == ["python", "nodejs"]
        assert "full" in presets
