"""
Tests for CLI commands — run, rollback, verify, status, config, modules.
"""

import json
import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import write_module
from provisioner.main import cli

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")


def _invoke(machine: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(machine / "provision.yml"), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Provisioner" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestRunCommand:
    def test_mock_run(self, machine: Path):
        result = _invoke(machine, "run", "tools", "--mock")
        assert result.exit_code == 0, result.output
        assert "system-deps → python → tools" in result.output
        assert "Auto-included" in result.output
        assert "✓ tools" in result.output

    def test_json(self, machine: Path):
        result = _invoke(machine, "run", "python", "--mock", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["report"]["plan"]["order"] == ["system-deps", "python"]
        assert data["report"]["summary"]["succeeded"] == 2

    def test_dry_run(self, machine: Path):
        result = _invoke(machine, "run", "--preset", "starter", "--dry-run")
        assert result.exit_code == 0
        assert "DRY RUN" in result.output
        assert not (machine / ".state").exists()

    def test_only(self, machine: Path):
        result = _invoke(machine, "run", "--only", "nodejs,python", "--mock", "--json")
        data = json.loads(result.stdout)
        assert data["requested"] == ["nodejs", "python"]
        assert set(data["report"]["plan"]["order"]) == {"system-deps", "nodejs", "python"}

    def test_unknown_module_exit_2(self, machine: Path):
        result = _invoke(machine, "run", "ghost", "--mock")
        assert result.exit_code == 2
        assert "Module not found: ghost" in result.output

    def test_invalid_name_exit_2(self, machine: Path):
        result = _invoke(machine, "run", "../etc", "--mock")
        assert result.exit_code == 2

    def test_no_auto_include_exit_2(self, machine: Path):
        result = _invoke(machine, "run", "python", "--no-auto-include", "--mock")
        assert result.exit_code == 2
        assert "system-deps" in result.output

    def test_strict_deps_exit_2(self, machine: Path):
        write_module(machine / "modules", "09-extra.sh", "extra", deps=["ghost"])
        assert _invoke(machine, "run", "extra", "--mock").exit_code == 0
        assert _invoke(machine, "run", "extra", "--strict-deps", "--mock").exit_code == 2

    def test_nothing_requested_exit_1(self, machine: Path):
        result = _invoke(machine, "run")
        assert result.exit_code == 1
        assert "Nothing to run" in result.output

    @needs_bash
    def test_failed_module_exit_1(self, machine: Path):
        write_module(machine / "modules", "09-broken.sh", "broken", body="exit 1\n")
        result = _invoke(machine, "run", "broken", "nodejs", "--json")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        statuses = {r["name"]: r["status"] for r in data["report"]["results"]}
        assert statuses["broken"] == "failed"
        assert statuses["nodejs"] == "installed"


class TestRollbackCommand:
    def test_rollback(self, machine: Path):
        result = _invoke(machine, "rollback", "python", "--mock")
        assert result.exit_code == 0
        assert "✓ python" in result.output

    @needs_bash
    def test_failed_rollback_is_a_warning(self, machine: Path):
        write_module(machine / "modules", "09-stuck.sh", "stuck", body="exit 1\n")
        result = _invoke(machine, "rollback", "stuck", "nodejs", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["warnings"] == ["rollback failed for stuck: rollback exited with code 1"]

    def test_requires_modules(self, machine: Path):
        result = _invoke(machine, "rollback")
        assert result.exit_code == 2  # click usage error


@needs_bash
class TestVerifyCommand:
    def test_verify_after_run(self, machine: Path):
        assert _invoke(machine, "run", "nodejs").exit_code == 0
        result = _invoke(machine, "verify", "nodejs", "system-deps")
        assert result.exit_code == 0
        assert "2/2 valid" in result.output

    def test_verify_missing(self, machine: Path):
        result = _invoke(machine, "verify", "tools", "--json")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["report"]["summary"]["failed"] == 1


class TestStatusCommand:
    def test_status(self, machine: Path):
        _invoke(machine, "run", "python", "--mock")
        result = _invoke(machine, "status")
        assert result.exit_code == 0
        assert "test-machine" in result.output
        assert "python v1.0.0 ✓" in result.output
        assert "Last operation" in result.output

    def test_status_json(self, machine: Path):
        result = _invoke(machine, "status", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert len(data["modules"]) == 4

    def test_status_bad_config(self, tmp_path: Path):
        (tmp_path / "provision.yml").write_text("name: [oops\n")
        result = _invoke(tmp_path, "status")
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output


class TestConfigCheckCommand:
    def test_valid(self, machine: Path):
        result = _invoke(machine, "config", "check")
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_cycle(self, machine: Path):
        write_module(machine / "modules", "08-x.sh", "x", deps=["y"])
        write_module(machine / "modules", "09-y.sh", "y", deps=["x"])
        result = _invoke(machine, "config", "check", "--json")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert not data["valid"]


class TestModulesCommands:
    def test_list(self, machine: Path):
        result = _invoke(machine, "modules", "list")
        assert result.exit_code == 0
        for name in ("system-deps", "python", "nodejs", "tools"):
            assert name in result.output

    def test_show(self, machine: Path):
        result = _invoke(machine, "modules", "show", "python", "--json")
        data = json.loads(result.stdout)
        assert data["dependencies"] == ["system-deps"]
        assert data["dependents"] == ["tools"]

    def test_show_unknown(self, machine: Path):
        assert _invoke(machine, "modules", "show", "ghost").exit_code == 2

    def test_deps(self, machine: Path):
        result = _invoke(machine, "modules", "deps", "tools")
        assert result.exit_code == 0
        assert "1. system-deps" in result.output
        assert "3. tools" in result.output

    def test_presets(self, machine: Path):
        result = _invoke(machine, "modules", "presets", "--json")
        data = json.loads(result.stdout)
        assert data["starter"] == ["python", "nodejs"]
        assert data["minimal"] == ["system-deps", "python", "nodejs"]
