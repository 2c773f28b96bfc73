"""
Run use case — provision a set of modules.

The full vertical slice: load config and registry, turn the request
into a plan, drive every module, persist state and audit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import LifecycleRegistry
from provisioner.core.config.loader import ConfigError, preset_modules
from provisioner.core.engine.orchestrator import Orchestrator
from provisioner.core.engine.planner import ExecutionPlan, RunOptions
from provisioner.core.engine.reporter import RunReport
from provisioner.core.errors import ResolutionError
from provisioner.core.models.config import MissingDependencyPolicy
from provisioner.core.use_cases.workspace import Workspace, open_workspace, record_report

logger = logging.getLogger(__name__)

# Error kinds, mapped to exit codes by the CLI
ERROR_CONFIG = "config"
ERROR_RESOLUTION = "resolution"


@dataclass
class RunResult:
    """Result of a forward run."""

    report: RunReport | None = None
    workspace: Workspace | None = None
    requested: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    @property
    def plan(self) -> ExecutionPlan | None:
        return self.report.plan if self.report else None

    @property
    def exit_code(self) -> int:
        if self.error_kind == ERROR_RESOLUTION:
            return 2
        if self.error:
            return 1
        return self.report.exit_code if self.report else 0

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
            return result

        result["requested"] = list(self.requested)
        if self.workspace:
            result["machine"] = self.workspace.config.name
            result["root"] = str(self.workspace.root)
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def collect_request(
    workspace: Workspace,
    modules: list[str] | None = None,
    preset: str | None = None,
) -> list[str]:
    """Explicit names followed by preset members, duplicates dropped.

    Raises:
        ConfigError: Unknown preset.
    """
    names: list[str] = list(modules or [])
    if preset:
        names.extend(preset_modules(workspace.config, preset))
    unique: list[str] = []
    for name in names:
        if name not in unique:
            unique.append(name)
    return unique


def run_modules(
    modules: list[str] | None = None,
    preset: str | None = None,
    only: list[str] | None = None,
    dry_run: bool = False,
    auto_include: bool | None = None,
    strict_deps: bool = False,
    mock_mode: bool = False,
    config_path: Path | None = None,
    lifecycles: LifecycleRegistry | None = None,
    start_dir: Path | None = None,
) -> RunResult:
    """Provision modules.

    Args:
        modules: Module names to provision.
        preset: Preset whose members are added to ``modules``.
        only: Explicit list that replaces ``modules`` and ``preset``.
        dry_run: Plan only; nothing is executed or persisted.
        auto_include: Pull in dependencies automatically. None = config policy.
        strict_deps: Fail on dependencies no module provides.
        mock_mode: Drive mock lifecycles instead of the module scripts.
        config_path: Explicit path to provision.yml.
        lifecycles: Pre-configured lifecycle registry.
        start_dir: Where to start looking for provision.yml.

    Returns:
        RunResult with the report, or an error and its kind.
    """
    result = RunResult()

    # ── Load workspace ───────────────────────────────────────────
    try:
        workspace = open_workspace(config_path, start_dir)
        result.workspace = workspace
        requested = collect_request(workspace, modules, preset)
    except ConfigError as e:
        result.error = str(e)
        result.error_kind = ERROR_CONFIG
        return result

    if not requested and not only:
        result.error = "Nothing to run: name modules, or use --preset / --only."
        result.error_kind = ERROR_CONFIG
        return result
    result.requested = list(only) if only else requested

    # ── Options ──────────────────────────────────────────────────
    policy = workspace.config.policy
    options = RunOptions(
        dry_run=dry_run,
        only=list(only) if only else None,
        auto_include=policy.auto_include if auto_include is None else auto_include,
        missing_dependency=(
            MissingDependencyPolicy.FAIL if strict_deps else policy.missing_dependency
        ),
    )

    if lifecycles is None:
        lifecycles = LifecycleRegistry(mock_mode=mock_mode, cwd=workspace.root)

    # ── Plan + execute ───────────────────────────────────────────
    orchestrator = Orchestrator(workspace.registry, lifecycles)
    try:
        report = orchestrator.run(requested, options)
    except ResolutionError as e:
        logger.error("Cannot plan run: %s", e)
        result.error = str(e)
        result.error_kind = ERROR_RESOLUTION
        return result
    result.report = report

    # ── Persist ──────────────────────────────────────────────────
    if not report.dry_run:
        record_report(workspace, report, result.requested)

    return result
