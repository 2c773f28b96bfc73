"""
Verify use case — run each module's validate() without installing.

With no names, verifies every module the state file records as in
place, or every module in the registry when there is no record yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import LifecycleRegistry
from provisioner.core.config.loader import ConfigError
from provisioner.core.engine.orchestrator import Orchestrator
from provisioner.core.engine.reporter import RunReport
from provisioner.core.errors import ResolutionError
from provisioner.core.persistence.state_file import load_state
from provisioner.core.use_cases.run import ERROR_CONFIG, ERROR_RESOLUTION, collect_request
from provisioner.core.use_cases.workspace import Workspace, open_workspace, record_report


@dataclass
class VerifyResult:
    report: RunReport | None = None
    modules: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error_kind == ERROR_RESOLUTION:
            return 2
        if self.error:
            return 1
        return self.report.exit_code if self.report else 0

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "error_kind": self.error_kind}
        return {
            "modules": list(self.modules),
            "report": self.report.to_dict() if self.report else None,
        }


def _default_targets(workspace: Workspace) -> list[str]:
    recorded = load_state(workspace.state_file).installed_modules()
    if recorded:
        return recorded
    return [n for n in workspace.registry.names() if workspace.registry.contains(n)]


def verify_modules(
    modules: list[str] | None = None,
    preset: str | None = None,
    mock_mode: bool = False,
    config_path: Path | None = None,
    lifecycles: LifecycleRegistry | None = None,
    start_dir: Path | None = None,
) -> VerifyResult:
    """Validate modules in place."""
    result = VerifyResult()

    try:
        workspace = open_workspace(config_path, start_dir)
        targets = collect_request(workspace, modules, preset)
    except ConfigError as e:
        result.error = str(e)
        result.error_kind = ERROR_CONFIG
        return result

    if not targets:
        targets = _default_targets(workspace)
    result.modules = targets

    if lifecycles is None:
        lifecycles = LifecycleRegistry(mock_mode=mock_mode, cwd=workspace.root)

    try:
        report = Orchestrator(workspace.registry, lifecycles).verify(targets)
    except ResolutionError as e:
        result.error = str(e)
        result.error_kind = ERROR_RESOLUTION
        return result

    result.report = report
    record_report(workspace, report, targets)
    return result
