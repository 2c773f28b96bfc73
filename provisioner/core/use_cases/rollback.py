"""
Rollback use case — explicitly reverse named modules.

Rollback never happens as part of a forward run. A failed rollback is
reported, never escalated: the operation itself always completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import LifecycleRegistry
from provisioner.core.config.loader import ConfigError
from provisioner.core.engine.orchestrator import Orchestrator
from provisioner.core.engine.reporter import RunReport
from provisioner.core.errors import ResolutionError
from provisioner.core.use_cases.run import ERROR_CONFIG, ERROR_RESOLUTION
from provisioner.core.use_cases.workspace import open_workspace, record_report


@dataclass
class RollbackResult:
    report: RunReport | None = None
    modules: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    @property
    def warnings(self) -> list[str]:
        if not self.report:
            return []
        return [r.message for r in self.report.results if r.failed]

    @property
    def exit_code(self) -> int:
        if self.error_kind == ERROR_RESOLUTION:
            return 2
        return 1 if self.error else 0

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "error_kind": self.error_kind}
        return {
            "modules": list(self.modules),
            "warnings": self.warnings,
            "report": self.report.to_dict() if self.report else None,
        }


def rollback_modules(
    modules: list[str],
    mock_mode: bool = False,
    config_path: Path | None = None,
    lifecycles: LifecycleRegistry | None = None,
    start_dir: Path | None = None,
) -> RollbackResult:
    """Roll back ``modules`` in the order given."""
    result = RollbackResult(modules=list(modules))

    try:
        workspace = open_workspace(config_path, start_dir)
    except ConfigError as e:
        result.error = str(e)
        result.error_kind = ERROR_CONFIG
        return result

    if not modules:
        result.error = "Nothing to roll back: name at least one module."
        result.error_kind = ERROR_CONFIG
        return result

    if lifecycles is None:
        lifecycles = LifecycleRegistry(mock_mode=mock_mode, cwd=workspace.root)

    try:
        report = Orchestrator(workspace.registry, lifecycles).rollback(modules)
    except ResolutionError as e:
        result.error = str(e)
        result.error_kind = ERROR_RESOLUTION
        return result

    result.report = report
    record_report(workspace, report, list(modules))
    return result
