"""
Status use case — what the registry offers and what the state records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.loader import ConfigError
from provisioner.core.models.state import InstallState
from provisioner.core.persistence.audit import AuditEntry, AuditWriter
from provisioner.core.persistence.state_file import load_state
from provisioner.core.use_cases.workspace import Workspace, open_workspace


@dataclass
class ModuleStatus:
    name: str
    version: str = ""
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    recorded_status: str = ""
    last_run_at: str | None = None


@dataclass
class StatusResult:
    """Aggregated machine status."""

    workspace: Workspace | None = None
    state: InstallState | None = None
    modules: list[ModuleStatus] = field(default_factory=list)
    recent: list[AuditEntry] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        if self.workspace:
            result["machine"] = {
                "name": self.workspace.config.name,
                "root": str(self.workspace.root),
                "modules_dir": str(self.workspace.modules_dir),
                "config_path": (
                    str(self.workspace.config_path) if self.workspace.config_path else None
                ),
            }

        result["modules"] = [
            {
                "name": m.name,
                "version": m.version,
                "description": m.description,
                "dependencies": m.dependencies,
                "status": m.recorded_status or None,
                "last_run_at": m.last_run_at,
            }
            for m in self.modules
        ]

        if self.state:
            result["last_operation"] = self.state.last_operation.model_dump(mode="json")

        result["recent"] = [e.model_dump(mode="json") for e in self.recent]
        return result


def get_status(
    config_path: Path | None = None,
    start_dir: Path | None = None,
    recent: int = 5,
) -> StatusResult:
    """Get the full machine status."""
    result = StatusResult()

    try:
        workspace = open_workspace(config_path, start_dir)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.workspace = workspace
    state = load_state(workspace.state_file)
    result.state = state

    for entry in workspace.registry.entries:
        d = entry.descriptor
        record = state.modules.get(d.name) or state.modules.get(entry.stem)
        result.modules.append(
            ModuleStatus(
                name=d.name,
                version=d.version,
                description=d.description,
                dependencies=list(d.dependencies),
                recorded_status=record.status if record else "",
                last_run_at=record.last_run_at if record else None,
            )
        )

    result.recent = AuditWriter(workspace.audit_file).read_recent(recent)
    return result
