"""
Config check use case — validate provision.yml and the module directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.loader import ConfigError
from provisioner.core.engine.graph import graph_from_descriptors
from provisioner.core.engine.sorter import topological_sort
from provisioner.core.errors import CircularDependency
from provisioner.core.use_cases.workspace import Workspace, open_workspace


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    workspace: Workspace | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        ws = self.workspace
        return {
            "valid": self.valid,
            "config_path": str(ws.config_path) if ws and ws.config_path else None,
            "modules_dir": str(ws.modules_dir) if ws else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "machine": ws.config.name if ws else None,
            "module_count": len(ws.registry) if ws else 0,
            "preset_count": len(ws.config.all_presets()) if ws else 0,
        }


def check_config(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> ConfigCheckResult:
    """Validate configuration and modules, and report issues."""
    result = ConfigCheckResult()

    try:
        workspace = open_workspace(config_path, start_dir)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.workspace = workspace

    if workspace.config_path is None:
        result.warnings.append("No provision.yml found; using defaults.")

    # Modules directory + descriptors
    if not workspace.modules_dir.is_dir():
        result.errors.append(f"Modules directory not found: {workspace.modules_dir}")
    else:
        result.errors.extend(workspace.registry.load_errors)
        if len(workspace.registry) == 0:
            result.warnings.append("No module scripts found. There is nothing to provision.")

    registry = workspace.registry
    descriptors = [e.descriptor for e in registry.entries]

    # Duplicate declared names
    names = [d.name for d in descriptors]
    dupes = {n for n in names if names.count(n) > 1}
    if dupes:
        result.warnings.append(f"Duplicate module names: {', '.join(sorted(dupes))}")

    # Dependencies nothing provides
    for d in descriptors:
        for dep in d.dependencies:
            if not registry.contains(dep):
                result.warnings.append(f"Module '{d.name}' depends on unknown module '{dep}'")

    # Presets naming unknown modules (configured ones are errors)
    for preset, members in workspace.config.all_presets().items():
        unknown = [m for m in members if not registry.contains(m)]
        if not unknown:
            continue
        msg = f"Preset '{preset}' names unknown modules: {', '.join(unknown)}"
        if preset in workspace.config.presets:
            result.errors.append(msg)
        elif len(registry) > 0:
            result.warnings.append(msg)

    # Cycles anywhere in the registry
    try:
        topological_sort(graph_from_descriptors(descriptors))
    except CircularDependency as e:
        result.errors.append(str(e))

    result.valid = len(result.errors) == 0
    return result
