"""
Module queries — list, show, dependency tree, presets.

Read-only views over the registry, returned as plain dicts for the CLI.
"""

from __future__ import annotations

from provisioner.core.engine.closure import expand
from provisioner.core.engine.graph import build_graph
from provisioner.core.engine.sorter import topological_sort
from provisioner.core.use_cases.workspace import Workspace


def list_modules(workspace: Workspace) -> list[dict]:
    return [
        {
            "name": e.descriptor.name,
            "version": e.descriptor.version,
            "description": e.descriptor.description,
            "dependencies": list(e.descriptor.dependencies),
            "script": str(e.path) if e.path else None,
        }
        for e in workspace.registry.entries
    ]


def show_module(workspace: Workspace, name: str) -> dict:
    """Descriptor plus reverse dependencies.

    Raises:
        ResolutionError: Unknown or invalid name.
    """
    entry = workspace.registry.resolve_entry(name)
    d = entry.descriptor
    dependents = [
        e.descriptor.name
        for e in workspace.registry.entries
        if e.descriptor.depends_on(d.name)
    ]
    return {
        "name": d.name,
        "version": d.version,
        "description": d.description,
        "dependencies": list(d.dependencies),
        "dependents": dependents,
        "script": str(entry.path) if entry.path else None,
    }


def module_dependencies(workspace: Workspace, name: str) -> dict:
    """Transitive dependencies of ``name`` in install order.

    Raises:
        ResolutionError: Unknown name, or a cycle below it.
    """
    descriptor = workspace.registry.resolve(name)
    closure = expand([name], workspace.registry, workspace.config.policy.missing_dependency)
    order = topological_sort(build_graph(closure.modules, workspace.registry))
    return {
        "name": descriptor.name,
        "direct": list(descriptor.dependencies),
        "install_order": order,
        "missing": closure.missing_names,
    }


def list_presets(workspace: Workspace) -> dict[str, list[str]]:
    return workspace.config.all_presets()
