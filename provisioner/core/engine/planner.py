"""
Planner — turns a module request into an ordered ExecutionPlan.

Flow:
    requested names → validate + resolve → closure (or strict check)
                    → graph → topological order

Every error here is a ResolutionError and is raised before anything
executes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from provisioner.core.engine.closure import expand, handle_missing_dependency
from provisioner.core.engine.graph import DependencyGraph, build_graph
from provisioner.core.engine.sorter import topological_sort
from provisioner.core.errors import UnresolvedDependency
from provisioner.core.models.config import MissingDependencyPolicy
from provisioner.core.registry.registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """Options for a forward run.

    ``only`` replaces whatever list the caller requested (an explicit
    module list instead of a preset).
    """

    dry_run: bool = False
    only: list[str] | None = None
    auto_include: bool = True
    missing_dependency: MissingDependencyPolicy = MissingDependencyPolicy.WARN

    def effective_request(self, requested: Iterable[str]) -> list[str]:
        if self.only:
            return list(self.only)
        return list(requested)


@dataclass
class ExecutionPlan:
    """A resolved, ordered set of modules to drive."""

    order: list[str] = field(default_factory=list)
    requested: list[str] = field(default_factory=list)
    auto_included: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    graph: DependencyGraph = field(default_factory=DependencyGraph)

    @property
    def total(self) -> int:
        return len(self.order)

    def to_dict(self) -> dict:
        return {
            "order": list(self.order),
            "requested": list(self.requested),
            "auto_included": list(self.auto_included),
            "missing": list(self.missing),
            "graph": self.graph.to_dict(),
        }


def _check_strict(
    requested: list[str],
    registry: ModuleRegistry,
    policy: MissingDependencyPolicy,
) -> list[str]:
    """Without auto-include, every known dependency must be requested too.

    ``requested`` holds declared names. Returns the unknown dependencies
    tolerated by the policy.
    """
    wanted = set(requested)
    missing: list[str] = []
    for name in requested:
        for dep in registry.resolve(name).dependencies:
            if not registry.contains(dep):
                handle_missing_dependency(dep, name, policy)
                if dep not in missing:
                    missing.append(dep)
                continue
            if registry.canonical(dep) not in wanted:
                raise UnresolvedDependency(name, dep)
    return missing


def build_plan(
    requested: Iterable[str],
    registry: ModuleRegistry,
    options: RunOptions | None = None,
) -> ExecutionPlan:
    """Resolve a request into an ExecutionPlan.

    Args:
        requested: Module names, as the user typed them.
        registry: Module registry to resolve against.
        options: Run options (``only``, ``auto_include``, policy).

    Returns:
        ExecutionPlan keyed by declared module names, whose ``order``
        puts every dependency first.

    Raises:
        InvalidModuleName, ModuleNotFound, UnresolvedDependency,
        CircularDependency: The request cannot be planned.
    """
    options = options or RunOptions()

    names: list[str] = []
    for name in options.effective_request(requested):
        canonical = registry.canonical(name)
        if canonical not in names:
            names.append(canonical)

    if options.auto_include:
        closure = expand(names, registry, options.missing_dependency)
        working = list(closure.modules)
        added = list(closure.added)
        missing = closure.missing_names
    else:
        missing = _check_strict(names, registry, options.missing_dependency)
        working = list(names)
        added = []

    graph = build_graph(working, registry)
    order = topological_sort(graph)

    logger.debug("Plan order: %s", " → ".join(order) if order else "(empty)")
    return ExecutionPlan(
        order=order,
        requested=names,
        auto_included=added,
        missing=missing,
        graph=graph,
    )
