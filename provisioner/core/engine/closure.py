"""
Auto-include — expand a request to its transitive dependency closure.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from provisioner.core.errors import ModuleNotFound
from provisioner.core.models.config import MissingDependencyPolicy
from provisioner.core.registry.registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Closure:
    """Result of expanding a request.

    Names are declared module names, whatever alias was requested.
    ``modules`` lists the requested modules first, then every dependency in
    the order it was discovered. ``added`` is the discovered part alone.
    ``missing`` holds ``(dependency, required_by)`` pairs for dependencies
    nothing in the registry provides (only under the WARN policy).
    """

    modules: tuple[str, ...] = ()
    added: tuple[str, ...] = ()
    missing: tuple[tuple[str, str], ...] = ()

    def names(self) -> frozenset[str]:
        return frozenset(self.modules)

    @property
    def missing_names(self) -> list[str]:
        seen: list[str] = []
        for dep, _by in self.missing:
            if dep not in seen:
                seen.append(dep)
        return seen


def handle_missing_dependency(
    dependency: str,
    required_by: str,
    policy: MissingDependencyPolicy,
) -> None:
    """Apply the missing-dependency policy to one unknown dependency.

    Raises:
        ModuleNotFound: Under MissingDependencyPolicy.FAIL.
    """
    if policy is MissingDependencyPolicy.FAIL:
        raise ModuleNotFound(dependency, required_by=required_by)
    logger.warning(
        "Dependency '%s' of '%s' not found — treating it as satisfied",
        dependency,
        required_by,
    )


def expand(
    requested: Iterable[str],
    registry: ModuleRegistry,
    policy: MissingDependencyPolicy = MissingDependencyPolicy.WARN,
) -> Closure:
    """Breadth-first transitive closure over declared dependencies.

    ``expand(expand(S).modules)`` names the same set as ``expand(S)``.

    Raises:
        InvalidModuleName: A requested name is malformed.
        ModuleNotFound: A requested name is unknown, or a dependency is
            unknown under the FAIL policy.
    """
    modules: list[str] = []
    for name in requested:
        canonical = registry.canonical(name)
        if canonical not in modules:
            modules.append(canonical)

    seen = set(modules)
    added: list[str] = []
    missing: list[tuple[str, str]] = []
    frontier = deque(modules)

    while frontier:
        current = frontier.popleft()
        for dep in registry.resolve(current).dependencies:
            if not registry.contains(dep):
                handle_missing_dependency(dep, current, policy)
                missing.append((dep, current))
                continue
            target = registry.canonical(dep)
            if target in seen:
                continue
            seen.add(target)
            modules.append(target)
            added.append(target)
            frontier.append(target)

    if added:
        logger.info("Auto-included dependencies: %s", ", ".join(added))

    return Closure(modules=tuple(modules), added=tuple(added), missing=tuple(missing))
