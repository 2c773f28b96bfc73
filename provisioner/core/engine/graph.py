"""
Dependency graph — an explicit value built per request.

Edges point from a dependency to the module that needs it
(``dependency -> dependent``). Only names inside the working set become
nodes; dependencies outside it are the closure step's business.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from provisioner.core.models.descriptor import ModuleDescriptor
from provisioner.core.registry.registry import ModuleRegistry


@dataclass(frozen=True)
class DependencyGraph:
    """Immutable dependency graph.

    ``nodes`` keeps the order names were added; ``edges`` keeps the order
    they were declared. Both orders are what make sorting reproducible.
    """

    nodes: tuple[str, ...] = ()
    edges: tuple[tuple[str, str], ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def dependents(self, node: str) -> list[str]:
        """Nodes that depend on ``node``, in declaration order."""
        return [dst for src, dst in self.edges if src == node]

    def dependencies(self, node: str) -> list[str]:
        """Nodes ``node`` depends on, in declaration order."""
        return [src for src, dst in self.edges if dst == node]

    def adjacency(self) -> dict[str, list[str]]:
        """dependency → dependents, for every node."""
        adj: dict[str, list[str]] = {n: [] for n in self.nodes}
        for src, dst in self.edges:
            adj[src].append(dst)
        return adj

    def in_degrees(self) -> dict[str, int]:
        """Number of incoming dependency edges per node."""
        degrees = {n: 0 for n in self.nodes}
        for _src, dst in self.edges:
            degrees[dst] += 1
        return degrees

    def to_dict(self) -> dict:
        return {
            "nodes": list(self.nodes),
            "edges": [{"from": src, "to": dst} for src, dst in self.edges],
        }


def build_graph(module_names: Iterable[str], registry: ModuleRegistry) -> DependencyGraph:
    """Build the graph for a working set of module names.

    Nodes are declared module names: aliases of one module (``01-python``,
    ``python``) collapse into a single node. For each node, every declared
    dependency that is also in the working set contributes an edge
    ``dependency -> node``. Other dependencies are ignored here.

    Args:
        module_names: The working set. Order is kept (first occurrence wins)
            and becomes the node order.
        registry: Where descriptors are resolved.

    Raises:
        InvalidModuleName, ModuleNotFound: If a name in the set does not
            resolve.
    """
    nodes: list[str] = []
    for name in module_names:
        canonical = registry.canonical(name)
        if canonical not in nodes:
            nodes.append(canonical)
    members = set(nodes)

    edges: list[tuple[str, str]] = []
    for name in nodes:
        for dep in registry.resolve(name).dependencies:
            if not registry.contains(dep):
                continue
            edge = (registry.canonical(dep), name)
            if edge[0] in members and edge not in edges:
                edges.append(edge)

    return DependencyGraph(nodes=tuple(nodes), edges=tuple(edges))


def graph_from_descriptors(descriptors: Iterable[ModuleDescriptor]) -> DependencyGraph:
    """Graph over declared names, for whole-registry checks.

    Unlike build_graph() this does not resolve through the registry:
    nodes are declared names and edges come straight from the
    descriptors.
    """
    descriptors = list(descriptors)
    nodes: list[str] = []
    for d in descriptors:
        if d.name not in nodes:
            nodes.append(d.name)
    members = set(nodes)
    edges = [
        (dep, d.name)
        for d in descriptors
        for dep in d.dependencies
        if dep in members
    ]
    return DependencyGraph(nodes=tuple(nodes), edges=tuple(edges))
