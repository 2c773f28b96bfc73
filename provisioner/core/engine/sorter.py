"""
Topological sort (Kahn's algorithm) with cycle reporting.

Pure functions — no I/O, no registry access.
"""

from __future__ import annotations

from collections import deque

from provisioner.core.engine.graph import DependencyGraph
from provisioner.core.errors import CircularDependency


def topological_sort(graph: DependencyGraph) -> list[str]:
    """Order nodes so every dependency precedes its dependents.

    Ties are broken deterministically: the queue is seeded with
    zero-in-degree nodes in node order, and dependents are released in
    edge declaration order. The same graph always sorts the same way.

    Raises:
        CircularDependency: If some nodes can never reach in-degree zero.
    """
    in_degree = graph.in_degrees()
    adj = graph.adjacency()

    queue = deque(n for n in graph.nodes if in_degree[n] == 0)
    order: list[str] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for dependent in adj[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) < len(graph.nodes):
        residual = [n for n in graph.nodes if in_degree[n] > 0]
        raise CircularDependency(residual, find_cycle(graph, residual))

    return order


def find_cycle(graph: DependencyGraph, residual: list[str]) -> list[str]:
    """Extract one literal cycle from the nodes Kahn's algorithm left behind.

    Every residual node still has a residual dependency, so walking
    dependencies from any residual node must eventually revisit one.
    The result reads in "depends on" direction and is closed on itself:
    ``["a", "b", "a"]`` means a depends on b and b depends on a.
    """
    if not residual:
        return []
    members = set(residual)

    path: list[str] = []
    position: dict[str, int] = {}
    node = residual[0]
    while node not in position:
        position[node] = len(path)
        path.append(node)
        node = next(d for d in graph.dependencies(node) if d in members)

    cycle = path[position[node]:]
    return cycle + [cycle[0]]


def has_cycle(graph: DependencyGraph) -> bool:
    try:
        topological_sort(graph)
    except CircularDependency:
        return True
    return False
