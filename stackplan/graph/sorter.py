"""Cycle detection and deterministic topological ordering.

Depth-first traversal with three-colour marking.  Roots are taken in
declaration order and each node's dependencies are visited in declaration
order, so the same input always yields the same order.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from stackplan.errors import CyclicDependencyError
from stackplan.graph.dependency_graph import DependencyGraph

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


def topological_sort(graph: DependencyGraph) -> list[str]:
    """Return node ids with every dependency before its dependents.

    Raises CyclicDependencyError with the full cycle path when an edge leads
    back to a node still on the traversal stack.
    """
    marks = dict.fromkeys(graph.node_ids, _UNVISITED)
    order: list[str] = []

    for root in graph.node_ids:
        if marks[root] != _UNVISITED:
            continue

        # Iterative DFS: path mirrors the stack of in-progress nodes.
        marks[root] = _IN_PROGRESS
        path = [root]
        stack: list[Iterator[str]] = [iter(graph.dependencies_of(root))]

        while stack:
            dependency = next(stack[-1], None)
            if dependency is None:
                stack.pop()
                finished = path.pop()
                marks[finished] = _DONE
                order.append(finished)
                continue

            mark = marks[dependency]
            if mark == _IN_PROGRESS:
                start = path.index(dependency)
                raise CyclicDependencyError([*path[start:], dependency])
            if mark == _UNVISITED:
                marks[dependency] = _IN_PROGRESS
                path.append(dependency)
                stack.append(iter(graph.dependencies_of(dependency)))

    return order


def node_depths(graph: DependencyGraph, order: Sequence[str]) -> dict[str, int]:
    """Depth of each node: 0 without dependencies, else 1 + deepest dependency.

    *order* must be a valid topological order of *graph*.
    """
    depths: dict[str, int] = {}
    for node_id in order:
        dependencies = graph.dependencies_of(node_id)
        depths[node_id] = 1 + max(depths[dep] for dep in dependencies) if dependencies else 0
    return depths


def parallel_groups(graph: DependencyGraph, order: Sequence[str] | None = None) -> list[list[str]]:
    """Group nodes by depth.

    Nodes within one group never depend on each other and can be provisioned
    concurrently; group *n* only depends on groups before it.
    """
    if order is None:
        order = topological_sort(graph)
    depths = node_depths(graph, order)
    groups: list[list[str]] = [[] for _ in range(max(depths.values(), default=-1) + 1)]
    for node_id in order:
        groups[depths[node_id]].append(node_id)
    return groups
