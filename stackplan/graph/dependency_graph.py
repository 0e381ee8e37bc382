"""In-memory dependency graph over declared resource nodes.

The graph owns its nodes.  Edges are never stored independently: they are
derived from References in node properties (plus explicit ``depends_on``)
and cached.  The cache is dropped whenever the node set or a property bag is
changed through the graph, and rebuilt when a node handed out by ``get`` or
iteration has had its references changed in place.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

import structlog

from stackplan.errors import DuplicateIdError, MissingPropertyError, UnresolvedReferenceError
from stackplan.models.resources import Reference, ResourceNode

_log = structlog.get_logger(component="graph.dependency_graph")


class DependencyGraph:
    """Directed graph of ResourceNodes; an edge (a, b) means "a depends on b".

    Iteration, ``node_ids`` and every query return nodes in declaration
    (registration) order so downstream output is deterministic.
    """

    def __init__(self, nodes: Iterable[ResourceNode] = ()) -> None:
        self._nodes: dict[str, ResourceNode] = {}
        self._edges: list[tuple[str, str]] | None = None
        self._signature: tuple[tuple[Any, ...], ...] = ()
        self._dependencies: dict[str, list[str]] = {}
        self._dependents: dict[str, list[str]] = {}
        for node in nodes:
            self.add_node(node)

    # ------------------------------------------------------------------
    # Node set
    # ------------------------------------------------------------------

    def add_node(self, node: ResourceNode) -> None:
        """Register *node*.  On a duplicate id the graph is left unchanged."""
        if node.id in self._nodes:
            raise DuplicateIdError(node.id)
        self._nodes[node.id] = node
        self._invalidate()

    def remove_node(self, node_id: str) -> ResourceNode:
        """Drop *node_id* from the graph and return it."""
        node = self._nodes.pop(node_id)
        self._invalidate()
        return node

    def update_properties(self, node_id: str, **changes: Any) -> ResourceNode:
        """Merge *changes* into a node's properties."""
        node = self._nodes[node_id]
        node.properties.update(changes)
        self._invalidate()
        return node

    def get(self, node_id: str) -> ResourceNode | None:
        return self._nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def node_ids(self) -> list[str]:
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self.resolve_edges())

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def resolve_edges(self) -> list[tuple[str, str]]:
        """Return the edge set ``[(from, to), ...]`` derived from node properties.

        Raises UnresolvedReferenceError for a reference to a node that does not
        exist, or to an output the target kind does not produce.
        """
        if self._edges is None or self._signature != self._reference_signature():
            self._build_edges()
        assert self._edges is not None
        return list(self._edges)

    def output_name(self, ref: Reference) -> str:
        """Name of the output *ref* points at, defaulting to the primary output."""
        if ref.output is not None:
            return ref.output
        return self._nodes[ref.node_id].schema.primary_output

    def dependencies_of(self, node_id: str) -> list[str]:
        """Direct dependencies of *node_id* in declaration order."""
        self.resolve_edges()
        return list(self._dependencies[node_id])

    def dependents_of(self, node_id: str) -> list[str]:
        """Nodes that depend directly on *node_id*, in declaration order."""
        self.resolve_edges()
        return list(self._dependents[node_id])

    def transitive_dependents(self, node_id: str) -> list[str]:
        """Every node that depends on *node_id* directly or through others."""
        self.resolve_edges()
        seen: set[str] = set()
        frontier = [node_id]
        while frontier:
            current = frontier.pop()
            for dependent in self._dependents[current]:
                if dependent not in seen:
                    seen.add(dependent)
                    frontier.append(dependent)
        return [nid for nid in self._nodes if nid in seen]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check every node carries the properties its kind requires."""
        for node in self._nodes.values():
            missing = [
                name for name in node.schema.required if node.properties.get(name) in (None, "", [], {})
            ]
            if missing:
                raise MissingPropertyError(node.id, node.kind.value, missing)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _invalidate(self) -> None:
        self._edges = None
        self._signature = ()
        self._dependencies = {}
        self._dependents = {}

    def _build_edges(self) -> None:
        position = {node_id: index for index, node_id in enumerate(self._nodes)}
        dependencies: dict[str, list[str]] = {}

        for node in self._nodes.values():
            targets: set[str] = set()
            for ref in node.references():
                self._check_reference(node.id, ref)
                targets.add(ref.node_id)
            for target in node.depends_on:
                if target not in self._nodes:
                    raise UnresolvedReferenceError(node.id, target, reason="no such resource")
                targets.add(target)
            dependencies[node.id] = sorted(targets, key=position.__getitem__)

        dependents: dict[str, list[str]] = {node_id: [] for node_id in self._nodes}
        edges: list[tuple[str, str]] = []
        for node_id, targets in dependencies.items():
            for target in targets:
                edges.append((node_id, target))
                dependents[target].append(node_id)

        self._dependencies = dependencies
        self._dependents = dependents
        self._edges = edges
        self._signature = self._reference_signature()
        _log.debug("edges_resolved", nodes=len(self._nodes), edges=len(edges))

    def _reference_signature(self) -> tuple[tuple[Any, ...], ...]:
        return tuple((node.id, tuple(node.references()), node.depends_on) for node in self._nodes.values())

    def _check_reference(self, source: str, ref: Reference) -> None:
        target = self._nodes.get(ref.node_id)
        if target is None:
            raise UnresolvedReferenceError(source, ref.node_id, ref.output, reason="no such resource")
        if ref.output is not None and ref.output not in target.schema.outputs:
            raise UnresolvedReferenceError(
                source,
                ref.node_id,
                ref.output,
                reason=f"{target.kind.value} does not produce output '{ref.output}'",
            )
