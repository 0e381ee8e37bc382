"""Plan emitter: sorted nodes in, provisioning operations out."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from stackplan.errors import UnresolvedReferenceError
from stackplan.graph.dependency_graph import DependencyGraph
from stackplan.models.plan import DeploymentState, OperationType, ProvisionOperation
from stackplan.models.resources import OutputToken, Reference, ResourceNode, substitute

_log = structlog.get_logger(component="planner.emitter")


class PlanEmitter:
    """Walks a topological order and emits one ProvisionOperation per node.

    Outputs are tracked incrementally: a node's outputs become available to
    later nodes only once its own operation has been emitted.  Outputs recorded
    on the node are substituted as values; the rest become OutputTokens.  Every
    emitted node is provisioned again, so outputs from the previous deployment
    state are never substituted: the executor fills the tokens from this run.
    """

    def __init__(self, graph: DependencyGraph, previous: DeploymentState | None = None) -> None:
        self._graph = graph
        self._previous = previous or DeploymentState()
        self._available: dict[str, dict[str, Any]] = {}

    def emit(self, order: Sequence[str], depths: Mapping[str, int] | None = None) -> list[ProvisionOperation]:
        """Emit create/update operations for *order*, then deletions."""
        self._available = {}
        operations: list[ProvisionOperation] = []

        for node_id in order:
            node = self._graph.get(node_id)
            if node is None:
                raise UnresolvedReferenceError("<plan>", node_id, reason="not in the graph")

            resolved = substitute(node.properties, Reference, lambda ref, src=node_id: self._lookup(src, ref))
            operation = OperationType.UPDATE if node_id in self._previous else OperationType.CREATE
            operations.append(
                ProvisionOperation(
                    operation=operation,
                    node_id=node_id,
                    kind=node.kind,
                    resolved_properties=resolved,
                    depends_on=tuple(self._graph.dependencies_of(node_id)),
                    depth=depths.get(node_id, 0) if depths else 0,
                )
            )
            self._track(node)

        operations.extend(self._deletions(set(order)))
        _log.debug("operations_emitted", count=len(operations))
        return operations

    def resolve_value(self, source: str, value: Any) -> Any:
        """Resolve References in *value* against the outputs tracked so far."""
        return substitute(value, Reference, lambda ref: self._lookup(source, ref))

    def _lookup(self, source: str, ref: Reference) -> Any:
        available = self._available.get(ref.node_id)
        if available is None:
            raise UnresolvedReferenceError(
                source,
                ref.node_id,
                ref.output,
                reason="referenced before its operation was emitted",
            )
        output = self._graph.output_name(ref)
        if output not in available:
            raise UnresolvedReferenceError(source, ref.node_id, output, reason="output not produced")
        return available[output]

    def _track(self, node: ResourceNode) -> None:
        self._available[node.id] = {
            name: node.outputs[name] if name in node.outputs else OutputToken(node.id, name)
            for name in node.schema.outputs
        }

    def _deletions(self, declared: set[str]) -> list[ProvisionOperation]:
        # Reverse of recorded order: dependents were provisioned after their
        # dependencies, so they go first.
        stale = [node_id for node_id in self._previous.resources if node_id not in declared]
        return [
            ProvisionOperation(
                operation=OperationType.DELETE,
                node_id=node_id,
                kind=self._previous.resources[node_id].kind,
                resolved_properties=dict(self._previous.resources[node_id].outputs),
            )
            for node_id in reversed(stale)
        ]
