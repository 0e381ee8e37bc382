"""Deployment state machine.

    pending --build_plan()--> planned --begin()--> provisioning --finish()--> done | failed

``planned`` is reached through the builder/sorter/emitter pipeline.  While
provisioning, the executor reports each backend result through ``record()``;
a failure marks every transitive dependent as skipped so it is never handed
to the backend.
"""

from __future__ import annotations

from typing import Any

import structlog

from stackplan.errors import DependencyFailedError, DeploymentStateError, UnresolvedReferenceError
from stackplan.graph.dependency_graph import DependencyGraph
from stackplan.models.plan import (
    DeployedResource,
    DeploymentState,
    DeploymentStatus,
    ExecutionReport,
    OperationResult,
    OperationType,
    Plan,
    ProvisionOperation,
)
from stackplan.models.resources import OutputToken, Topology, iter_tokens, substitute
from stackplan.observability.metrics import dependents_skipped_total
from stackplan.planner.pipeline import compile_topology

_log = structlog.get_logger(component="planner.deployment")

_TRANSITIONS: dict[DeploymentStatus, frozenset[DeploymentStatus]] = {
    DeploymentStatus.PENDING: frozenset({DeploymentStatus.PLANNED}),
    DeploymentStatus.PLANNED: frozenset({DeploymentStatus.PROVISIONING}),
    DeploymentStatus.PROVISIONING: frozenset({DeploymentStatus.DONE, DeploymentStatus.FAILED}),
    DeploymentStatus.DONE: frozenset(),
    DeploymentStatus.FAILED: frozenset(),
}


class Deployment:
    """One deployment attempt of a topology against an optional previous state."""

    def __init__(self, topology: Topology, previous: DeploymentState | None = None) -> None:
        self.topology = topology
        self.previous = previous or DeploymentState()
        self.status = DeploymentStatus.PENDING
        self.graph: DependencyGraph | None = None
        self.plan: Plan | None = None
        self._results: dict[str, OperationResult] = {}
        self._skipped: dict[str, DependencyFailedError] = {}
        self._outputs: dict[str, dict[str, Any]] = {
            node_id: dict(resource.outputs) for node_id, resource in self.previous.resources.items()
        }

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def build_plan(self) -> Plan:
        """Run the planning pipeline.  Planning errors leave the deployment pending."""
        self._require(DeploymentStatus.PLANNED)
        self.graph, self.plan = compile_topology(self.topology, self.previous)
        self._move(DeploymentStatus.PLANNED)
        return self.plan

    def begin(self) -> None:
        self._move(DeploymentStatus.PROVISIONING)

    def finish(self) -> ExecutionReport:
        """Close the deployment and summarise it."""
        failed = any(not result.succeeded for result in self._results.values())
        self._move(DeploymentStatus.FAILED if failed or self._skipped else DeploymentStatus.DONE)
        report = ExecutionReport(
            status=self.status,
            results=dict(self._results),
            skipped=dict(self._skipped),
            outputs=self._resolved_stack_outputs(),
            state=self._next_state(),
        )
        _log.info(
            "deployment_finished",
            topology=self.topology.name,
            status=self.status.value,
            succeeded=len(report.succeeded),
            failed=len(report.failed),
            skipped=len(report.skipped),
        )
        return report

    # ------------------------------------------------------------------
    # Provisioning bookkeeping
    # ------------------------------------------------------------------

    def is_blocked(self, node_id: str) -> bool:
        """True when a prerequisite of *node_id* failed."""
        return node_id in self._skipped

    def resolve(self, operation: ProvisionOperation) -> ProvisionOperation:
        """Replace OutputTokens in *operation* with outputs reported so far."""
        if not operation.pending_tokens():
            return operation
        properties = substitute(
            operation.resolved_properties,
            OutputToken,
            lambda token: self._output_value(operation.node_id, token),
        )
        return ProvisionOperation(
            operation=operation.operation,
            node_id=operation.node_id,
            kind=operation.kind,
            resolved_properties=properties,
            depends_on=operation.depends_on,
            depth=operation.depth,
        )

    def record(self, result: OperationResult) -> None:
        """Store a backend result; on failure skip every transitive dependent."""
        if self.status is not DeploymentStatus.PROVISIONING:
            raise DeploymentStateError(self.status.value, "record")
        self._results[result.node_id] = result
        if result.succeeded:
            self._outputs[result.node_id] = dict(result.outputs)
            return

        assert self.graph is not None
        if result.node_id not in self.graph:
            self._hold_deletions(result.node_id)
            return
        for dependent in self.graph.transitive_dependents(result.node_id):
            if dependent in self._results or dependent in self._skipped:
                continue
            self._skipped[dependent] = DependencyFailedError(dependent, result.node_id)
            dependents_skipped_total.inc()
            _log.warning("dependent_skipped", node_id=dependent, failed_dependency=result.node_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, target: DeploymentStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise DeploymentStateError(self.status.value, target.value)

    def _move(self, target: DeploymentStatus) -> None:
        self._require(target)
        _log.debug("deployment_transition", source=self.status.value, target=target.value)
        self.status = target

    def _hold_deletions(self, failed: str) -> None:
        # Stale resources carry no dependency record, so any later delete may
        # remove something the failed one still uses.
        assert self.plan is not None
        pending = [op.node_id for op in self.plan.deletions if op.node_id not in self._results]
        for node_id in pending:
            self._skipped[node_id] = DependencyFailedError(node_id, failed)
            _log.warning("deletion_held", node_id=node_id, failed_deletion=failed)

    def _output_value(self, source: str, token: OutputToken) -> Any:
        outputs = self._outputs.get(token.node_id)
        if outputs is None or token.output not in outputs:
            raise UnresolvedReferenceError(source, token.node_id, token.output, reason="output not yet produced")
        return outputs[token.output]

    def _resolved_stack_outputs(self) -> dict[str, Any]:
        assert self.plan is not None
        resolved: dict[str, Any] = {}
        for name, value in self.plan.outputs.items():
            if all(token.output in self._outputs.get(token.node_id, {}) for token in iter_tokens(value)):
                resolved[name] = substitute(value, OutputToken, lambda token: self._outputs[token.node_id][token.output])
        return resolved

    def _next_state(self) -> DeploymentState:
        assert self.plan is not None
        resources: dict[str, DeployedResource] = {}
        for op in self.plan.operations:
            if op.operation is OperationType.DELETE:
                continue
            result = self._results.get(op.node_id)
            if result is not None and result.succeeded:
                resources[op.node_id] = DeployedResource(
                    kind=op.kind,
                    outputs=dict(result.outputs),
                    properties=self.resolve(op).resolved_properties,
                )
            elif op.node_id in self.previous:
                resources[op.node_id] = self.previous.resources[op.node_id]

        for node_id, deployed in self.previous.resources.items():
            if node_id in resources:
                continue
            result = self._results.get(node_id)
            deleted = result is not None and result.succeeded
            if not deleted:
                resources[node_id] = deployed
        return DeploymentState(resources=resources)
