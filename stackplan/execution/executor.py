"""Plan executor.

Drives a Deployment through a provisioning backend:

* operations in the same parallel group run concurrently (bounded by
  ``max_concurrency``); a group starts only after the previous one finished,
  so operations along any dependency edge are serialized;
* a failed operation skips every transitive dependent, which is reported as
  DependencyFailedError and never reaches the backend;
* deletions run one at a time after all create/update groups, and stop at
  the first failed delete.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from stackplan.execution.backend import ProvisioningBackend
from stackplan.models.plan import (
    DeploymentStatus,
    ExecutionReport,
    OperationResult,
    OperationStatus,
    ProvisionOperation,
)
from stackplan.observability.logging import deployment_context
from stackplan.observability.metrics import operations_total
from stackplan.planner.deployment import Deployment

_log = structlog.get_logger(component="execution.executor")


class PlanExecutor:
    """Executes a deployment's plan against *backend*."""

    def __init__(self, backend: ProvisioningBackend, max_concurrency: int = 4) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._backend = backend
        self._max_concurrency = max_concurrency

    async def execute(self, deployment: Deployment) -> ExecutionReport:
        """Plan (if still pending), provision, and return the terminal report."""
        if deployment.status is DeploymentStatus.PENDING:
            deployment.build_plan()
        deployment.begin()
        plan = deployment.plan
        assert plan is not None

        with deployment_context(plan.topology, plan.fingerprint):
            _log.info(
                "deployment_started",
                backend=self._backend.backend_name,
                operations=len(plan.operations),
                groups=len(plan.groups),
            )

            semaphore = asyncio.Semaphore(self._max_concurrency)
            for depth, group in enumerate(plan.groups):
                runnable = [plan.operation_for(node_id) for node_id in group if not deployment.is_blocked(node_id)]
                if not runnable:
                    continue
                _log.debug("group_started", depth=depth, operations=len(runnable))
                results = await asyncio.gather(*(self._run(deployment, op, semaphore) for op in runnable))
                for result in results:
                    deployment.record(result)

            for op in plan.deletions:
                if deployment.is_blocked(op.node_id):
                    continue
                deployment.record(await self._run(deployment, op, semaphore))

            return deployment.finish()

    async def _run(
        self,
        deployment: Deployment,
        operation: ProvisionOperation,
        semaphore: asyncio.Semaphore,
    ) -> OperationResult:
        """Provision one operation; exceptions become a failed result."""
        async with semaphore:
            t_start = time.monotonic()
            try:
                resolved = deployment.resolve(operation)
                result = await self._backend.provision(resolved)
            except Exception as exc:  # noqa: BLE001
                _log.error(
                    "operation_raised",
                    node_id=operation.node_id,
                    operation=operation.operation.value,
                    error=str(exc),
                )
                result = OperationResult(
                    node_id=operation.node_id,
                    status=OperationStatus.FAILED,
                    error=str(exc),
                    duration_ms=(time.monotonic() - t_start) * 1000.0,
                )

        operations_total.labels(operation=operation.operation.value, status=result.status.value).inc()
        if result.succeeded:
            _log.info(
                "operation_succeeded",
                node_id=operation.node_id,
                kind=operation.kind.value,
                operation=operation.operation.value,
                duration_ms=round(result.duration_ms, 3),
            )
        else:
            _log.warning(
                "operation_failed",
                node_id=operation.node_id,
                kind=operation.kind.value,
                operation=operation.operation.value,
                error=result.error,
            )
        return result

