"""Plan, execution result and deployment-state data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from stackplan.errors import DependencyFailedError
from stackplan.models.kinds import ResourceKind
from stackplan.models.resources import OutputToken, iter_tokens


class OperationType(StrEnum):
    """What the provisioning backend is asked to do with a node."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class OperationStatus(StrEnum):
    """Terminal status of one provisioning operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DeploymentStatus(StrEnum):
    """Deployment lifecycle: pending -> planned -> provisioning -> done | failed."""

    PENDING = "pending"
    PLANNED = "planned"
    PROVISIONING = "provisioning"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ProvisionOperation:
    """One step of a plan.

    ``resolved_properties`` has every Reference replaced either by a concrete
    value or by an OutputToken the executor fills in once the referenced node
    has been provisioned.
    """

    operation: OperationType
    node_id: str
    kind: ResourceKind
    resolved_properties: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    depth: int = 0

    def pending_tokens(self) -> list[OutputToken]:
        """Tokens still waiting for an upstream output."""
        return list(iter_tokens(self.resolved_properties))


@dataclass
class Plan:
    """Ordered provisioning operations for one topology."""

    topology: str
    operations: list[ProvisionOperation] = field(default_factory=list)
    groups: list[list[str]] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)
    fingerprint: str = ""

    @property
    def order(self) -> list[str]:
        return [op.node_id for op in self.operations]

    @property
    def deletions(self) -> list[ProvisionOperation]:
        return [op for op in self.operations if op.operation is OperationType.DELETE]

    def operation_for(self, node_id: str) -> ProvisionOperation:
        for op in self.operations:
            if op.node_id == node_id:
                return op
        raise KeyError(node_id)


@dataclass(frozen=True)
class OperationResult:
    """Outcome reported by the provisioning backend for one operation."""

    node_id: str
    status: OperationStatus
    outputs: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is OperationStatus.SUCCEEDED


@dataclass(frozen=True)
class DeployedResource:
    """What a previous deployment recorded about one node."""

    kind: ResourceKind
    outputs: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeploymentState:
    """Resources known to exist, keyed by node id in provisioning order."""

    resources: dict[str, DeployedResource] = field(default_factory=dict)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.resources

    def __len__(self) -> int:
        return len(self.resources)


@dataclass
class ExecutionReport:
    """Terminal summary of a deployment run."""

    status: DeploymentStatus
    results: dict[str, OperationResult] = field(default_factory=dict)
    skipped: dict[str, DependencyFailedError] = field(default_factory=dict)
    outputs: dict[str, Any] = field(default_factory=dict)
    state: DeploymentState = field(default_factory=DeploymentState)

    @property
    def succeeded(self) -> list[str]:
        return [node_id for node_id, result in self.results.items() if result.succeeded]

    @property
    def failed(self) -> list[str]:
        return [node_id for node_id, result in self.results.items() if not result.succeeded]
