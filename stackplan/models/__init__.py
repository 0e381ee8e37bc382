"""Core data structures for stackplan."""

from stackplan.models.config import StackPlanConfig
from stackplan.models.kinds import KIND_SCHEMAS, KindSchema, ResourceKind
from stackplan.models.plan import (
    DeployedResource,
    DeploymentState,
    DeploymentStatus,
    ExecutionReport,
    OperationResult,
    OperationStatus,
    OperationType,
    Plan,
    ProvisionOperation,
)
from stackplan.models.resources import (
    OutputToken,
    Reference,
    ResourceNode,
    StackOutput,
    Topology,
)

__all__ = [
    "KIND_SCHEMAS",
    "DeployedResource",
    "DeploymentState",
    "DeploymentStatus",
    "ExecutionReport",
    "KindSchema",
    "OperationResult",
    "OperationStatus",
    "OperationType",
    "OutputToken",
    "Plan",
    "ProvisionOperation",
    "Reference",
    "ResourceKind",
    "ResourceNode",
    "StackOutput",
    "StackPlanConfig",
    "Topology",
]
