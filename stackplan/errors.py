"""Exception hierarchy for stackplan.

Planning errors are detected before any provisioning call is issued and abort
the whole plan.  DependencyFailedError is never raised out of the executor;
one instance per skipped node is collected in the ExecutionReport.
"""

from __future__ import annotations


class StackPlanError(Exception):
    """Base class for every error raised by stackplan."""


class PlanningError(StackPlanError):
    """Fatal error found while building the graph or emitting the plan."""

    code = "PLANNING_ERROR"


class DuplicateIdError(PlanningError):
    """Two declarations share the same identifier."""

    code = "DUPLICATE_ID"

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Duplicate resource id '{node_id}'")
        self.node_id = node_id


class CyclicDependencyError(PlanningError):
    """The dependency graph contains a cycle.

    ``cycle`` lists the node ids along the cycle; the first and last entries
    are the same node, and each consecutive pair is a "depends on" edge.
    """

    code = "CYCLIC_DEPENDENCY"

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"Dependency cycle: {' -> '.join(cycle)}")
        self.cycle = cycle


class UnresolvedReferenceError(PlanningError):
    """A reference points to a missing node or to an output not yet produced."""

    code = "UNRESOLVED_REFERENCE"

    def __init__(self, source: str, target: str, output: str | None = None, reason: str = "") -> None:
        what = f"{target}.{output}" if output else target
        message = f"'{source}' references '{what}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source = source
        self.target = target
        self.output = output
        self.reason = reason

    @property
    def node_id(self) -> str:
        """Id of the node holding the reference."""
        return self.source

    @property
    def reference(self) -> str:
        return f"{self.target}.{self.output}" if self.output else self.target


class MissingPropertyError(PlanningError):
    """A node lacks a property its kind requires."""

    code = "MISSING_PROPERTY"

    def __init__(self, node_id: str, kind: str, missing: list[str]) -> None:
        super().__init__(f"{kind} '{node_id}' is missing required properties: {', '.join(missing)}")
        self.node_id = node_id
        self.kind = kind
        self.missing = missing


class MissingConfigError(PlanningError):
    """A configuration value needed by the topology is empty."""

    code = "MISSING_CONFIG"

    def __init__(self, key: str) -> None:
        super().__init__(f"Configuration value '{key}' is required but not set")
        self.key = key


class TopologyFormatError(PlanningError):
    """A topology document could not be parsed."""

    code = "INVALID_TOPOLOGY"


class DependencyFailedError(StackPlanError):
    """A node was skipped because one of its prerequisites failed to provision."""

    def __init__(self, node_id: str, failed_dependency: str) -> None:
        super().__init__(f"'{node_id}' skipped: dependency '{failed_dependency}' failed")
        self.node_id = node_id
        self.failed_dependency = failed_dependency


class DeploymentStateError(StackPlanError):
    """Illegal transition of the deployment state machine."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move deployment from '{current}' to '{target}'")
        self.current = current
        self.target = target


class BackendError(StackPlanError):
    """The provisioning backend could not be reached or replied with garbage."""
