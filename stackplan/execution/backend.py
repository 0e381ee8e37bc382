"""Provisioning backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from stackplan.models.plan import OperationResult, ProvisionOperation


class ProvisioningBackend(ABC):
    """Turns provisioning operations into real (or simulated) resources.

    ``provision`` receives operations whose OutputTokens have already been
    replaced with upstream outputs.  Implementations report failures through
    the returned OperationResult; any exception raised is treated as a failure
    of that one operation by the executor.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Identifier used in logs."""

    @abstractmethod
    async def provision(self, operation: ProvisionOperation) -> OperationResult:
        """Execute *operation* and report its outputs or error."""

    async def close(self) -> None:  # noqa: B027
        """Release connections.  No-op by default."""
