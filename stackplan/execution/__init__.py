"""Provisioning backends and the plan executor.

Exports:
    ProvisioningBackend     -- ABC every backend implements.
    SimulatedBackend        -- Deterministic in-memory backend.
    HttpProvisioningBackend -- Posts operations to a remote service with httpx.
    PlanExecutor            -- Runs a Deployment's plan group by group.
    build_backend           -- Factory used by the CLI.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from stackplan.execution.backend import ProvisioningBackend
from stackplan.execution.executor import PlanExecutor
from stackplan.execution.http import HttpProvisioningBackend
from stackplan.execution.simulated import SimulatedBackend

if TYPE_CHECKING:
    from stackplan.models.config import BackendConfig, DeploymentConfig

_log = structlog.get_logger(component="execution")

__all__ = [
    "HttpProvisioningBackend",
    "PlanExecutor",
    "ProvisioningBackend",
    "SimulatedBackend",
    "build_backend",
]


def build_backend(
    config: BackendConfig,
    deployment: DeploymentConfig,
    fail_on: tuple[str, ...] = (),
) -> ProvisioningBackend:
    """Pick the backend described by *config*.

    An empty ``config.url`` selects the simulated backend.  ``token_ref`` names
    an environment variable holding a bearer token; an unresolvable ref is
    logged and the request goes out without Authorization.
    """
    if not config.url:
        _log.info("backend_selected", backend="simulated")
        return SimulatedBackend(account=deployment.account, region=deployment.region, fail_on=fail_on)

    headers: dict[str, str] = {}
    if config.token_ref:
        token = os.environ.get(config.token_ref, "")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            _log.warning("backend_token_unresolved", token_ref=config.token_ref)
    _log.info("backend_selected", backend="http", url=config.url)
    return HttpProvisioningBackend(config.url, headers=headers, timeout=config.timeout_seconds)
