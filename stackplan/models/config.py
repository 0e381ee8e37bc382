"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from stackplan.errors import MissingConfigError


@dataclass
class DeploymentConfig:
    """Values the topology consumes opaquely (account, region, DNS, certificate)."""

    account: str = ""
    region: str = ""
    domain_name: str = ""
    hosted_zone_id: str = ""
    certificate_arn: str = ""
    stack_name: str = "mono-repo"
    ui_bucket_name: str = "monorepo-ui"

    def require(self, key: str) -> str:
        """Return the value of *key*, raising MissingConfigError when it is empty."""
        value = getattr(self, key)
        if not value:
            raise MissingConfigError(key)
        return value


@dataclass
class ExecutorConfig:
    """Plan executor configuration."""

    max_concurrency: int = 4


@dataclass
class BackendConfig:
    """Provisioning backend configuration.

    An empty ``url`` selects the simulated backend.  ``token_ref`` is the name
    of an environment variable holding a bearer token for the HTTP backend.
    """

    url: str = ""
    timeout_seconds: float = 30.0
    token_ref: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class StackPlanConfig:
    """Top-level stackplan configuration."""

    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
