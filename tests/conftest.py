"""Shared fixtures for stackplan tests.

structlog is pointed at a ReturnLogger so log lines never interleave with
CLI output captured by the tests, and loggers are never cached.
"""

from __future__ import annotations

import logging
import os

import pytest
import structlog

from stackplan.models.config import DeploymentConfig
from stackplan.models.resources import Topology
from stackplan.topology.monorepo import build_monorepo_topology

structlog.configure(
    processors=[],
    wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
    logger_factory=structlog.ReturnLoggerFactory(),
    cache_logger_on_first_use=False,
)

CERTIFICATE_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/ce789b81-c8ee-4da1-b80d-dd8cbb7133aa"


@pytest.fixture
def deployment_config() -> DeploymentConfig:
    return DeploymentConfig(
        account="123456789012",
        region="eu-central-1",
        domain_name="example-learning.com",
        hosted_zone_id="Z1JY41Y266322D",
        certificate_arn=CERTIFICATE_ARN,
    )


@pytest.fixture
def monorepo_topology(deployment_config: DeploymentConfig) -> Topology:
    return build_monorepo_topology(deployment_config)


@pytest.fixture
def stackplan_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment the CLI needs to build the monorepo topology."""
    for key in list(os.environ):
        if key.startswith("STACKPLAN_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("STACKPLAN_ACCOUNT", "123456789012")
    monkeypatch.setenv("STACKPLAN_REGION", "eu-central-1")
    monkeypatch.setenv("STACKPLAN_DOMAIN_NAME", "example-learning.com")
    monkeypatch.setenv("STACKPLAN_HOSTED_ZONE_ID", "Z1JY41Y266322D")
    monkeypatch.setenv("STACKPLAN_CERTIFICATE_ARN", CERTIFICATE_ARN)
