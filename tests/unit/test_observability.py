"""Tests for logging context helpers and metrics."""

from __future__ import annotations

import pytest
import structlog
from prometheus_client import REGISTRY

from stackplan.errors import CyclicDependencyError
from stackplan.models.kinds import ResourceKind
from stackplan.models.resources import Reference, ResourceNode, Topology
from stackplan.observability.logging import deployment_context
from stackplan.planner.pipeline import build_plan


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestDeploymentContext:
    def test_binds_and_unbinds(self) -> None:
        with deployment_context("site", "0123456789abcdef"):
            assert structlog.contextvars.get_contextvars() == {"topology": "site", "plan": "0123456789ab"}
        assert "topology" not in structlog.contextvars.get_contextvars()


class TestPlanningMetrics:
    def test_planned_and_rejected_counted(self) -> None:
        planned_before = _sample("stackplan_plans_total", outcome="planned")
        rejected_before = _sample("stackplan_plans_total", outcome="rejected")

        build_plan(Topology(name="ok", nodes=[ResourceNode(id="A", kind=ResourceKind.BUCKET)]))
        cyclic = Topology(
            name="bad",
            nodes=[
                ResourceNode(id="A", kind=ResourceKind.BUCKET, properties={"x": Reference("B")}),
                ResourceNode(id="B", kind=ResourceKind.BUCKET, properties={"x": Reference("A")}),
            ],
        )
        with pytest.raises(CyclicDependencyError):
            build_plan(cyclic)

        assert _sample("stackplan_plans_total", outcome="planned") == planned_before + 1
        assert _sample("stackplan_plans_total", outcome="rejected") == rejected_before + 1
