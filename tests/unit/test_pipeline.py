"""Tests for the build -> sort -> emit pipeline."""

from __future__ import annotations

import pytest

from stackplan.errors import (
    CyclicDependencyError,
    DuplicateIdError,
    MissingPropertyError,
    UnresolvedReferenceError,
)
from stackplan.models.kinds import ResourceKind
from stackplan.models.resources import OutputToken, Reference, ResourceNode, StackOutput, Topology
from stackplan.planner.pipeline import build_graph, build_plan, compile_topology


def _topology(*nodes: ResourceNode, outputs: list[StackOutput] | None = None) -> Topology:
    return Topology(name="test", nodes=list(nodes), outputs=outputs or [])


def _bucket(node_id: str, **properties: object) -> ResourceNode:
    return ResourceNode(id=node_id, kind=ResourceKind.BUCKET, properties=dict(properties))


class TestBuildGraph:
    def test_duplicate_id_aborts(self) -> None:
        with pytest.raises(DuplicateIdError):
            build_graph(_topology(_bucket("A"), _bucket("A")))


class TestCompileTopology:
    def test_plan_in_dependency_order(self) -> None:
        topology = _topology(
            _bucket("C", a=Reference("A"), b=Reference("B")),
            _bucket("B", a=Reference("A")),
            _bucket("A"),
        )
        graph, plan = compile_topology(topology)

        assert plan.order == ["A", "B", "C"]
        assert plan.groups == [["A"], ["B"], ["C"]]
        assert graph.edge_count == 3
        assert plan.topology == "test"

    def test_stack_outputs_resolved_to_tokens(self) -> None:
        topology = _topology(
            _bucket("Site"),
            outputs=[StackOutput(name="SiteDomain", value=Reference("Site", "websiteDomainName"))],
        )
        plan = build_plan(topology)
        assert plan.outputs == {"SiteDomain": OutputToken("Site", "websiteDomainName")}

    def test_stack_output_to_missing_node_rejected(self) -> None:
        topology = _topology(_bucket("Site"), outputs=[StackOutput(name="Bad", value=Reference("Ghost"))])
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            build_plan(topology)
        assert exc_info.value.source == "output:Bad"

    def test_fingerprint_is_stable(self) -> None:
        def make() -> Topology:
            return _topology(_bucket("B", a=Reference("A")), _bucket("A", bucketName="a"))

        first = build_plan(make())
        second = build_plan(make())
        assert first.fingerprint
        assert first.fingerprint == second.fingerprint

    def test_fingerprint_changes_with_properties(self) -> None:
        first = build_plan(_topology(_bucket("A", bucketName="a")))
        second = build_plan(_topology(_bucket("A", bucketName="b")))
        assert first.fingerprint != second.fingerprint

    def test_cycle_rejected(self) -> None:
        topology = _topology(_bucket("A", b=Reference("B")), _bucket("B", a=Reference("A")))
        with pytest.raises(CyclicDependencyError):
            build_plan(topology)

    def test_missing_property_rejected_before_sorting(self) -> None:
        topology = _topology(
            ResourceNode(id="Table", kind=ResourceKind.TABLE),
            _bucket("A", b=Reference("B")),
            _bucket("B", a=Reference("A")),
        )
        with pytest.raises(MissingPropertyError) as exc_info:
            build_plan(topology)
        assert exc_info.value.missing == ["partitionKey"]

    def test_empty_topology_yields_empty_plan(self) -> None:
        plan = build_plan(_topology())
        assert plan.operations == []
        assert plan.groups == []
