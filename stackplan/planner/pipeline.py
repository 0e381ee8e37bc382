"""Builder + sorter + emitter pipeline.

Every planning error surfaces here, before anything is handed to a
provisioning backend.
"""

from __future__ import annotations

import time

import structlog

from stackplan.errors import PlanningError
from stackplan.graph.dependency_graph import DependencyGraph
from stackplan.graph.sorter import node_depths, parallel_groups, topological_sort
from stackplan.models.plan import DeploymentState, Plan
from stackplan.models.resources import Topology
from stackplan.observability.metrics import plan_operations, planning_duration_seconds, plans_total
from stackplan.planner.emitter import PlanEmitter
from stackplan.planner.render import plan_fingerprint

_log = structlog.get_logger(component="planner.pipeline")


def build_graph(topology: Topology) -> DependencyGraph:
    """Register every declared node; duplicate ids abort."""
    graph = DependencyGraph()
    for node in topology.nodes:
        graph.add_node(node)
    return graph


def compile_topology(
    topology: Topology,
    previous: DeploymentState | None = None,
) -> tuple[DependencyGraph, Plan]:
    """Build, validate, sort and emit.  Returns the graph alongside the plan."""
    t_start = time.monotonic()
    try:
        graph = build_graph(topology)
        graph.validate()
        graph.resolve_edges()
        order = topological_sort(graph)
        depths = node_depths(graph, order)
        groups = parallel_groups(graph, order)

        emitter = PlanEmitter(graph, previous)
        operations = emitter.emit(order, depths)
        outputs = {
            output.name: emitter.resolve_value(f"output:{output.name}", output.value) for output in topology.outputs
        }
    except PlanningError as exc:
        plans_total.labels(outcome="rejected").inc()
        _log.warning("plan_rejected", topology=topology.name, error_code=exc.code, error=str(exc))
        raise

    plan = Plan(topology=topology.name, operations=operations, groups=groups, outputs=outputs)
    plan.fingerprint = plan_fingerprint(plan)

    duration = time.monotonic() - t_start
    plans_total.labels(outcome="planned").inc()
    planning_duration_seconds.observe(duration)
    plan_operations.observe(len(operations))
    _log.info(
        "plan_built",
        topology=topology.name,
        nodes=graph.node_count,
        edges=graph.edge_count,
        operations=len(operations),
        groups=len(groups),
        fingerprint=plan.fingerprint[:12],
        duration_ms=round(duration * 1000.0, 3),
    )
    return graph, plan


def build_plan(topology: Topology, previous: DeploymentState | None = None) -> Plan:
    """Compile *topology* into a Plan."""
    _, plan = compile_topology(topology, previous)
    return plan
