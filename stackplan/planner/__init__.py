"""Planning: emit ordered provisioning operations from a topology.

Exports:
    PlanEmitter      -- Walks a topological order and emits operations.
    build_plan       -- Topology (+ previous state) to Plan.
    compile_topology -- Same, also returning the dependency graph.
    Deployment       -- pending/planned/provisioning/done/failed state machine.
"""

from stackplan.planner.deployment import Deployment
from stackplan.planner.emitter import PlanEmitter
from stackplan.planner.pipeline import build_graph, build_plan, compile_topology
from stackplan.planner.render import plan_to_dict, render_plan_text, report_to_dict

__all__ = [
    "Deployment",
    "PlanEmitter",
    "build_graph",
    "build_plan",
    "compile_topology",
    "plan_to_dict",
    "render_plan_text",
    "report_to_dict",
]
