"""Route handlers for the planning API."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from stackplan.api.schemas import GraphResponse, HealthResponse, PlanRequest, PlanResponse
from stackplan.graph.sorter import parallel_groups, topological_sort
from stackplan.models.plan import DeploymentState
from stackplan.models.resources import Topology
from stackplan.planner.pipeline import build_graph, build_plan
from stackplan.planner.render import plan_to_dict
from stackplan.topology.loader import parse_topology
from stackplan.topology.state import state_from_dict

router = APIRouter()


def _topology(body: PlanRequest) -> Topology:
    return parse_topology(body.topology.model_dump(by_alias=True))


def _previous_state(body: PlanRequest) -> DeploymentState | None:
    if body.previous_state is None:
        return None
    return state_from_dict(body.previous_state)


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    return HealthResponse(status="ok", version=request.app.version)


@router.post("/plan", response_model=PlanResponse)
async def plan(body: PlanRequest) -> dict:
    """Compile a topology document (and optional previous state) into a plan."""
    result = build_plan(_topology(body), _previous_state(body))
    return plan_to_dict(result)


@router.post("/graph", response_model=GraphResponse)
async def graph(body: PlanRequest) -> GraphResponse:
    """Return the dependency order, parallel groups and edges of a topology."""
    topology = _topology(body)
    dependency_graph = build_graph(topology)
    edges = dependency_graph.resolve_edges()
    order = topological_sort(dependency_graph)
    return GraphResponse(
        topology=topology.name,
        order=order,
        groups=parallel_groups(dependency_graph, order),
        edges=edges,
    )


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
