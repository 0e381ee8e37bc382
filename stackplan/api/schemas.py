"""Pydantic request/response schemas for the planning API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResourceDocument(BaseModel):
    """One resource declaration; references use ``Ref`` / ``GetAtt`` objects."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1, max_length=255)
    kind: str = Field(min_length=1)
    properties: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list, alias="dependsOn")


class OutputDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    value: Any
    description: str = ""
    export_name: str = Field(default="", alias="exportName")


class TopologyDocument(BaseModel):
    name: str = "topology"
    resources: list[ResourceDocument]
    outputs: list[OutputDocument] = Field(default_factory=list)


class PlanRequest(BaseModel):
    """Body of POST /plan and POST /graph."""

    model_config = ConfigDict(populate_by_name=True)

    topology: TopologyDocument
    previous_state: dict[str, Any] | None = Field(default=None, alias="previousState")


class OperationResponse(BaseModel):
    operation: str
    nodeId: str
    kind: str
    resolvedProperties: dict[str, Any]
    dependsOn: list[str]
    depth: int


class PlanResponse(BaseModel):
    topology: str
    fingerprint: str
    operations: list[OperationResponse]
    groups: list[list[str]]
    outputs: dict[str, Any]


class GraphResponse(BaseModel):
    topology: str
    order: list[str]
    groups: list[list[str]]
    edges: list[tuple[str, str]]


class HealthResponse(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error envelope used by every non-2xx response."""

    error: str
    detail: str
    cycle: list[str] | None = None
