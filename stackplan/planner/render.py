"""Plain-dict and text renderings of plans, reports and operations.

The dict forms are what the CLI prints as JSON, what the REST API returns,
and what the HTTP backend posts.  OutputTokens render as ``${node.output}``.
"""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Any

from stackplan.models.plan import ExecutionReport, OperationType, Plan, ProvisionOperation
from stackplan.models.resources import OutputToken, Reference


def encode_value(value: Any) -> Any:
    """Convert a property value into JSON-compatible data."""
    if isinstance(value, OutputToken):
        return str(value)
    if isinstance(value, Reference):
        if value.output is None:
            return {"Ref": value.node_id}
        return {"GetAtt": [value.node_id, value.output]}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def operation_to_dict(operation: ProvisionOperation) -> dict[str, Any]:
    return {
        "operation": operation.operation.value,
        "nodeId": operation.node_id,
        "kind": operation.kind.value,
        "resolvedProperties": encode_value(operation.resolved_properties),
        "dependsOn": list(operation.depends_on),
        "depth": operation.depth,
    }


def plan_to_dict(plan: Plan) -> dict[str, Any]:
    return {
        "topology": plan.topology,
        "fingerprint": plan.fingerprint,
        "operations": [operation_to_dict(op) for op in plan.operations],
        "groups": [list(group) for group in plan.groups],
        "outputs": encode_value(plan.outputs),
    }


def plan_fingerprint(plan: Plan) -> str:
    """sha256 over the canonical JSON of the plan's operations and outputs."""
    body = plan_to_dict(plan)
    body.pop("fingerprint")
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def report_to_dict(report: ExecutionReport) -> dict[str, Any]:
    return {
        "status": report.status.value,
        "results": {
            node_id: {
                "status": result.status.value,
                "outputs": encode_value(result.outputs),
                "error": result.error,
                "durationMs": round(result.duration_ms, 3),
            }
            for node_id, result in report.results.items()
        },
        "skipped": {
            node_id: {"failedDependency": error.failed_dependency, "detail": str(error)}
            for node_id, error in report.skipped.items()
        },
        "outputs": encode_value(report.outputs),
    }


_SYMBOLS = {
    OperationType.CREATE: "+",
    OperationType.UPDATE: "~",
    OperationType.DELETE: "-",
}


def render_plan_text(plan: Plan) -> str:
    """Human-readable plan listing, one operation per line."""
    lines = [f"Plan for {plan.topology} ({plan.fingerprint[:12]})"]
    for op in plan.operations:
        line = f"  {_SYMBOLS[op.operation]} {op.kind.value:<22} {op.node_id}"
        if op.depends_on:
            line += f"  <- {', '.join(op.depends_on)}"
        lines.append(line)

    counts = {kind: 0 for kind in OperationType}
    for op in plan.operations:
        counts[op.operation] += 1
    lines.append(
        f"{counts[OperationType.CREATE]} to create, "
        f"{counts[OperationType.UPDATE]} to update, "
        f"{counts[OperationType.DELETE]} to delete."
    )
    if plan.outputs:
        lines.append("Outputs:")
        for name, value in plan.outputs.items():
            lines.append(f"  {name} = {encode_value(value)}")
    return "\n".join(lines)
