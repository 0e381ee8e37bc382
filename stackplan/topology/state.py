"""Deployment state files.

A state file records what the last deployment provisioned so the next plan
can choose update over create and delete what disappeared::

    {"resources": {"UiBucket": {"kind": "Bucket", "outputs": {...}, "properties": {...}}}}

Key order in ``resources`` is provisioning order.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stackplan.errors import TopologyFormatError
from stackplan.models.kinds import ResourceKind
from stackplan.models.plan import DeployedResource, DeploymentState
from stackplan.planner.render import encode_value


def state_to_dict(state: DeploymentState) -> dict[str, Any]:
    return {
        "resources": {
            node_id: {
                "kind": resource.kind.value,
                "outputs": encode_value(resource.outputs),
                "properties": encode_value(resource.properties),
            }
            for node_id, resource in state.resources.items()
        }
    }


def state_from_dict(document: Mapping[str, Any]) -> DeploymentState:
    resources = document.get("resources", {}) if isinstance(document, Mapping) else None
    if not isinstance(resources, Mapping):
        raise TopologyFormatError("State document needs a 'resources' object")

    state = DeploymentState()
    for node_id, entry in resources.items():
        if not isinstance(entry, Mapping):
            raise TopologyFormatError(f"State entry '{node_id}' must be an object")
        try:
            kind = ResourceKind(entry.get("kind"))
        except ValueError as exc:
            raise TopologyFormatError(f"State entry '{node_id}': unknown kind {entry.get('kind')!r}") from exc
        outputs = entry.get("outputs") or {}
        properties = entry.get("properties") or {}
        if not isinstance(outputs, Mapping) or not isinstance(properties, Mapping):
            raise TopologyFormatError(f"State entry '{node_id}': outputs and properties must be objects")
        state.resources[str(node_id)] = DeployedResource(kind=kind, outputs=dict(outputs), properties=dict(properties))
    return state


def load_state(path: str | Path) -> DeploymentState:
    """Read a state file; a missing file is an empty state."""
    path = Path(path)
    if not path.exists():
        return DeploymentState()
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TopologyFormatError(f"Invalid JSON in state file {path}: {exc}") from exc
    return state_from_dict(document)


def save_state(state: DeploymentState, path: str | Path) -> None:
    Path(path).write_text(json.dumps(state_to_dict(state), indent=2) + "\n", encoding="utf-8")
