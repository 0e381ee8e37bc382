"""JSON topology documents.

Document shape::

    {
      "name": "site",
      "resources": [
        {"id": "SiteBucket", "kind": "Bucket", "properties": {"bucketName": "site"}},
        {"id": "Cdn", "kind": "Distribution",
         "properties": {"defaultBehavior": {"origin": {"GetAtt": ["SiteBucket", "regionalDomainName"]}}},
         "dependsOn": []}
      ],
      "outputs": [
        {"name": "CdnDomain", "value": {"GetAtt": ["Cdn", "domainName"]}, "description": "", "exportName": ""}
      ]
    }

References are written ``{"Ref": "Id"}`` (primary output) or
``{"GetAtt": ["Id", "output"]}``; any other value is a literal.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stackplan.errors import DuplicateIdError, TopologyFormatError
from stackplan.models.resources import Reference, ResourceNode, StackOutput, Topology
from stackplan.observability.logging import get_logger

_logger = get_logger("topology.loader")


def decode_value(value: Any) -> Any:
    """Turn ``Ref``/``GetAtt`` objects into References, recursively."""
    if isinstance(value, Mapping):
        if set(value) == {"Ref"}:
            target = value["Ref"]
            if not isinstance(target, str) or not target:
                raise TopologyFormatError(f"Ref must name a resource id, got {target!r}")
            return Reference(target)
        if set(value) == {"GetAtt"}:
            pair = value["GetAtt"]
            if (
                not isinstance(pair, (list, tuple))
                or len(pair) != 2
                or not all(isinstance(part, str) and part for part in pair)
            ):
                raise TopologyFormatError(f"GetAtt must be [resourceId, output], got {pair!r}")
            return Reference(pair[0], pair[1])
        return {str(key): decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def parse_topology(document: Mapping[str, Any], default_name: str = "topology") -> Topology:
    """Build a Topology from an already-decoded JSON document."""
    if not isinstance(document, Mapping):
        raise TopologyFormatError("Topology document must be an object")
    resources = document.get("resources")
    if not isinstance(resources, list):
        raise TopologyFormatError("Topology document needs a 'resources' list")

    name = document.get("name") or default_name
    nodes = [_parse_resource(index, entry) for index, entry in enumerate(resources)]

    raw_outputs = document.get("outputs", [])
    if not isinstance(raw_outputs, list):
        raise TopologyFormatError("'outputs' must be a list")
    outputs = [_parse_output(index, entry) for index, entry in enumerate(raw_outputs)]
    seen: set[str] = set()
    for output in outputs:
        if output.name in seen:
            raise DuplicateIdError(output.name)
        seen.add(output.name)

    _logger.debug("topology_parsed", name=name, resources=len(nodes), outputs=len(outputs))
    return Topology(name=str(name), nodes=nodes, outputs=outputs)


def load_topology(path: str | Path) -> Topology:
    """Read and parse a topology JSON file."""
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TopologyFormatError(f"Cannot read topology file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TopologyFormatError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_topology(document, default_name=path.stem)


def _parse_resource(index: int, entry: Any) -> ResourceNode:
    if not isinstance(entry, Mapping):
        raise TopologyFormatError(f"resources[{index}] must be an object")
    node_id = entry.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise TopologyFormatError(f"resources[{index}] needs a non-empty string 'id'")

    properties = entry.get("properties", {})
    if not isinstance(properties, Mapping):
        raise TopologyFormatError(f"'{node_id}': properties must be an object")
    depends_on = entry.get("dependsOn", [])
    if not isinstance(depends_on, list) or not all(isinstance(dep, str) for dep in depends_on):
        raise TopologyFormatError(f"'{node_id}': dependsOn must be a list of resource ids")

    try:
        return ResourceNode(
            id=node_id,
            kind=entry.get("kind"),
            properties=decode_value(properties),
            depends_on=tuple(depends_on),
        )
    except ValueError as exc:
        raise TopologyFormatError(f"'{node_id}': unknown kind {entry.get('kind')!r}") from exc


def _parse_output(index: int, entry: Any) -> StackOutput:
    if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str) or not entry["name"]:
        raise TopologyFormatError(f"outputs[{index}] needs a non-empty string 'name'")
    if "value" not in entry:
        raise TopologyFormatError(f"output '{entry['name']}' needs a 'value'")
    return StackOutput(
        name=entry["name"],
        value=decode_value(entry["value"]),
        description=str(entry.get("description", "")),
        export_name=str(entry.get("exportName", "")),
    )
