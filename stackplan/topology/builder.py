"""Fluent topology declaration."""

from __future__ import annotations

from typing import Any

from stackplan.errors import DuplicateIdError
from stackplan.models.config import DeploymentConfig
from stackplan.models.kinds import ResourceKind
from stackplan.models.resources import ResourceNode, StackOutput, Topology


class TopologyBuilder:
    """Collects node declarations and stack outputs in declaration order.

    Usage::

        builder = TopologyBuilder("site", config)
        bucket = builder.add("SiteBucket", ResourceKind.BUCKET, bucketName="site")
        builder.add("Cdn", ResourceKind.DISTRIBUTION, defaultBehavior={"origin": bucket.ref()})
        topology = builder.build()
    """

    def __init__(self, name: str, config: DeploymentConfig | None = None) -> None:
        self.name = name
        self.config = config or DeploymentConfig()
        self._nodes: dict[str, ResourceNode] = {}
        self._outputs: dict[str, StackOutput] = {}

    def add(
        self,
        node_id: str,
        kind: ResourceKind | str,
        /,
        depends_on: tuple[str, ...] = (),
        **properties: Any,
    ) -> ResourceNode:
        """Declare a node and return it so later declarations can reference it."""
        if node_id in self._nodes:
            raise DuplicateIdError(node_id)
        node = ResourceNode(id=node_id, kind=kind, properties=properties, depends_on=depends_on)
        self._nodes[node_id] = node
        return node

    def output(self, name: str, value: Any, description: str = "", export_name: str = "") -> StackOutput:
        """Declare a stack output."""
        if name in self._outputs:
            raise DuplicateIdError(name)
        output = StackOutput(name=name, value=value, description=description, export_name=export_name)
        self._outputs[name] = output
        return output

    def build(self) -> Topology:
        return Topology(name=self.name, nodes=list(self._nodes.values()), outputs=list(self._outputs.values()))
