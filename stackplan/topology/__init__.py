"""Topology sources: fluent builder, built-in topologies, JSON documents, state files."""

from __future__ import annotations

from collections.abc import Callable

from stackplan.models.config import DeploymentConfig
from stackplan.models.resources import Topology
from stackplan.topology.builder import TopologyBuilder
from stackplan.topology.loader import decode_value, load_topology, parse_topology
from stackplan.topology.monorepo import build_monorepo_topology
from stackplan.topology.state import load_state, save_state, state_from_dict, state_to_dict

BUILTIN_TOPOLOGIES: dict[str, Callable[[DeploymentConfig], Topology]] = {
    "monorepo": build_monorepo_topology,
}

__all__ = [
    "BUILTIN_TOPOLOGIES",
    "TopologyBuilder",
    "build_monorepo_topology",
    "decode_value",
    "load_state",
    "load_topology",
    "parse_topology",
    "save_state",
    "state_from_dict",
    "state_to_dict",
]
