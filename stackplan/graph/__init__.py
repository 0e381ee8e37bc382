"""Resource dependency graph and ordering.

Provides the in-memory graph built from References declared in resource
properties, and the sorter that turns it into a deployment order.
"""

from stackplan.graph.dependency_graph import DependencyGraph
from stackplan.graph.sorter import node_depths, parallel_groups, topological_sort

__all__ = [
    "DependencyGraph",
    "node_depths",
    "parallel_groups",
    "topological_sort",
]
