"""Tests for cycle detection, topological ordering and parallel groups.

Property-based tests use hypothesis to generate random digraphs: every
successful sort must be a valid linearization, and every reported cycle must
exist in the input.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stackplan.errors import CyclicDependencyError, UnresolvedReferenceError
from stackplan.graph.dependency_graph import DependencyGraph
from stackplan.graph.sorter import node_depths, parallel_groups, topological_sort
from stackplan.models.kinds import ResourceKind
from stackplan.models.resources import Reference, ResourceNode

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _node(node_id: str, *deps: str) -> ResourceNode:
    properties = {"deps": [Reference(dep) for dep in deps]} if deps else {}
    return ResourceNode(id=node_id, kind=ResourceKind.BUCKET, properties=properties)


def _graph_from_edges(declaration: list[str], edges: set[tuple[str, str]]) -> DependencyGraph:
    deps: dict[str, list[str]] = {node_id: [] for node_id in declaration}
    for source, target in sorted(edges):
        deps[source].append(target)
    return DependencyGraph(_node(node_id, *deps[node_id]) for node_id in declaration)


@st.composite
def _digraphs(draw: st.DrawFn, acyclic: bool) -> tuple[list[str], set[tuple[str, str]]]:
    size = draw(st.integers(min_value=1, max_value=10))
    ids = [f"n{index}" for index in range(size)]
    pairs = draw(
        st.sets(
            st.tuples(st.integers(0, size - 1), st.integers(0, size - 1)),
            max_size=size * 3,
        )
    )
    if acyclic:
        # Only allow edges to lower-ranked nodes.
        pairs = {(src, dst) for src, dst in pairs if src > dst}
    edges = {(ids[src], ids[dst]) for src, dst in pairs}
    declaration = draw(st.permutations(ids))
    return list(declaration), edges


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestTopologicalSort:
    def test_reverse_declaration_still_sorted(self) -> None:
        graph = DependencyGraph([_node("C", "A", "B"), _node("B", "A"), _node("A")])
        assert topological_sort(graph) == ["A", "B", "C"]

    def test_independent_nodes_keep_declaration_order(self) -> None:
        graph = DependencyGraph([_node("Z"), _node("M"), _node("A")])
        assert topological_sort(graph) == ["Z", "M", "A"]

    def test_dependencies_before_dependents_in_diamond(self) -> None:
        graph = DependencyGraph([_node("Top", "Left", "Right"), _node("Left", "Base"), _node("Right", "Base"), _node("Base")])
        order = topological_sort(graph)
        assert order == ["Base", "Left", "Right", "Top"]

    def test_repeated_sorts_are_identical(self) -> None:
        graph = DependencyGraph([_node("D", "B"), _node("C", "A"), _node("B"), _node("A")])
        assert topological_sort(graph) == topological_sort(graph)

    def test_empty_graph(self) -> None:
        assert topological_sort(DependencyGraph()) == []
        assert parallel_groups(DependencyGraph()) == []

    def test_unresolved_reference_raised_before_sorting(self) -> None:
        # A cycle is present too; the dangling reference wins.
        graph = DependencyGraph([_node("A", "B"), _node("B", "A"), _node("C", "Ghost")])
        with pytest.raises(UnresolvedReferenceError):
            topological_sort(graph)


class TestCycleDetection:
    def test_two_node_cycle(self) -> None:
        graph = DependencyGraph([_node("A", "B"), _node("B", "A")])
        with pytest.raises(CyclicDependencyError) as exc_info:
            topological_sort(graph)
        assert exc_info.value.cycle == ["A", "B", "A"]

    def test_self_cycle(self) -> None:
        graph = DependencyGraph([_node("A", "A")])
        with pytest.raises(CyclicDependencyError) as exc_info:
            topological_sort(graph)
        assert exc_info.value.cycle == ["A", "A"]

    def test_cycle_path_excludes_acyclic_prefix(self) -> None:
        graph = DependencyGraph([_node("Entry", "X"), _node("X", "Y"), _node("Y", "Z"), _node("Z", "X")])
        with pytest.raises(CyclicDependencyError) as exc_info:
            topological_sort(graph)
        assert exc_info.value.cycle == ["X", "Y", "Z", "X"]
        assert "X -> Y -> Z -> X" in str(exc_info.value)


class TestParallelGroups:
    def test_groups_by_depth(self) -> None:
        graph = DependencyGraph([_node("A"), _node("B", "A"), _node("C", "A", "B"), _node("D")])
        assert parallel_groups(graph) == [["A", "D"], ["B"], ["C"]]

    def test_depths(self) -> None:
        graph = DependencyGraph([_node("A"), _node("B", "A"), _node("C", "A")])
        order = topological_sort(graph)
        assert node_depths(graph, order) == {"A": 0, "B": 1, "C": 1}


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestSortProperties:
    @given(data=_digraphs(acyclic=True))
    @settings(max_examples=150)
    def test_acyclic_graphs_linearize(self, data: tuple[list[str], set[tuple[str, str]]]) -> None:
        declaration, edges = data
        graph = _graph_from_edges(declaration, edges)

        order = topological_sort(graph)

        assert sorted(order) == sorted(declaration)
        position = {node_id: index for index, node_id in enumerate(order)}
        for source, target in edges:
            assert position[target] < position[source]

    @given(data=_digraphs(acyclic=True))
    @settings(max_examples=100)
    def test_groups_hold_no_internal_edges(self, data: tuple[list[str], set[tuple[str, str]]]) -> None:
        declaration, edges = data
        graph = _graph_from_edges(declaration, edges)

        groups = parallel_groups(graph)

        group_of = {node_id: index for index, group in enumerate(groups) for node_id in group}
        assert sorted(group_of) == sorted(declaration)
        for source, target in edges:
            assert group_of[target] < group_of[source]

    @given(data=_digraphs(acyclic=False))
    @settings(max_examples=200)
    def test_any_graph_sorts_or_reports_genuine_cycle(self, data: tuple[list[str], set[tuple[str, str]]]) -> None:
        declaration, edges = data
        graph = _graph_from_edges(declaration, edges)

        try:
            order = topological_sort(graph)
        except CyclicDependencyError as exc:
            cycle = exc.cycle
            assert len(cycle) >= 2
            assert cycle[0] == cycle[-1]
            for source, target in zip(cycle, cycle[1:], strict=False):
                assert (source, target) in edges
        else:
            position = {node_id: index for index, node_id in enumerate(order)}
            for source, target in edges:
                assert position[target] < position[source]

    @given(data=_digraphs(acyclic=False))
    @settings(max_examples=50)
    def test_sort_is_deterministic(self, data: tuple[list[str], set[tuple[str, str]]]) -> None:
        declaration, edges = data

        def _outcome() -> list[str]:
            try:
                return topological_sort(_graph_from_edges(declaration, edges))
            except CyclicDependencyError as exc:
                return ["cycle", *exc.cycle]

        assert _outcome() == _outcome()
