"""
Tests for cycle analysis.

Covers:
- Acyclic graphs report no cycle
- Self-loops, simple, nested and disjoint cycles
- has_cycle agrees with detect_cycles
- Removing the reported back edges always leaves an acyclic graph
- Long chains do not hit the recursion limit
"""

import pytest

from pipeflow.graph.cycles import CycleInfo, detect_cycles, has_cycle, remove_back_edges
from pipeflow.graph.edge import EdgeSpec
from pipeflow.graph.node import NodeSpec

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_nodes(*ids: str) -> list[NodeSpec]:
    return [NodeSpec(id=node_id, agent_ref=f"agent-{node_id}") for node_id in ids]


def make_edges(*pairs: tuple[str, str]) -> list[EdgeSpec]:
    return [
        EdgeSpec(id=f"e{i}", source=source, target=target)
        for i, (source, target) in enumerate(pairs, start=1)
    ]


GRAPHS = {
    "empty": (make_nodes(), make_edges()),
    "single": (make_nodes("a"), make_edges()),
    "chain": (make_nodes("a", "b", "c"), make_edges(("a", "b"), ("b", "c"))),
    "diamond": (
        make_nodes("a", "b", "c", "d"),
        make_edges(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")),
    ),
    "self_loop": (make_nodes("a"), make_edges(("a", "a"))),
    "triangle": (make_nodes("a", "b", "c"), make_edges(("a", "b"), ("b", "c"), ("c", "a"))),
    "nested": (
        make_nodes("a", "b", "c", "d"),
        make_edges(("a", "b"), ("b", "c"), ("c", "a"), ("c", "b"), ("d", "a")),
    ),
    "disjoint": (
        make_nodes("a", "b", "x", "y", "z"),
        make_edges(("a", "b"), ("b", "a"), ("x", "y"), ("y", "z"), ("z", "x")),
    ),
    "loop_with_tail": (
        make_nodes("start", "draft", "review", "publish"),
        make_edges(
            ("start", "draft"),
            ("draft", "review"),
            ("review", "draft"),
            ("review", "publish"),
        ),
    ),
}


# ---------------------------------------------------------------------------
# 1. Acyclic graphs
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("name", ["empty", "single", "chain", "diamond"])
def test_acyclic_graphs_have_no_cycles(name):
    nodes, edges = GRAPHS[name]
    assert has_cycle(nodes, edges) is False
    assert detect_cycles(nodes, edges) is None


# ---------------------------------------------------------------------------
# 2. Specific cycle shapes
# ---------------------------------------------------------------------------


def test_self_loop_is_a_cycle_of_one():
    nodes, edges = GRAPHS["self_loop"]

    info = detect_cycles(nodes, edges)

    assert isinstance(info, CycleInfo)
    assert info.back_edges == edges
    assert info.cycle_nodes == ["a"]


def test_triangle_reports_closing_edge_and_all_members():
    nodes, edges = GRAPHS["triangle"]

    info = detect_cycles(nodes, edges)

    assert info.back_edge_ids == ["e3"]
    assert sorted(info.cycle_nodes) == ["a", "b", "c"]


def test_nested_cycles_report_every_back_edge():
    nodes, edges = GRAPHS["nested"]

    info = detect_cycles(nodes, edges)

    # c->a and c->b both close a cycle while a, b, c are on the stack
    assert info.back_edge_ids == ["e3", "e4"]
    assert sorted(info.cycle_nodes) == ["a", "b", "c"]
    assert "d" not in info.cycle_nodes


def test_disjoint_cycles_found_in_one_pass():
    nodes, edges = GRAPHS["disjoint"]

    info = detect_cycles(nodes, edges)

    assert info.back_edge_ids == ["e2", "e5"]
    assert sorted(info.cycle_nodes) == ["a", "b", "x", "y", "z"]


def test_loop_with_tail_excludes_non_members():
    nodes, edges = GRAPHS["loop_with_tail"]

    info = detect_cycles(nodes, edges)

    assert info.back_edge_ids == ["e3"]
    assert sorted(info.cycle_nodes) == ["draft", "review"]


def test_dangling_edges_are_ignored():
    nodes = make_nodes("a", "b")
    edges = make_edges(("a", "b"), ("b", "ghost"), ("ghost", "a"))

    assert has_cycle(nodes, edges) is False
    assert detect_cycles(nodes, edges) is None


# ---------------------------------------------------------------------------
# 3. Properties over all sample graphs
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("name", sorted(GRAPHS))
def test_has_cycle_agrees_with_detect_cycles(name):
    nodes, edges = GRAPHS[name]
    assert has_cycle(nodes, edges) == (detect_cycles(nodes, edges) is not None)


@pytest.mark.parametrize("name", sorted(GRAPHS))
def test_removing_back_edges_makes_graph_acyclic(name):
    nodes, edges = GRAPHS[name]
    info = detect_cycles(nodes, edges)
    if info is None:
        return

    assert info.back_edges
    remaining = remove_back_edges(edges, info.back_edge_ids)
    assert has_cycle(nodes, remaining) is False


# ---------------------------------------------------------------------------
# 4. Misc
# ---------------------------------------------------------------------------


def test_remove_back_edges_keeps_order_of_remaining_edges():
    edges = make_edges(("a", "b"), ("b", "c"), ("c", "a"), ("c", "d"))

    remaining = remove_back_edges(edges, ["e3", "missing"])

    assert [e.id for e in remaining] == ["e1", "e2", "e4"]


def test_long_chain_does_not_recurse():
    ids = [f"n{i}" for i in range(5000)]
    nodes = make_nodes(*ids)
    edges = make_edges(*zip(ids, ids[1:], strict=False))

    assert has_cycle(nodes, edges) is False

    edges.append(EdgeSpec(id="back", source=ids[-1], target=ids[0]))
    info = detect_cycles(nodes, edges)
    assert info.back_edge_ids == ["back"]
    assert len(info.cycle_nodes) == 5000
