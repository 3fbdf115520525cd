"""
Tests for topological leveling and the edge queries used by the executor.
"""

import random

import pytest

from pipeflow.errors import GraphCycleError, GraphValidationError
from pipeflow.graph.edge import EdgeSpec
from pipeflow.graph.levels import (
    ExecutionLevel,
    compute_levels,
    find_leaf_nodes,
    find_root_nodes,
    predecessors,
    successors,
)
from pipeflow.graph.node import NodeSpec


def make_nodes(*ids: str) -> list[NodeSpec]:
    return [NodeSpec(id=node_id, agent_ref=f"agent-{node_id}") for node_id in ids]


def make_edges(*pairs: tuple[str, str]) -> list[EdgeSpec]:
    return [
        EdgeSpec(id=f"e{i}", source=source, target=target)
        for i, (source, target) in enumerate(pairs, start=1)
    ]


def level_of(levels: list[ExecutionLevel]) -> dict[str, int]:
    mapping: dict[str, int] = {}
    for level in levels:
        for node_id in level.node_ids:
            assert node_id not in mapping, f"{node_id} appears in more than one level"
            mapping[node_id] = level.level
    return mapping


def random_dag(seed: int, size: int = 30) -> tuple[list[NodeSpec], list[EdgeSpec]]:
    rng = random.Random(seed)
    ids = [f"n{i}" for i in range(size)]
    pairs = [(ids[i], ids[j]) for i in range(size) for j in range(i + 1, size) if rng.random() < 0.1]
    shuffled = list(ids)
    rng.shuffle(shuffled)
    return make_nodes(*shuffled), make_edges(*pairs)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def test_diamond_levels():
    nodes = make_nodes("a", "b", "c", "d")
    edges = make_edges(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"))

    levels = compute_levels(nodes, edges)

    assert [lvl.node_ids for lvl in levels] == [["a"], ["b", "c"], ["d"]]
    assert [lvl.level for lvl in levels] == [0, 1, 2]


def test_linear_chain_has_one_node_per_level():
    nodes = make_nodes("a", "b", "c")
    edges = make_edges(("a", "b"), ("b", "c"))

    levels = compute_levels(nodes, edges)

    assert [lvl.node_ids for lvl in levels] == [["a"], ["b"], ["c"]]


def test_unconnected_nodes_share_level_zero():
    nodes = make_nodes("a", "b", "c")

    levels = compute_levels(nodes, [])

    assert len(levels) == 1
    assert levels[0].node_ids == ["a", "b", "c"]


def test_node_waits_for_its_deepest_predecessor():
    nodes = make_nodes("a", "b", "c")
    edges = make_edges(("a", "b"), ("b", "c"), ("a", "c"))

    levels = compute_levels(nodes, edges)

    assert [lvl.node_ids for lvl in levels] == [["a"], ["b"], ["c"]]


def test_empty_graph_has_no_levels():
    assert compute_levels([], []) == []


@pytest.mark.parametrize("seed", range(5))
def test_levels_partition_nodes_and_respect_edges(seed):
    nodes, edges = random_dag(seed)

    levels = compute_levels(nodes, edges)
    mapping = level_of(levels)

    assert set(mapping) == {node.id for node in nodes}
    for edge in edges:
        assert mapping[edge.source] < mapping[edge.target]


# ---------------------------------------------------------------------------
# Cyclic input
# ---------------------------------------------------------------------------


def test_cyclic_graph_raises_structural_error():
    nodes = make_nodes("a", "b")
    edges = make_edges(("a", "b"), ("b", "a"))

    with pytest.raises(GraphCycleError):
        compute_levels(nodes, edges)


def test_cycle_error_is_a_validation_error():
    nodes = make_nodes("a")
    edges = make_edges(("a", "a"))

    with pytest.raises(GraphValidationError):
        compute_levels(nodes, edges)


# ---------------------------------------------------------------------------
# Edge queries
# ---------------------------------------------------------------------------


def test_predecessors_and_successors_follow_edge_order():
    edges = make_edges(("c", "d"), ("a", "d"), ("d", "e"), ("d", "f"))

    assert predecessors("d", edges) == ["c", "a"]
    assert successors("d", edges) == ["e", "f"]
    assert predecessors("a", edges) == []
    assert successors("f", edges) == []


def test_root_and_leaf_nodes():
    nodes = make_nodes("a", "b", "c", "lonely")
    edges = make_edges(("a", "b"), ("b", "c"))

    assert find_root_nodes(nodes, edges) == ["a", "lonely"]
    assert find_leaf_nodes(nodes, edges) == ["c", "lonely"]
