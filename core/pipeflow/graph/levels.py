"""
Topological leveling.

Partitions an acyclic graph into ordered levels (Kahn's algorithm, one BFS
layer per level). Every node's predecessors sit in strictly earlier levels,
so nodes of the same level can run in parallel.
"""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from pipeflow.errors import GraphCycleError
from pipeflow.graph.cycles import has_cycle
from pipeflow.graph.edge import EdgeSpec
from pipeflow.graph.node import NodeSpec


class ExecutionLevel(BaseModel):
    """Nodes that can run in parallel at one depth of the graph."""

    level: int
    node_ids: list[str] = Field(default_factory=list)


def compute_levels(nodes: Sequence[NodeSpec], edges: Sequence[EdgeSpec]) -> list[ExecutionLevel]:
    """
    Compute execution levels for an acyclic graph.

    Raises:
        GraphCycleError: if the graph contains a cycle. Callers should check
            with ``has_cycle`` first; no partial result is ever returned.
    """
    if has_cycle(nodes, edges):
        raise GraphCycleError("Graph contains a cycle; execution levels are undefined")

    in_degree: dict[str, int] = {node.id: 0 for node in nodes}
    adj: dict[str, list[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        if edge.source in adj and edge.target in in_degree:
            adj[edge.source].append(edge.target)
            in_degree[edge.target] += 1

    levels: list[ExecutionLevel] = []
    current = [node_id for node_id, degree in in_degree.items() if degree == 0]

    while current:
        levels.append(ExecutionLevel(level=len(levels), node_ids=list(current)))
        upcoming: list[str] = []
        for node_id in current:
            for neighbor in adj[node_id]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    upcoming.append(neighbor)
        current = upcoming

    return levels


def predecessors(node_id: str, edges: Iterable[EdgeSpec]) -> list[str]:
    """Source node IDs of all edges entering ``node_id``, in edge order."""
    return [edge.source for edge in edges if edge.target == node_id]


def successors(node_id: str, edges: Iterable[EdgeSpec]) -> list[str]:
    """Target node IDs of all edges leaving ``node_id``, in edge order."""
    return [edge.target for edge in edges if edge.source == node_id]


def find_root_nodes(nodes: Sequence[NodeSpec], edges: Iterable[EdgeSpec]) -> list[str]:
    """Nodes with no incoming edge; they receive the run's input text."""
    targets = {edge.target for edge in edges}
    return [node.id for node in nodes if node.id not in targets]


def find_leaf_nodes(nodes: Sequence[NodeSpec], edges: Iterable[EdgeSpec]) -> list[str]:
    """Nodes with no outgoing edge."""
    sources = {edge.source for edge in edges}
    return [node.id for node in nodes if node.id not in sources]
