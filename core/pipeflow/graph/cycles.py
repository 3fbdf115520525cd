"""
Cycle analysis for pipeline graphs.

A depth-first walk keeps the set of nodes currently on the DFS stack. An
edge pointing at a node that is still on the stack closes a cycle and is a
back edge. The walk restarts from every unvisited node so that disconnected
components and independent cycles are all found in one pass.

Removing every back edge reported by ``detect_cycles`` leaves an acyclic
graph, which is what the executor relies on for bounded loops.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from pipeflow.graph.edge import EdgeSpec
from pipeflow.graph.node import NodeSpec


@dataclass
class CycleInfo:
    """Back edges closing the cycles of a graph and the nodes on those cycles."""

    back_edges: list[EdgeSpec] = field(default_factory=list)
    cycle_nodes: list[str] = field(default_factory=list)

    @property
    def back_edge_ids(self) -> list[str]:
        return [edge.id for edge in self.back_edges]


def _adjacency(nodes: Sequence[NodeSpec], edges: Iterable[EdgeSpec]) -> dict[str, list[EdgeSpec]]:
    adj: dict[str, list[EdgeSpec]] = {node.id: [] for node in nodes}
    for edge in edges:
        # Dangling edges cannot take part in a cycle
        if edge.source in adj and edge.target in adj:
            adj[edge.source].append(edge)
    return adj


def _walk(
    nodes: Sequence[NodeSpec],
    edges: Iterable[EdgeSpec],
    stop_at_first: bool,
) -> tuple[list[EdgeSpec], list[str]]:
    adj = _adjacency(nodes, edges)
    visited: set[str] = set()
    on_stack: set[str] = set()
    back_edges: list[EdgeSpec] = []
    cycle_nodes: dict[str, None] = {}  # ordered set

    for root in adj:
        if root in visited:
            continue

        # path mirrors the DFS stack; frames hold each node's pending out-edges
        path: list[str] = [root]
        frames = [iter(adj[root])]
        visited.add(root)
        on_stack.add(root)

        while frames:
            edge = next(frames[-1], None)
            if edge is None:
                frames.pop()
                on_stack.discard(path.pop())
                continue

            target = edge.target
            if target in on_stack:
                back_edges.append(edge)
                if stop_at_first:
                    return back_edges, [target]
                for node_id in path[path.index(target) :]:
                    cycle_nodes[node_id] = None
            elif target not in visited:
                visited.add(target)
                on_stack.add(target)
                path.append(target)
                frames.append(iter(adj[target]))

    return back_edges, list(cycle_nodes)


def has_cycle(nodes: Sequence[NodeSpec], edges: Iterable[EdgeSpec]) -> bool:
    """Return True if the graph contains at least one directed cycle."""
    back_edges, _ = _walk(nodes, edges, stop_at_first=True)
    return bool(back_edges)


def detect_cycles(nodes: Sequence[NodeSpec], edges: Iterable[EdgeSpec]) -> CycleInfo | None:
    """
    Find every back edge of the graph.

    Returns:
        CycleInfo with all back edges (in the order they appear in ``edges``)
        and the nodes participating in cycles, or None if the graph is acyclic.
    """
    edges = list(edges)
    back_edges, cycle_nodes = _walk(nodes, edges, stop_at_first=False)
    if not back_edges:
        return None

    found = {id(edge) for edge in back_edges}
    return CycleInfo(
        back_edges=[edge for edge in edges if id(edge) in found],
        cycle_nodes=cycle_nodes,
    )


def remove_back_edges(edges: Iterable[EdgeSpec], back_edge_ids: Iterable[str]) -> list[EdgeSpec]:
    """Drop the given edges, leaving the rest in their original order."""
    excluded = set(back_edge_ids)
    return [edge for edge in edges if edge.id not in excluded]
