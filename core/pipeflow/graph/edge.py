"""
Edge Protocol - How nodes connect in a graph.

Edges define:
1. Source and target nodes
2. An optional trigger condition

Every edge is a hard dependency for execution: the target only runs once
the source has reached a terminal state. The condition is metadata carried
through for the editor that built the graph; the executor never evaluates
``expression``.

Edge conditions:
- always: Always traverse after source completes
- on_success: Traverse only if source succeeds
- on_error: Traverse only if source fails
- conditional: Traverse based on a free-text expression
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from pipeflow.errors import GraphValidationError
from pipeflow.graph.node import NodeSpec


class EdgeCondition(StrEnum):
    """When an edge should be traversed."""

    ALWAYS = "always"
    ON_SUCCESS = "on_success"
    ON_ERROR = "on_error"
    CONDITIONAL = "conditional"


class EdgeConditionSpec(BaseModel):
    """Trigger condition attached to an edge."""

    kind: EdgeCondition = EdgeCondition.ALWAYS
    expression: str | None = Field(
        default=None,
        description="Expression for CONDITIONAL edges, e.g. 'output contains APPROVED'",
    )


class EdgeSpec(BaseModel):
    """
    Specification for an edge between nodes.

    Examples:
        # Plain dependency
        EdgeSpec(id="e1", source="research", target="write")

        # Annotated for the editor, still a plain dependency here
        EdgeSpec(
            id="e2",
            source="review",
            target="rewrite",
            condition=EdgeConditionSpec(
                kind=EdgeCondition.CONDITIONAL,
                expression="review requests changes",
            ),
        )
    """

    id: str
    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID")
    condition: EdgeConditionSpec | None = None

    model_config = {"extra": "allow", "frozen": True}

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target


class GraphSpec(BaseModel):
    """
    Complete logical description of a pipeline graph.

    Layout (positions, names, saved catalogs) is not part of it.
    """

    nodes: list[NodeSpec] = Field(default_factory=list)
    edges: list[EdgeSpec] = Field(default_factory=list)

    def get_node(self, node_id: str) -> NodeSpec | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> EdgeSpec | None:
        """Get an edge by ID."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def get_outgoing_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges leaving a node."""
        return [e for e in self.edges if e.source == node_id]

    def get_incoming_edges(self, node_id: str) -> list[EdgeSpec]:
        """Get all edges entering a node."""
        return [e for e in self.edges if e.target == node_id]

    def validate(self) -> list[str]:
        """Validate the graph structure. Cycles are not errors here."""
        errors = []

        seen_nodes: set[str] = set()
        for node in self.nodes:
            if node.id in seen_nodes:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_nodes.add(node.id)

        seen_edges: set[str] = set()
        for edge in self.edges:
            if edge.id in seen_edges:
                errors.append(f"Duplicate edge ID: '{edge.id}'")
            seen_edges.add(edge.id)

            if edge.source not in seen_nodes:
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if edge.target not in seen_nodes:
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")

        return errors

    def validate_or_raise(self) -> None:
        errors = self.validate()
        if errors:
            rendered = "\n".join(f"- {error}" for error in errors)
            raise GraphValidationError(f"Graph validation failed:\n{rendered}")
