"""
Node Protocol - What a graph vertex is and what it produces.

A node is a single agent invocation step. It only references its agent
through ``agent_ref``; the agent itself (name, model, credentials) is
resolved from the agent map supplied at run time.

Each execution of a node produces a NodeResult. When a graph is run as a
bounded loop, a node accumulates one NodeResult per iteration.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class NodeSpec(BaseModel):
    """
    Specification for a node in the graph.

    Example:
        NodeSpec(id="summarize", agent_ref="agent-summarizer")
    """

    id: str = Field(description="Unique node ID within the graph")
    agent_ref: str = Field(description="Key of the agent in the agent map")

    model_config = {"extra": "allow", "frozen": True}


class NodeStatus(StrEnum):
    """Lifecycle of one NodeResult."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # Reserved for external gating, never set by the executor

    @property
    def is_terminal(self) -> bool:
        return self in (NodeStatus.COMPLETED, NodeStatus.FAILED, NodeStatus.SKIPPED)


class TokenUsage(BaseModel):
    """Token counts reported by a backend call."""

    prompt: int = 0
    completion: int = 0
    total: int = 0


class NodeResult(BaseModel):
    """
    Outcome of running one node in one iteration.

    Starts as PENDING, moves to RUNNING and ends COMPLETED or FAILED.
    A FAILED result still carries an ``output`` (an inline error note) so
    downstream nodes have something to quote.
    """

    node_id: str
    agent_id: str
    agent_name: str
    input: str = ""
    output: str = ""
    status: NodeStatus = NodeStatus.PENDING

    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_ms: int | None = None

    # None means the backend did not report usage
    token_usage: TokenUsage | None = None
    error: str | None = None

    level: int | None = None
    iteration: int | None = None


def result_key(node_id: str, iteration: int | None = None) -> str:
    """Key of a node's result in the results map.

    Iteration 0 (and non-looping runs) use the bare node id.
    """
    if iteration:
        return f"{node_id}__iter{iteration}"
    return node_id
