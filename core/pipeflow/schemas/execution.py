"""
Execution Schema - The live state of one pipeline run.

One ExecutionState is created per call to PipelineExecutor.run(), mutated
while the run progresses and handed to observers as deep snapshots.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from pipeflow.config import MAX_LOOP_ITERATIONS
from pipeflow.graph.node import NodeResult, NodeStatus


class ExecutionStatus(StrEnum):
    """Status of a run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LoopConfig(BaseModel):
    """
    User-confirmed authorization to run a cyclic graph as a bounded loop.

    The listed back edges are removed before leveling and the remaining
    acyclic core is executed ``iterations`` times in sequence.
    """

    back_edge_ids: list[str] = Field(default_factory=list)
    iterations: int = Field(default=1, ge=1, le=MAX_LOOP_ITERATIONS)


class LoopInfo(BaseModel):
    """Progress through a looping run."""

    current_iteration: int = 0
    total_iterations: int


class ExecutionState(BaseModel):
    """Aggregate state of a run, keyed by result-key (see ``result_key``)."""

    status: ExecutionStatus = ExecutionStatus.IDLE
    current_level: int = 0
    total_levels: int = 0
    results: dict[str, NodeResult] = Field(default_factory=dict)
    active_nodes: set[str] = Field(default_factory=set)

    start_time: datetime | None = None
    end_time: datetime | None = None
    final_output: str | None = None
    error: str | None = None

    loop_info: LoopInfo | None = None

    @computed_field
    @property
    def total_tokens(self) -> int:
        return sum(r.token_usage.total for r in self.results.values() if r.token_usage)

    def results_with_status(self, status: NodeStatus) -> list[NodeResult]:
        return [r for r in self.results.values() if r.status == status]

    def snapshot(self) -> "ExecutionState":
        """Deep copy handed to progress callbacks."""
        return self.model_copy(deep=True)
