"""Schemas describing a pipeline run."""

from pipeflow.schemas.execution import ExecutionState, ExecutionStatus, LoopConfig, LoopInfo

__all__ = ["ExecutionState", "ExecutionStatus", "LoopConfig", "LoopInfo"]
