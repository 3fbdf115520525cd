"""
pipeflow - run graphs of LLM agents.

Nodes are agent steps, edges carry one step's output into the next. The
executor runs independent steps in parallel level by level, keeps going when
a step fails, and can run a cyclic graph as a bounded loop.
"""

from pipeflow.errors import GraphCycleError, GraphValidationError, InvocationError, PipelineError
from pipeflow.graph import (
    CycleInfo,
    EdgeCondition,
    EdgeConditionSpec,
    EdgeSpec,
    ExecutionLevel,
    GraphSpec,
    NodeResult,
    NodeSpec,
    NodeStatus,
    PipelineExecutor,
    TokenUsage,
    compute_levels,
    detect_cycles,
    has_cycle,
)
from pipeflow.invoker import AgentSpec, InvocationResult, LLMStepInvoker, StepInvoker
from pipeflow.schemas import ExecutionState, ExecutionStatus, LoopConfig

__version__ = "0.1.0"

__all__ = [
    "AgentSpec",
    "CycleInfo",
    "EdgeCondition",
    "EdgeConditionSpec",
    "EdgeSpec",
    "ExecutionLevel",
    "ExecutionState",
    "ExecutionStatus",
    "GraphCycleError",
    "GraphSpec",
    "GraphValidationError",
    "InvocationError",
    "InvocationResult",
    "LLMStepInvoker",
    "LoopConfig",
    "NodeResult",
    "NodeSpec",
    "NodeStatus",
    "PipelineError",
    "PipelineExecutor",
    "StepInvoker",
    "TokenUsage",
    "compute_levels",
    "detect_cycles",
    "has_cycle",
]
