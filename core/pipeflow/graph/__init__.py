"""Graph structures: Nodes, Edges, cycle analysis, leveling and execution."""

from pipeflow.graph.context import build_node_input, resolve_predecessor_keys
from pipeflow.graph.cycles import CycleInfo, detect_cycles, has_cycle, remove_back_edges
from pipeflow.graph.edge import EdgeCondition, EdgeConditionSpec, EdgeSpec, GraphSpec
from pipeflow.graph.executor import PipelineExecutor, ProgressCallback
from pipeflow.graph.levels import (
    ExecutionLevel,
    compute_levels,
    find_leaf_nodes,
    find_root_nodes,
    predecessors,
    successors,
)
from pipeflow.graph.node import NodeResult, NodeSpec, NodeStatus, TokenUsage, result_key

__all__ = [
    # Node
    "NodeSpec",
    "NodeResult",
    "NodeStatus",
    "TokenUsage",
    "result_key",
    # Edge
    "EdgeSpec",
    "EdgeCondition",
    "EdgeConditionSpec",
    "GraphSpec",
    # Cycles
    "CycleInfo",
    "has_cycle",
    "detect_cycles",
    "remove_back_edges",
    # Levels
    "ExecutionLevel",
    "compute_levels",
    "predecessors",
    "successors",
    "find_root_nodes",
    "find_leaf_nodes",
    # Context
    "build_node_input",
    "resolve_predecessor_keys",
    # Executor
    "PipelineExecutor",
    "ProgressCallback",
]
