"""
Pipeline Executor - Runs agent graphs.

The executor:
1. Strips authorized loop back edges and checks the rest is acyclic
2. Computes execution levels once
3. Runs every level with all of its nodes in parallel, level after level
4. Repeats the whole pass once per loop iteration
5. Publishes a full state snapshot after every change
6. Synthesizes the final output from the last level

A failing node never stops the run. Its error is written into its output
so that downstream nodes can see and react to it.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from pipeflow.errors import GraphCycleError
from pipeflow.graph.context import (
    AGENT_NOT_FOUND_ERROR,
    AGENT_NOT_FOUND_OUTPUT,
    UNKNOWN_AGENT_NAME,
    build_node_input,
    failure_note,
    resolve_predecessor_keys,
    synthesize_final_output,
)
from pipeflow.graph.cycles import has_cycle, remove_back_edges
from pipeflow.graph.edge import EdgeSpec
from pipeflow.graph.levels import ExecutionLevel, compute_levels, predecessors
from pipeflow.graph.node import NodeResult, NodeSpec, NodeStatus, result_key
from pipeflow.invoker import AgentSpec, InvokeFn, StepInvoker, as_invoke_fn
from pipeflow.observability import set_trace_context
from pipeflow.schemas.execution import ExecutionState, ExecutionStatus, LoopConfig, LoopInfo

ProgressCallback = Callable[[ExecutionState], None]

RUN_ABORTED_ERROR = "Run aborted"


@dataclass
class _RunContext:
    """Everything a level step needs, fixed for the duration of a run."""

    node_map: dict[str, NodeSpec]
    edges: list[EdgeSpec]
    agents: Mapping[str, AgentSpec]
    agent_names: dict[str, str]
    initial_input: str
    state: ExecutionState
    publish: Callable[[], None]


class PipelineExecutor:
    """
    Executes pipeline graphs.

    Example:
        executor = PipelineExecutor(invoker=LLMStepInvoker())

        state = await executor.run(
            nodes=[NodeSpec(id="a", agent_ref="writer"), NodeSpec(id="b", agent_ref="editor")],
            edges=[EdgeSpec(id="e1", source="a", target="b")],
            agents={"writer": writer, "editor": editor},
            initial_input="Write a haiku about graphs",
            on_update=lambda s: print(s.status, s.current_level),
        )
    """

    def __init__(self, invoker: StepInvoker | InvokeFn):
        """
        Initialize the executor.

        Args:
            invoker: Turns (agent, input text) into output; called once per node
                per iteration, never retried
        """
        self._invoke = as_invoke_fn(invoker)
        self.logger = logging.getLogger(__name__)
        self._abort_requested = asyncio.Event()

    def request_abort(self) -> None:
        """
        Ask the current run to stop.

        Checked before every level; nodes already running in the current
        level finish normally. The run then ends as FAILED.
        """
        self._abort_requested.set()
        self.logger.info("⏹ Abort requested - will stop at next level boundary")

    async def run(
        self,
        nodes: Sequence[NodeSpec],
        edges: Sequence[EdgeSpec],
        agents: Mapping[str, AgentSpec],
        initial_input: str,
        on_update: ProgressCallback | None = None,
        loop_config: LoopConfig | None = None,
    ) -> ExecutionState:
        """
        Execute a graph.

        Args:
            nodes: Graph nodes
            edges: Graph edges, possibly including loop back edges
            agents: agent_ref -> AgentSpec
            initial_input: Text given to every root node
            on_update: Called with a deep snapshot after every state change
            loop_config: Back edges to drop and how many times to run the rest

        Returns:
            The final ExecutionState (COMPLETED, or FAILED after an abort)

        Raises:
            GraphCycleError: the graph is still cyclic after removing the
                loop back edges; nothing has been executed
        """
        nodes = list(nodes)
        working_edges = list(edges)
        iterations = 1

        if loop_config is not None:
            known_ids = {edge.id for edge in working_edges}
            unknown = [eid for eid in loop_config.back_edge_ids if eid not in known_ids]
            if unknown:
                self.logger.warning(f"Ignoring unknown loop back edges: {unknown}")
            working_edges = remove_back_edges(working_edges, loop_config.back_edge_ids)
            iterations = loop_config.iterations

        if has_cycle(nodes, working_edges):
            if loop_config is not None:
                raise GraphCycleError(
                    "Graph still contains a cycle after removing the loop back edges"
                )
            raise GraphCycleError(
                "Graph contains a cycle; pass a LoopConfig naming its back edges to run it as a loop"
            )

        levels = compute_levels(nodes, working_edges)

        self._abort_requested.clear()
        run_id = uuid.uuid4().hex
        set_trace_context(run_id=run_id)

        state = ExecutionState(
            status=ExecutionStatus.RUNNING,
            total_levels=len(levels) * iterations,
            start_time=datetime.now(),
            loop_info=LoopInfo(total_iterations=iterations) if iterations > 1 else None,
        )

        agent_names: dict[str, str] = {}
        for node in nodes:
            agent = agents.get(node.agent_ref)
            if agent is not None:
                agent_names[node.id] = agent.name
            state.results[node.id] = NodeResult(
                node_id=node.id,
                agent_id=node.agent_ref,
                agent_name=agent.name if agent else UNKNOWN_AGENT_NAME,
            )

        def publish() -> None:
            if on_update is not None:
                on_update(state.snapshot())

        ctx = _RunContext(
            node_map={node.id: node for node in nodes},
            edges=working_edges,
            agents=agents,
            agent_names=agent_names,
            initial_input=initial_input,
            state=state,
            publish=publish,
        )

        self.logger.info(
            f"▶ Run started: {len(nodes)} nodes, {len(levels)} levels, {iterations} iteration(s)"
        )
        publish()

        try:
            finished = await self._run_iterations(levels, iterations, ctx)

            if finished:
                if levels:
                    last_iteration = iterations - 1 if iterations > 1 else None
                    state.final_output = synthesize_final_output(
                        levels[-1].node_ids, state.results, last_iteration
                    )
                state.status = ExecutionStatus.COMPLETED
                failed = len(state.results_with_status(NodeStatus.FAILED))
                self.logger.info(
                    f"✓ Run completed ({failed} failed node result(s), "
                    f"{state.total_tokens} tokens)"
                )
            else:
                state.status = ExecutionStatus.FAILED
                state.error = RUN_ABORTED_ERROR
                self.logger.warning("⏹ Run aborted")
            state.end_time = datetime.now()
        except Exception as e:
            state.status = ExecutionStatus.FAILED
            state.error = str(e) or type(e).__name__
            state.end_time = datetime.now()
            self.logger.exception(f"✗ Run failed: {state.error}")
            publish()
            raise

        publish()
        return state

    async def _run_iterations(
        self,
        levels: list[ExecutionLevel],
        iterations: int,
        ctx: _RunContext,
    ) -> bool:
        """Run every level of every iteration. Returns False if aborted."""
        state = ctx.state
        for iteration in range(iterations):
            if state.loop_info is not None:
                state.loop_info.current_iteration = iteration
                self.logger.info(f"↻ Iteration {iteration + 1}/{iterations}")

            for level in levels:
                if self._abort_requested.is_set():
                    return False
                state.current_level = iteration * len(levels) + level.level
                ctx.publish()
                await self._execute_level(level, iteration if iterations > 1 else None, ctx)

        return True

    async def _execute_level(
        self,
        level: ExecutionLevel,
        iteration: int | None,
        ctx: _RunContext,
    ) -> None:
        """Run all nodes of one level concurrently and wait for every one of them."""
        if len(level.node_ids) > 1:
            self.logger.info(
                f"   ⑂ Level {level.level}: executing {len(level.node_ids)} nodes in parallel"
            )
        await asyncio.gather(
            *(self._execute_node(node_id, level, iteration, ctx) for node_id in level.node_ids)
        )

    async def _execute_node(
        self,
        node_id: str,
        level: ExecutionLevel,
        iteration: int | None,
        ctx: _RunContext,
    ) -> None:
        """Run one node. Owns exactly one result-key; never raises for step failures."""
        # Each gathered coroutine runs in its own copy of the context
        set_trace_context(node_id=node_id, iteration=iteration)

        state = ctx.state
        node = ctx.node_map[node_id]
        key = result_key(node_id, iteration)
        agent = ctx.agents.get(node.agent_ref)

        if agent is None:
            now = datetime.now()
            state.results[key] = NodeResult(
                node_id=node_id,
                agent_id=node.agent_ref,
                agent_name=UNKNOWN_AGENT_NAME,
                output=AGENT_NOT_FOUND_OUTPUT,
                status=NodeStatus.FAILED,
                error=AGENT_NOT_FOUND_ERROR,
                start_time=now,
                end_time=now,
                duration_ms=0,
                level=level.level,
                iteration=iteration,
            )
            state.active_nodes.discard(node_id)
            self.logger.error(f"      ✗ {node_id}: agent '{node.agent_ref}' not found")
            ctx.publish()
            return

        predecessor_keys = resolve_predecessor_keys(
            predecessors(node_id, ctx.edges), state.results, iteration
        )
        node_input = build_node_input(
            predecessor_keys,
            state.results,
            ctx.initial_input,
            iteration=iteration,
            agent_names=ctx.agent_names,
        )

        result = NodeResult(
            node_id=node_id,
            agent_id=agent.id,
            agent_name=agent.name,
            input=node_input,
            status=NodeStatus.RUNNING,
            start_time=datetime.now(),
            level=level.level,
            iteration=iteration,
        )
        state.results[key] = result
        state.active_nodes.add(node_id)
        self.logger.info(f"      ▶ {agent.name}: executing")
        ctx.publish()

        started = time.monotonic()
        try:
            outcome = await self._invoke(agent, node_input)
        except Exception as e:  # noqa: BLE001
            message = str(e) or type(e).__name__
            result.output = failure_note(agent.name, message)
            result.error = message
            result.status = NodeStatus.FAILED
            self.logger.error(f"      ✗ {agent.name}: {message}")
        else:
            result.output = outcome.output
            result.token_usage = outcome.token_usage
            result.status = NodeStatus.COMPLETED

        result.end_time = datetime.now()
        result.duration_ms = int((time.monotonic() - started) * 1000)
        state.active_nodes.discard(node_id)

        if result.status == NodeStatus.COMPLETED:
            tokens = result.token_usage.total if result.token_usage else "n/a"
            self.logger.info(
                f"      ✓ {agent.name}: success (tokens: {tokens}, latency: {result.duration_ms}ms)",
                extra={"duration_ms": result.duration_ms, "agent_id": agent.id},
            )
        ctx.publish()
