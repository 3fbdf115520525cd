"""
Command-line interface for pipeflow.

Usage:
    pipeflow levels pipeline.json
    pipeflow cycles pipeline.json
    pipeflow run pipeline.json --input "Draft a release note"
    pipeflow run pipeline.json --input "..." --iterations 3 --back-edge e4
    pipeflow run pipeline.json --input "..." --mock --json
"""

import argparse
import asyncio
import sys

from pipeflow.config import MAX_LOOP_ITERATIONS, RuntimeConfig, get_default_iterations
from pipeflow.errors import PipelineError
from pipeflow.graph.cycles import detect_cycles
from pipeflow.graph.executor import PipelineExecutor
from pipeflow.graph.levels import compute_levels
from pipeflow.graph.loader import GraphFile, load_graph_file
from pipeflow.invoker import LLMStepInvoker
from pipeflow.llm.mock import MockLLMProvider
from pipeflow.observability import configure_logging
from pipeflow.schemas.execution import ExecutionState, LoopConfig


class ProgressPrinter:
    """Prints one line per node status change seen in progress snapshots."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self._seen: dict[str, str] = {}

    def __call__(self, state: ExecutionState) -> None:
        for key, result in state.results.items():
            status = str(result.status)
            if self._seen.get(key) == status:
                continue
            self._seen[key] = status
            if result.status == "pending":
                continue
            iteration = f" (iteration {result.iteration + 1})" if result.iteration else ""
            print(
                f"[level {state.current_level + 1}/{state.total_levels}] "
                f"{result.agent_name} <{result.node_id}>{iteration}: {status}",
                file=self.stream,
            )


def cmd_levels(args: argparse.Namespace) -> int:
    graph_file = load_graph_file(args.graph)
    cycles = detect_cycles(graph_file.nodes, graph_file.edges)
    if cycles is not None:
        print(
            f"Graph is cyclic (back edges: {', '.join(cycles.back_edge_ids)}); "
            "no execution levels",
            file=sys.stderr,
        )
        return 1

    for level in compute_levels(graph_file.nodes, graph_file.edges):
        print(f"Level {level.level}: {', '.join(level.node_ids)}")
    return 0


def cmd_cycles(args: argparse.Namespace) -> int:
    graph_file = load_graph_file(args.graph)
    cycles = detect_cycles(graph_file.nodes, graph_file.edges)
    if cycles is None:
        print("No cycles")
        return 0

    print("Back edges:")
    for edge in cycles.back_edges:
        print(f"  {edge.id}: {edge.source} -> {edge.target}")
    print(f"Cycle nodes: {', '.join(cycles.cycle_nodes)}")
    return 0


def _loop_config(args: argparse.Namespace, graph_file: GraphFile) -> LoopConfig | None:
    back_edge_ids = list(args.back_edge or [])
    iterations = args.iterations

    if not back_edge_ids:
        cycles = detect_cycles(graph_file.nodes, graph_file.edges)
        if cycles is None:
            return LoopConfig(iterations=iterations) if iterations > 1 else None
        back_edge_ids = cycles.back_edge_ids

    return LoopConfig(back_edge_ids=back_edge_ids, iterations=iterations)


def cmd_run(args: argparse.Namespace) -> int:
    graph_file = load_graph_file(args.graph)

    initial_input = args.input if args.input is not None else graph_file.input
    if initial_input is None:
        print("Error: no input given (use --input or an 'input' field in the file)", file=sys.stderr)
        return 2

    if not 1 <= args.iterations <= MAX_LOOP_ITERATIONS:
        print(f"Error: --iterations must be between 1 and {MAX_LOOP_ITERATIONS}", file=sys.stderr)
        return 2

    config = RuntimeConfig()
    if args.model:
        config.model = args.model
    provider = MockLLMProvider() if args.mock else None
    executor = PipelineExecutor(invoker=LLMStepInvoker(provider=provider, config=config))

    state = asyncio.run(
        executor.run(
            nodes=graph_file.nodes,
            edges=graph_file.edges,
            agents=graph_file.agent_map(),
            initial_input=initial_input,
            on_update=None if args.quiet else ProgressPrinter(),
            loop_config=_loop_config(args, graph_file),
        )
    )

    if args.json:
        print(state.model_dump_json(indent=2))
    else:
        print(state.final_output or "")
    return 0 if state.status == "completed" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipeflow",
        description="pipeflow - run graphs of LLM agents",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument(
        "--log-format", default="auto", choices=["auto", "human", "json"], help="Log output format"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    levels_parser = subparsers.add_parser("levels", help="Print execution levels of a graph")
    levels_parser.add_argument("graph", help="Path to a graph JSON file")
    levels_parser.set_defaults(func=cmd_levels)

    cycles_parser = subparsers.add_parser("cycles", help="Print back edges and cycle nodes")
    cycles_parser.add_argument("graph", help="Path to a graph JSON file")
    cycles_parser.set_defaults(func=cmd_cycles)

    run_parser = subparsers.add_parser("run", help="Execute a graph")
    run_parser.add_argument("graph", help="Path to a graph JSON file")
    run_parser.add_argument("--input", "-i", default=None, help="Input text for root nodes")
    run_parser.add_argument(
        "--iterations",
        "-n",
        type=int,
        default=None,
        help=f"Loop iterations for cyclic graphs (1-{MAX_LOOP_ITERATIONS})",
    )
    run_parser.add_argument(
        "--back-edge",
        action="append",
        metavar="EDGE_ID",
        help="Edge closing a loop (repeatable); detected automatically if omitted",
    )
    run_parser.add_argument("--model", default=None, help="Model for agents without one")
    run_parser.add_argument("--mock", action="store_true", help="Use the offline echo backend")
    run_parser.add_argument("--json", action="store_true", help="Print the final state as JSON")
    run_parser.add_argument("--quiet", "-q", action="store_true", help="No progress lines")
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "iterations", 0) is None:
        args.iterations = get_default_iterations()

    configure_logging(
        level=args.log_level or RuntimeConfig().log_level,
        format=args.log_format,
    )

    try:
        return args.func(args)
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
