"""
Context construction - what a node sees as its prompt.

A node with predecessors gets one labeled block per finished predecessor,
in predecessor order. A node without predecessors gets the run's input text
untouched; root nodes are the only way external input enters the graph.
"""

from collections.abc import Mapping, Sequence

from pipeflow.graph.node import NodeResult, NodeStatus, result_key

OUTPUT_HEADER = '=== output of agent "{name}" ==='
SECTION_SEPARATOR = "\n\n---\n\n"
ITERATION_MARKER = "\n\n(iteration {number})"
TRAILING_INSTRUCTION = "\n\n---\nAct on the context above directly and produce your result now."

UNKNOWN_AGENT_NAME = "unknown agent"
AGENT_NOT_FOUND_ERROR = "Agent not found"
AGENT_NOT_FOUND_OUTPUT = "⚠️ [error: agent not found, this node was skipped]"


def failure_note(agent_name: str, message: str) -> str:
    """Inline annotation stored as the output of a failed node."""
    return (
        f'⚠️ [error in agent "{agent_name}"]: {message}\n'
        "(this note was passed on to the next step automatically)"
    )


def resolve_predecessor_keys(
    predecessor_ids: Sequence[str],
    results: Mapping[str, NodeResult],
    iteration: int | None = None,
) -> list[str]:
    """
    Map predecessor node IDs to the result-keys a node should read.

    From the second iteration on, the previous iteration's result is
    preferred, then the current iteration's, then the bare node ID.
    """
    if not iteration:
        return list(predecessor_ids)

    keys = []
    for node_id in predecessor_ids:
        previous = result_key(node_id, iteration - 1)
        current = result_key(node_id, iteration)
        if previous in results:
            keys.append(previous)
        elif current in results:
            keys.append(current)
        else:
            keys.append(node_id)
    return keys


def build_node_input(
    predecessor_keys: Sequence[str],
    results: Mapping[str, NodeResult],
    initial_input: str,
    iteration: int | None = None,
    agent_names: Mapping[str, str] | None = None,
) -> str:
    """
    Assemble a node's prompt from its predecessors' outputs.

    Only predecessors in a terminal state with non-empty output contribute.
    If none do, the run's input text is used as is.

    Args:
        predecessor_keys: Result-keys from ``resolve_predecessor_keys``
        results: The run's results map
        initial_input: The run's input text
        iteration: Current loop iteration (None when not looping)
        agent_names: node_id -> agent name, preferred over the name on the result
    """
    if not predecessor_keys:
        return initial_input

    agent_names = agent_names or {}
    parts = []
    for key in predecessor_keys:
        result = results.get(key)
        if result is None or not result.status.is_terminal or not result.output:
            continue
        name = agent_names.get(result.node_id) or result.agent_name or UNKNOWN_AGENT_NAME
        parts.append(f"{OUTPUT_HEADER.format(name=name)}\n{result.output}")

    if not parts:
        return initial_input

    prompt = SECTION_SEPARATOR.join(parts)
    if iteration:
        prompt += ITERATION_MARKER.format(number=iteration + 1)
    return prompt + TRAILING_INSTRUCTION


def synthesize_final_output(
    last_level_node_ids: Sequence[str],
    results: Mapping[str, NodeResult],
    iteration: int | None = None,
) -> str:
    """Join the outputs of the last level, marking which nodes failed."""
    parts = []
    for node_id in last_level_node_ids:
        result = results.get(result_key(node_id, iteration))
        if result is None or not result.output:
            continue
        if result.status == NodeStatus.FAILED:
            prefix = f"[⚠️ {result.agent_name}: failed]"
        else:
            prefix = f"[{result.agent_name}]"
        parts.append(f"{prefix}: {result.output}")
    return SECTION_SEPARATOR.join(parts)
