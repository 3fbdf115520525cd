"""Load pipeline graphs from JSON files.

File format:

    {
        "input": "optional default input text",
        "nodes": [{"id": "a", "agent_ref": "writer"}, ...],
        "edges": [{"id": "e1", "source": "a", "target": "b",
                   "condition": {"kind": "on_success"}}, ...],
        "agents": [{"id": "writer", "name": "Writer", "system_prompt": "...",
                    "model": "openai/gpt-4o-mini", "credential_ref": "OPENAI_API_KEY"}, ...]
    }
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from pipeflow.errors import GraphValidationError
from pipeflow.graph.edge import EdgeSpec, GraphSpec
from pipeflow.graph.node import NodeSpec
from pipeflow.invoker import AgentSpec


class GraphFile(BaseModel):
    """Contents of a graph file: the graph plus the agents it refers to."""

    input: str | None = None
    nodes: list[NodeSpec] = Field(default_factory=list)
    edges: list[EdgeSpec] = Field(default_factory=list)
    agents: list[AgentSpec] = Field(default_factory=list)

    @property
    def graph(self) -> GraphSpec:
        return GraphSpec(nodes=self.nodes, edges=self.edges)

    def agent_map(self) -> dict[str, AgentSpec]:
        return {agent.id: agent for agent in self.agents}


def load_graph_file(path: str | Path) -> GraphFile:
    """
    Read and validate a graph file.

    Raises:
        GraphValidationError: unreadable file, invalid JSON, schema errors,
            or structural errors (duplicate IDs, dangling edges)
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise GraphValidationError(f"Cannot read graph file {path}: {e}") from e

    try:
        graph_file = GraphFile.model_validate(data)
    except ValidationError as e:
        raise GraphValidationError(f"Invalid graph file {path}:\n{e}") from e

    graph_file.graph.validate_or_raise()

    agent_ids = [agent.id for agent in graph_file.agents]
    duplicates = sorted({aid for aid in agent_ids if agent_ids.count(aid) > 1})
    if duplicates:
        raise GraphValidationError(f"Duplicate agent IDs in {path}: {duplicates}")

    return graph_file
