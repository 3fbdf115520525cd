"""Shared pipeflow configuration utilities.

Centralises reading of ~/.pipeflow/configuration.json so that the CLI and
the LLM step invoker share one implementation. Set PIPEFLOW_CONFIG to point
at a different file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL = "anthropic/claude-haiku-4-5-20251001"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_ITERATIONS = 1
MAX_LOOP_ITERATIONS = 10

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------


def get_config_path() -> Path:
    override = os.environ.get("PIPEFLOW_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".pipeflow" / "configuration.json"


def get_pipeflow_config() -> dict[str, Any]:
    """Load pipeflow configuration; missing or unreadable files yield {}."""
    config_file = get_config_path()
    if not config_file.exists():
        return {}
    try:
        with open(config_file, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_default_model() -> str:
    """Return the model used for agents that do not name one (LiteLLM model string)."""
    llm = get_pipeflow_config().get("llm", {})
    if llm.get("provider") and llm.get("model"):
        return f"{llm['provider']}/{llm['model']}"
    return DEFAULT_MODEL


def get_max_tokens() -> int:
    """Return the configured max_tokens, falling back to DEFAULT_MAX_TOKENS."""
    return get_pipeflow_config().get("llm", {}).get("max_tokens", DEFAULT_MAX_TOKENS)


def get_default_iterations() -> int:
    """Return the loop iteration count used when the CLI is not told one."""
    value = get_pipeflow_config().get("execution", {}).get("iterations", DEFAULT_ITERATIONS)
    return max(1, min(int(value), MAX_LOOP_ITERATIONS))


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL") or get_pipeflow_config().get("log_level", "INFO")


# ---------------------------------------------------------------------------
# RuntimeConfig
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Runtime configuration loaded from ~/.pipeflow/configuration.json."""

    model: str = field(default_factory=get_default_model)
    temperature: float | None = None
    max_tokens: int = field(default_factory=get_max_tokens)
    api_base: str | None = None
    log_level: str = field(default_factory=get_log_level)
