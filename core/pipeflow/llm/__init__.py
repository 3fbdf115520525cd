"""LLM provider abstraction."""

from pipeflow.llm.litellm import LiteLLMProvider
from pipeflow.llm.mock import MockLLMProvider
from pipeflow.llm.provider import LLMProvider, LLMResponse

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LiteLLMProvider",
    "MockLLMProvider",
]
