"""LLM Provider abstraction for pluggable LLM backends."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """Response from an LLM call.

    Token counts are None when the backend did not report usage.
    """

    content: str
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None
    stop_reason: str = ""
    raw_response: Any = None

    @property
    def has_usage(self) -> bool:
        return self.input_tokens is not None or self.output_tokens is not None


class LLMProvider(ABC):
    """
    Abstract LLM provider - plug in any LLM backend.

    Implementations should handle:
    - API authentication
    - Request/response formatting
    - Token counting
    - Error handling (raise, never return an error string)
    """

    @abstractmethod
    def complete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation history [{role: "user"|"assistant", content: str}]
            system: System prompt
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with content and metadata
        """
        pass

    async def acomplete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """
        Async variant of complete().

        Default implementation runs complete() in a worker thread.
        Subclasses SHOULD override when the backend has a native async client.
        """
        return await asyncio.to_thread(self.complete, messages, system, max_tokens)
