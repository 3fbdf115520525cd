"""LiteLLM-backed provider: one interface for OpenAI, Anthropic, Gemini, Mistral, ..."""

import logging
from typing import Any

import litellm

from pipeflow.llm.provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM model strings.

    Example:
        llm = LiteLLMProvider(model="anthropic/claude-haiku-4-5-20251001")
        response = await llm.acomplete([{"role": "user", "content": "Hello"}])
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_base: str | None = None,
        temperature: float | None = None,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.temperature = temperature

    def _request_kwargs(
        self,
        messages: list[dict[str, Any]],
        system: str,
        max_tokens: int,
    ) -> dict[str, Any]:
        full_messages = list(messages)
        if system:
            full_messages.insert(0, {"role": "system", "content": system})

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": full_messages,
            "max_tokens": max_tokens,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        return kwargs

    def _to_response(self, response: Any) -> LLMResponse:
        choice = response.choices[0]
        content = choice.message.content or ""
        usage = getattr(response, "usage", None)

        return LLMResponse(
            content=content,
            model=getattr(response, "model", None) or self.model,
            input_tokens=getattr(usage, "prompt_tokens", None) if usage else None,
            output_tokens=getattr(usage, "completion_tokens", None) if usage else None,
            stop_reason=getattr(choice, "finish_reason", "") or "",
            raw_response=response,
        )

    def complete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
    ) -> LLMResponse:
        logger.debug(f"LiteLLM completion request: model={self.model}")
        response = litellm.completion(**self._request_kwargs(messages, system, max_tokens))
        return self._to_response(response)

    async def acomplete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
    ) -> LLMResponse:
        logger.debug(f"LiteLLM async completion request: model={self.model}")
        response = await litellm.acompletion(**self._request_kwargs(messages, system, max_tokens))
        return self._to_response(response)
