"""Deterministic offline provider for tests and dry runs."""

from typing import Any

from pipeflow.llm.provider import LLMProvider, LLMResponse


class MockLLMProvider(LLMProvider):
    """Echoes the last user message back, prefixed with the system prompt's first line.

    Token usage is the whitespace word count of the prompt and the reply.
    """

    def __init__(self, model: str = "mock-echo", reply: str | None = None):
        self.model = model
        self.reply = reply
        self.calls: list[dict[str, Any]] = []

    def complete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
    ) -> LLMResponse:
        self.calls.append({"messages": messages, "system": system, "max_tokens": max_tokens})

        prompt = messages[-1]["content"] if messages else ""
        if self.reply is not None:
            content = self.reply
        else:
            persona = system.splitlines()[0] if system else "mock"
            content = f"[{persona}] {prompt}"

        prompt_tokens = len(prompt.split()) + len(system.split())
        return LLMResponse(
            content=content,
            model=self.model,
            input_tokens=prompt_tokens,
            output_tokens=len(content.split()),
            stop_reason="end_turn",
        )

    async def acomplete(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 1024,
    ) -> LLMResponse:
        return self.complete(messages, system, max_tokens)
