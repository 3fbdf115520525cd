"""
Step invocation - turning (agent, prompt) into text.

The executor treats the invoker as a black box: one call per node per
iteration, no retries, and any exception means the step failed. Anything
with an ``async invoke(agent, input_text)`` method, or a bare async callable
with the same signature, can be used.
"""

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from pipeflow.config import RuntimeConfig
from pipeflow.errors import InvocationError
from pipeflow.graph.node import TokenUsage
from pipeflow.llm.litellm import LiteLLMProvider
from pipeflow.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class AgentSpec(BaseModel):
    """
    An agent as resolved from a node's ``agent_ref``.

    Example:
        AgentSpec(
            id="agent-writer",
            name="Writer",
            system_prompt="You write concise summaries.",
            model="openai/gpt-4o-mini",
            credential_ref="OPENAI_API_KEY",
        )
    """

    id: str
    name: str
    system_prompt: str = ""
    model: str | None = Field(default=None, description="LiteLLM model string")
    credential_ref: str | None = Field(
        default=None, description="Environment variable holding the API key"
    )

    model_config = {"extra": "allow"}


@dataclass
class InvocationResult:
    """Output of one step. ``token_usage`` is None when usage was not reported."""

    output: str
    token_usage: TokenUsage | None = None


@runtime_checkable
class StepInvoker(Protocol):
    """Contract the executor consumes for each node."""

    async def invoke(self, agent: AgentSpec, input_text: str) -> InvocationResult: ...


InvokeFn = Callable[[AgentSpec, str], Awaitable[InvocationResult]]


def as_invoke_fn(invoker: StepInvoker | InvokeFn) -> InvokeFn:
    """Accept either a StepInvoker or a plain async callable."""
    if isinstance(invoker, StepInvoker):
        return invoker.invoke
    if callable(invoker):
        return invoker
    raise TypeError(f"Unsupported step invoker: {invoker!r}")


class LLMStepInvoker:
    """
    Step invoker backed by an LLMProvider.

    With no provider given, a LiteLLMProvider is built per call for the
    agent's model, authenticated with the key named by ``credential_ref``.
    If that variable is unset the backend is not called at all and the step
    completes with a warning text instead.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        config: RuntimeConfig | None = None,
    ):
        self._provider = provider
        self.config = config or RuntimeConfig()

    def _missing_credential_output(self, agent: AgentSpec) -> str:
        return (
            f"⚠️ No API key configured for {agent.name}. "
            f"Set the {agent.credential_ref} environment variable and run again."
        )

    async def invoke(self, agent: AgentSpec, input_text: str) -> InvocationResult:
        provider = self._provider
        if provider is None:
            api_key = None
            if agent.credential_ref:
                api_key = os.environ.get(agent.credential_ref)
                if not api_key:
                    logger.warning(
                        f"No API key in ${agent.credential_ref} for agent '{agent.name}', "
                        "skipping backend call"
                    )
                    return InvocationResult(output=self._missing_credential_output(agent))

            provider = LiteLLMProvider(
                model=agent.model or self.config.model,
                api_key=api_key,
                api_base=self.config.api_base,
                temperature=self.config.temperature,
            )

        try:
            response = await provider.acomplete(
                messages=[{"role": "user", "content": input_text}],
                system=agent.system_prompt,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            raise InvocationError(str(e) or type(e).__name__, agent_id=agent.id) from e

        token_usage = None
        if response.has_usage:
            prompt = response.input_tokens or 0
            completion = response.output_tokens or 0
            token_usage = TokenUsage(prompt=prompt, completion=completion, total=prompt + completion)

        return InvocationResult(output=response.content, token_usage=token_usage)
