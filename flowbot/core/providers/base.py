"""Base LLM provider: strategy pattern interface."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from flowbot.core.errors import ProviderError


@dataclass
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionRequest:
    """One completion call. ``None`` model / max_tokens mean provider defaults."""

    messages: list[ChatMessage]
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    total: int = 0


@dataclass
class ToolDefinition:
    """Function tool offered to the model (OpenAI function-calling shape)."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolCall:
    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class CompletionResponse:
    message: ChatMessage
    tokens: TokenUsage = field(default_factory=TokenUsage)
    tool_calls: list[ToolCall] = field(default_factory=list)


class BaseLLMProvider(abc.ABC):
    """Abstract base for LLM providers.

    Only :meth:`generate` is mandatory. Failures raise ``ProviderError``.
    """

    @abc.abstractmethod
    async def generate(self, request: CompletionRequest) -> CompletionResponse:
        """Send a chat completion request and return the assistant message."""
        ...

    async def generate_with_tools(
        self, request: CompletionRequest, tools: list[ToolDefinition]
    ) -> CompletionResponse:
        raise ProviderError(f"{type(self).__name__} does not support tool calls")

    def stream(self, request: CompletionRequest) -> AsyncIterator[str]:
        raise ProviderError(f"{type(self).__name__} does not support streaming")

    def estimate_cost(self, request: CompletionRequest) -> float:
        return 0.0
