"""LiteLLM provider: one client for openai/*, anthropic/*, openrouter/*, ..."""

from __future__ import annotations

import json
import os
from typing import Any, AsyncIterator

import litellm
from loguru import logger

from flowbot.core.config.schema import Config
from flowbot.core.errors import ProviderError
from flowbot.core.providers.base import (
    BaseLLMProvider,
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)

litellm.suppress_debug_info = True


class LiteLLMProvider(BaseLLMProvider):
    """LiteLLM-backed provider. Defaults come from ``llm.*`` config."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self.default_model = config.llm.model
        self.default_max_tokens = config.llm.max_tokens
        self.temperature = config.llm.temperature
        self.cost_per_1k_tokens = config.llm.cost_per_1k_tokens
        self.system_prompt = config.llm.system_prompt
        self._setup_keys(config)

    async def generate(self, request: CompletionRequest) -> CompletionResponse:
        kwargs = self._build_kwargs(request)
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            logger.error(f"LLM error ({kwargs['model']}): {e}")
            raise ProviderError(f"LLM call failed: {e}") from e
        result = self._to_response(response)
        if not result.message.content.strip():
            raise ProviderError("provider returned an empty reply")
        return result

    async def generate_with_tools(
        self, request: CompletionRequest, tools: list[ToolDefinition]
    ) -> CompletionResponse:
        kwargs = self._build_kwargs(request)
        if tools:
            kwargs["tools"] = [t.to_dict() for t in tools]
            kwargs["tool_choice"] = "auto"
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            logger.error(f"LLM error ({kwargs['model']}): {e}")
            raise ProviderError(f"LLM call failed: {e}") from e
        return self._to_response(response)

    async def stream(self, request: CompletionRequest) -> AsyncIterator[str]:
        kwargs = self._build_kwargs(request)
        kwargs["stream"] = True
        try:
            response = await litellm.acompletion(**kwargs)
            async for chunk in response:
                delta = chunk.choices[0].delta
                text = getattr(delta, "content", None)
                if text:
                    yield text
        except Exception as e:
            logger.error(f"LLM stream error ({kwargs['model']}): {e}")
            raise ProviderError(f"LLM stream failed: {e}") from e

    def estimate_cost(self, request: CompletionRequest) -> float:
        """Rough cost from prompt tokens + requested completion budget."""
        model = request.model or self.default_model
        messages = [m.to_dict() for m in request.messages]
        try:
            prompt_tokens = litellm.token_counter(model=model, messages=messages)
        except Exception as e:
            logger.debug(f"token_counter failed for {model}: {e}")
            prompt_tokens = sum(len(m.content) for m in request.messages) // 4
        total = prompt_tokens + (request.max_tokens or self.default_max_tokens)
        return total / 1000 * self.cost_per_1k_tokens

    # ── Helpers ─────────────────────────────────────────────

    def _build_kwargs(self, request: CompletionRequest) -> dict[str, Any]:
        model = request.model or self.default_model
        messages = [m.to_dict() for m in request.messages]
        if self.system_prompt and not any(m["role"] == "system" for m in messages):
            messages.insert(0, {"role": "system", "content": self.system_prompt})

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self.temperature if request.temperature is None else request.temperature,
            "max_tokens": request.max_tokens or self.default_max_tokens,
        }
        api_base = self._config.get_api_base(model)
        if api_base:
            kwargs["api_base"] = api_base
        return kwargs

    @staticmethod
    def _to_response(response: Any) -> CompletionResponse:
        """Convert a litellm response to a CompletionResponse."""
        choice = response.choices[0]
        msg = choice.message

        tool_calls: list[ToolCall] = []
        if getattr(msg, "tool_calls", None):
            for tc in msg.tool_calls:
                args = tc.function.arguments
                if isinstance(args, str):
                    try:
                        args = json.loads(args)
                    except json.JSONDecodeError:
                        args = {"raw": args}
                tool_calls.append(ToolCall(id=tc.id, name=tc.function.name, args=args or {}))

        usage = getattr(response, "usage", None)
        prompt = getattr(usage, "prompt_tokens", 0) or 0
        completion = getattr(usage, "completion_tokens", 0) or 0
        total = getattr(usage, "total_tokens", 0) or prompt + completion

        return CompletionResponse(
            message=ChatMessage(role="assistant", content=msg.content or ""),
            tokens=TokenUsage(input=prompt, output=completion, total=total),
            tool_calls=tool_calls,
        )

    @staticmethod
    def _setup_keys(config: Config) -> None:
        """Set env vars for LiteLLM from config."""
        for env, val in [
            ("ANTHROPIC_API_KEY", config.providers.anthropic.api_key),
            ("OPENAI_API_KEY", config.providers.openai.api_key),
            ("OPENROUTER_API_KEY", config.providers.openrouter.api_key),
            ("DEEPSEEK_API_KEY", config.providers.deepseek.api_key),
            ("GROQ_API_KEY", config.providers.groq.api_key),
            ("GEMINI_API_KEY", config.providers.gemini.api_key),
        ]:
            if val:
                os.environ.setdefault(env, val)
