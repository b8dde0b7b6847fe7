"""Tests for the LiteLLM provider (litellm mocked)."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from flowbot.core.config import Config
from flowbot.core.errors import ProviderError
from flowbot.core.providers.base import (
    BaseLLMProvider,
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    ToolDefinition,
)
from flowbot.core.providers.litellm_llm import LiteLLMProvider

_PATCH = "flowbot.core.providers.litellm_llm.litellm.acompletion"


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture
def cfg():
    return Config(llm={"model": "openai/gpt-4o-mini", "max_tokens": 111, "system_prompt": "Be brief."})


@pytest.fixture
def llm(cfg):
    return LiteLLMProvider(cfg)


def _make_response(content="hello", tool_calls=None):
    """Build a mock litellm response."""
    msg = SimpleNamespace(content=content, tool_calls=tool_calls)
    choice = SimpleNamespace(finish_reason="stop", message=msg)
    usage = SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    return SimpleNamespace(choices=[choice], usage=usage)


def _request(**kwargs):
    return CompletionRequest(messages=[ChatMessage(role="user", content="hi")], **kwargs)


# ── generate ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generate_uses_defaults(llm):
    with patch(_PATCH, new_callable=AsyncMock, return_value=_make_response()) as mock:
        resp = await llm.generate(_request())

    assert resp.message.role == "assistant"
    assert resp.message.content == "hello"
    assert (resp.tokens.input, resp.tokens.output, resp.tokens.total) == (10, 5, 15)

    kwargs = mock.call_args.kwargs
    assert kwargs["model"] == "openai/gpt-4o-mini"
    assert kwargs["max_tokens"] == 111
    assert kwargs["messages"][0] == {"role": "system", "content": "Be brief."}
    assert kwargs["messages"][1] == {"role": "user", "content": "hi"}


@pytest.mark.asyncio
async def test_generate_request_overrides(llm):
    with patch(_PATCH, new_callable=AsyncMock, return_value=_make_response()) as mock:
        await llm.generate(_request(model="anthropic/claude-sonnet", max_tokens=7))
    kwargs = mock.call_args.kwargs
    assert kwargs["model"] == "anthropic/claude-sonnet"
    assert kwargs["max_tokens"] == 7


@pytest.mark.asyncio
async def test_generate_error_raises(llm):
    with patch(_PATCH, new_callable=AsyncMock, side_effect=RuntimeError("rate limited")):
        with pytest.raises(ProviderError, match="rate limited"):
            await llm.generate(_request())


@pytest.mark.asyncio
async def test_generate_empty_reply_raises(llm):
    with patch(_PATCH, new_callable=AsyncMock, return_value=_make_response(content=None)):
        with pytest.raises(ProviderError, match="empty"):
            await llm.generate(_request())


# ── tools ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generate_with_tools(llm):
    tc = SimpleNamespace(
        id="call_1",
        function=SimpleNamespace(name="weather", arguments='{"city": "Izmir"}'),
    )
    tools = [ToolDefinition(name="weather", description="Get weather")]
    with patch(_PATCH, new_callable=AsyncMock, return_value=_make_response("", [tc])) as mock:
        resp = await llm.generate_with_tools(_request(), tools)

    assert mock.call_args.kwargs["tools"][0]["function"]["name"] == "weather"
    assert mock.call_args.kwargs["tool_choice"] == "auto"
    assert resp.tool_calls[0].name == "weather"
    assert resp.tool_calls[0].args == {"city": "Izmir"}


@pytest.mark.asyncio
async def test_tool_call_with_bad_json_arguments(llm):
    tc = SimpleNamespace(id="c", function=SimpleNamespace(name="t", arguments="not json"))
    with patch(_PATCH, new_callable=AsyncMock, return_value=_make_response("", [tc])):
        resp = await llm.generate_with_tools(_request(), [ToolDefinition(name="t")])
    assert resp.tool_calls[0].args == {"raw": "not json"}


# ── stream ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_stream(llm):
    async def chunks():
        for text in ("Hel", None, "lo"):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

    with patch(_PATCH, new_callable=AsyncMock, return_value=chunks()) as mock:
        parts = [p async for p in llm.stream(_request())]

    assert parts == ["Hel", "lo"]
    assert mock.call_args.kwargs["stream"] is True


# ── cost ──────────────────────────────────────────────────


def test_estimate_cost(llm):
    with patch("flowbot.core.providers.litellm_llm.litellm.token_counter", return_value=1000):
        cost = llm.estimate_cost(_request(max_tokens=1000))
    assert cost == pytest.approx(2000 / 1000 * 0.02)


# ── keys ──────────────────────────────────────────────────


def test_setup_keys_does_not_override_env():
    env = {"OPENAI_API_KEY": "from-env"}
    with patch.dict(os.environ, env, clear=False):
        os.environ.pop("GROQ_API_KEY", None)
        LiteLLMProvider(Config(providers={"openai": {"api_key": "cfg"}, "groq": {"api_key": "gk"}}))
        assert os.environ["OPENAI_API_KEY"] == "from-env"
        assert os.environ["GROQ_API_KEY"] == "gk"


# ── base defaults ─────────────────────────────────────────


class _Minimal(BaseLLMProvider):
    async def generate(self, request):
        return CompletionResponse(message=ChatMessage("assistant", "ok"))


@pytest.mark.asyncio
async def test_base_optional_methods():
    p = _Minimal()
    with pytest.raises(ProviderError):
        await p.generate_with_tools(_request(), [])
    with pytest.raises(ProviderError):
        p.stream(_request())
    assert p.estimate_cost(_request()) == 0.0
