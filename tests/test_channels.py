"""Tests for channel helpers and the Telegram webhook."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from conftest import StubProvider
from httpx import ASGITransport, AsyncClient

from flowbot.agent.runner import ChatRunner
from flowbot.api.app import create_app
from flowbot.core.channels.base import check_allowlist, is_enabled
from flowbot.core.channels.telegram import ERROR_REPLY, md_to_html, send_message
from flowbot.core.config import Config
from flowbot.core.errors import ProviderError


@pytest.fixture
def cfg():
    return Config(
        channels={"telegram": {"enabled": True, "bot_token": "fake-token", "allow_from": ["111", "222"]}}
    )


# ── Allowlist ──────────────────────────────────────────────


def test_check_allowlist_empty():
    """Empty allow_from list → allow everyone."""
    cfg = Config(channels={"telegram": {"enabled": True, "allow_from": []}})
    assert check_allowlist(cfg.channels, "telegram", "anyone") is True


def test_check_allowlist_allowed(cfg):
    assert check_allowlist(cfg.channels, "telegram", "111") is True


def test_check_allowlist_denied(cfg):
    assert check_allowlist(cfg.channels, "telegram", "999") is False


def test_check_allowlist_unknown_channel(cfg):
    assert check_allowlist(cfg.channels, "unknown_channel", "111") is False


def test_is_enabled(cfg):
    assert is_enabled(cfg.channels, "telegram")
    assert not is_enabled(Config().channels, "telegram")
    assert not is_enabled(cfg.channels, "pager")


# ── Markdown to HTML ───────────────────────────────────────


def test_md_to_html_inline():
    assert "<b>bold</b>" in md_to_html("**bold**")
    assert "<i>italic</i>" in md_to_html("*italic*")
    assert "<code>code</code>" in md_to_html("`code`")


def test_md_to_html_code_block():
    result = md_to_html("```python\nprint('<hi>')\n```")
    assert result.startswith("<pre>")
    assert "&lt;hi&gt;" in result


def test_md_to_html_link():
    result = md_to_html("[Docs](https://example.com)")
    assert '<a href="https://example.com">Docs</a>' in result


def test_md_to_html_escapes_html():
    result = md_to_html("1 < 2 & 3 > 0")
    assert result == "1 &lt; 2 &amp; 3 &gt; 0"


def test_md_to_html_nested_and_unclosed():
    assert md_to_html("**see [docs](https://x.io)**") == '<b>see <a href="https://x.io">docs</a></b>'
    assert md_to_html("`**not bold**`") == "<code>**not bold**</code>"
    assert md_to_html("2 * 3 = 6") == "2 * 3 = 6"


def test_md_to_html_link_href_quoted():
    result = md_to_html('[x](https://e.com/?q="a"&b)')
    assert result == '<a href="https://e.com/?q=&quot;a&quot;&amp;b">x</a>'


# ── send_message ───────────────────────────────────────────


def _mock_client(status_code=200):
    client = MagicMock()
    client.post = AsyncMock(return_value=httpx.Response(status_code))
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.mark.asyncio
async def test_send_message_html():
    client = _mock_client()
    with patch("flowbot.core.channels.telegram.httpx.AsyncClient", return_value=client):
        await send_message("tok", 111, "**hi**")

    url = client.post.call_args.args[0]
    payload = client.post.call_args.kwargs["json"]
    assert url == "https://api.telegram.org/bottok/sendMessage"
    assert payload == {"chat_id": 111, "text": "<b>hi</b>", "parse_mode": "HTML"}


@pytest.mark.asyncio
async def test_send_message_plain_fallback():
    client = _mock_client(status_code=400)
    with patch("flowbot.core.channels.telegram.httpx.AsyncClient", return_value=client):
        await send_message("tok", 111, "**hi**")

    assert client.post.call_count == 2
    assert client.post.call_args.kwargs["json"] == {"chat_id": 111, "text": "**hi**"}


@pytest.mark.asyncio
async def test_send_message_without_token():
    with patch("flowbot.core.channels.telegram.httpx.AsyncClient") as mock_client:
        await send_message("", 111, "hi")
    mock_client.assert_not_called()


# ── Telegram Webhook Endpoint ──────────────────────────────


@pytest.fixture
def telegram_update():
    """Minimal Telegram Update object."""
    return {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "from": {"id": 111, "first_name": "Test"},
            "chat": {"id": 111},
            "text": "Hello bot",
        },
    }


def _app(tmp_path, channels, provider=None, runtime=None):
    config = Config(
        database={"path": str(tmp_path / "tg.db")},
        skills={"directory": str(tmp_path / "skills")},
        channels=channels,
    )
    app = create_app(config)
    app.state.runner = ChatRunner(app.state.db, provider or StubProvider("Hi there!"), runtime)
    return app


async def _post(app, body):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        with patch("flowbot.core.channels.telegram.send_message", new_callable=AsyncMock) as mock_send:
            resp = await client.post("/webhooks/telegram", json=body)
    return resp, mock_send


@pytest.mark.asyncio
async def test_telegram_webhook(telegram_update, tmp_path, runtime):
    app = _app(tmp_path, {"telegram": {"enabled": True, "bot_token": "fake-token"}}, runtime=runtime)
    resp, mock_send = await _post(app, telegram_update)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    mock_send.assert_awaited_once_with("fake-token", 111, "Hi there!")

    user = app.state.db.users.find_by_channel("telegram", "111")
    assert user is not None
    (session,) = app.state.db.sessions.find_by_user_id(user.id)
    assert [m.content for m in app.state.db.messages.find_by_session_id(session.id)] == [
        "Hello bot",
        "Hi there!",
    ]


@pytest.mark.asyncio
async def test_telegram_pipeline_error_sends_apology(telegram_update, tmp_path, runtime):
    app = _app(
        tmp_path,
        {"telegram": {"enabled": True, "bot_token": "fake-token"}},
        provider=StubProvider(error=ProviderError("down")),
        runtime=runtime,
    )
    resp, mock_send = await _post(app, telegram_update)

    assert resp.status_code == 200
    mock_send.assert_awaited_once_with("fake-token", 111, ERROR_REPLY)


@pytest.mark.asyncio
async def test_telegram_allowlist_denied(telegram_update, tmp_path, runtime):
    app = _app(tmp_path, {"telegram": {"enabled": True, "allow_from": ["999"]}}, runtime=runtime)
    resp, mock_send = await _post(app, telegram_update)

    assert resp.status_code == 403
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_telegram_disabled(telegram_update, tmp_path, runtime):
    app = _app(tmp_path, {"telegram": {"enabled": False}}, runtime=runtime)
    resp, _ = await _post(app, telegram_update)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_telegram_non_message_update(tmp_path, runtime):
    """Update without message → 200 OK, no processing."""
    app = _app(tmp_path, {"telegram": {"enabled": True}}, runtime=runtime)
    resp, mock_send = await _post(app, {"update_id": 1})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    mock_send.assert_not_called()
    assert app.state.db.users.list() == []


async def _post_raw(app, content):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        with patch("flowbot.core.channels.telegram.send_message", new_callable=AsyncMock) as mock_send:
            resp = await client.post(
                "/webhooks/telegram", content=content, headers={"Content-Type": "application/json"}
            )
    return resp, mock_send


@pytest.mark.asyncio
async def test_telegram_malformed_json(tmp_path, runtime):
    app = _app(tmp_path, {"telegram": {"enabled": True}}, runtime=runtime)
    resp, mock_send = await _post_raw(app, b"{not json")

    assert resp.status_code == 400
    assert "error" in resp.json()
    mock_send.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"message": "hi"},
        {"message": {"text": 42}},
        {"message": {"text": ""}},
        ["not", "an", "update"],
    ],
)
async def test_telegram_odd_shapes_are_ignored(body, tmp_path, runtime):
    app = _app(tmp_path, {"telegram": {"enabled": True}}, runtime=runtime)
    resp, mock_send = await _post(app, body)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_telegram_non_object_sender(tmp_path, runtime):
    app = _app(tmp_path, {"telegram": {"enabled": True}}, runtime=runtime)
    resp, mock_send = await _post(app, {"message": {"text": "hi", "from": "bob", "chat": 5}})

    assert resp.status_code == 403
    mock_send.assert_not_called()
