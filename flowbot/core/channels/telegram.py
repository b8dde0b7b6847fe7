"""Telegram channel: webhook handler + send helper."""

from __future__ import annotations

import re

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from flowbot.agent.runner import ChatRunner
from flowbot.api.deps import get_cancel_token, get_config, get_runner
from flowbot.core.cancel import CancelToken
from flowbot.core.channels.base import check_allowlist, is_enabled
from flowbot.core.config.schema import Config
from flowbot.core.errors import FlowbotError
from flowbot.memory.values import Channel

router = APIRouter(tags=["telegram"])

TELEGRAM_API = "https://api.telegram.org/bot{token}"
ERROR_REPLY = "An error occurred while processing your message."


@router.post("/webhooks/telegram")
async def telegram_webhook(
    request: Request,
    config: Config = Depends(get_config),
    runner: ChatRunner = Depends(get_runner),
    token: CancelToken = Depends(get_cancel_token),
):
    """Handle incoming Telegram webhook updates."""
    if not is_enabled(config.channels, "telegram"):
        return JSONResponse({"error": "telegram channel is disabled"}, status_code=403)

    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"Telegram: malformed update body: {e}")
        return JSONResponse({"error": "invalid JSON body"}, status_code=400)

    # Skip anything that is not a text message
    message = body.get("message") if isinstance(body, dict) else None
    text = message.get("text") if isinstance(message, dict) else None
    if not isinstance(text, str) or not text:
        return JSONResponse({"ok": True})

    sender = _as_dict(message.get("from"))
    sender_id = str(sender.get("id", ""))
    chat_id = _as_dict(message.get("chat")).get("id", sender.get("id"))

    if not sender_id or not check_allowlist(config.channels, "telegram", sender_id):
        logger.warning(f"Telegram: sender {sender_id or '?'} not allowed")
        return JSONResponse({"error": "sender not allowed"}, status_code=403)

    try:
        result = await runner.send(
            user_id=sender_id,
            content=text,
            channel=Channel.TELEGRAM,
            token=token,
        )
        response = result.message.content
    except FlowbotError as e:
        logger.error(f"Telegram: processing error: {e}")
        response = ERROR_REPLY

    await send_message(config.channels.telegram.bot_token, chat_id, response)

    return JSONResponse({"ok": True})


async def send_message(token: str, chat_id: int | str, text: str) -> None:
    """Send a message via Telegram Bot API."""
    if not token:
        logger.warning("Telegram: bot_token not configured, reply dropped")
        return
    url = f"{TELEGRAM_API.format(token=token)}/sendMessage"
    html_text = md_to_html(text)

    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
            resp = await client.post(
                url,
                json={
                    "chat_id": chat_id,
                    "text": html_text,
                    "parse_mode": "HTML",
                },
            )
            # Fallback to plain text if HTML parsing fails
            if resp.status_code != 200:
                await client.post(url, json={"chat_id": chat_id, "text": text})
    except httpx.HTTPError as e:
        logger.error(f"Telegram: sendMessage failed: {e}")


# One alternative per markup kind; earlier alternatives win at the same offset.
_MARKDOWN = re.compile(
    r"```(?:\w*\n)?(?P<pre>[\s\S]*?)```"
    r"|`(?P<code>[^`\n]+)`"
    r"|\*\*(?P<bold>.+?)\*\*"
    r"|\*(?P<italic>[^*\n]+?)\*"
    r"|\[(?P<label>[^\]\n]+)\]\((?P<href>[^)\s]+)\)"
)


def md_to_html(text: str) -> str:
    """Render the Markdown subset LLM replies use as Telegram HTML.

    Fenced blocks and inline code are escaped verbatim. Bold, italic and link
    labels are rendered recursively, so ``**[docs](url)**`` works. Everything
    else is HTML-escaped.
    """
    parts: list[str] = []
    pos = 0
    for m in _MARKDOWN.finditer(text):
        parts.append(_escape(text[pos : m.start()]))
        pos = m.end()
        if m.group("pre") is not None:
            parts.append(f"<pre>{_escape(m.group('pre'))}</pre>")
        elif m.group("code") is not None:
            parts.append(f"<code>{_escape(m.group('code'))}</code>")
        elif m.group("bold") is not None:
            parts.append(f"<b>{md_to_html(m.group('bold'))}</b>")
        elif m.group("italic") is not None:
            parts.append(f"<i>{md_to_html(m.group('italic'))}</i>")
        else:
            href = _escape(m.group("href")).replace('"', "&quot;")
            parts.append(f'<a href="{href}">{md_to_html(m.group("label"))}</a>')
    parts.append(_escape(text[pos:]))
    return "".join(parts)


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}
