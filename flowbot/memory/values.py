"""Validated value types: ids, roles, statuses, channels, versions, timestamps.

Every constructor raises :class:`~flowbot.core.errors.ValidationError` on bad
input; once built, a value is a plain ``str`` that is known to be valid.
"""

from __future__ import annotations

import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum

from flowbot.core.errors import ValidationError


# ════════════════════════════════════════════════════════════
# IDS
# ════════════════════════════════════════════════════════════


def new_id() -> str:
    return str(uuid.uuid4())


def require_id(value: str | None, kind: str = "id") -> str:
    """Return ``value`` stripped, or raise if it is empty."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{kind} cannot be empty")
    return str(value).strip()


# ════════════════════════════════════════════════════════════
# ENUMS
# ════════════════════════════════════════════════════════════


class _ValueEnum(str, Enum):
    """str-backed enum with a validating ``parse``."""

    @classmethod
    def parse(cls, value: str | _ValueEnum | None):
        if isinstance(value, cls):
            return value
        label = cls.__name__
        if value is None or not str(value).strip():
            raise ValidationError(f"{label} cannot be empty")
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"invalid {label}: {value!r} (expected one of {allowed})") from None

    def __str__(self) -> str:
        return self.value


class Channel(_ValueEnum):
    """Origin system of a user. Open set: add a member to support a new connector."""

    TELEGRAM = "telegram"
    DISCORD = "discord"
    WEB = "web"
    CLI = "cli"


class MessageRole(_ValueEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TaskStatus(_ValueEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


# ════════════════════════════════════════════════════════════
# VERSION
# ════════════════════════════════════════════════════════════

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


class Version(str):
    """Semantic version ``MAJOR.MINOR.PATCH``."""

    def __new__(cls, value: str):
        if value is None or not str(value).strip():
            raise ValidationError("version cannot be empty")
        value = str(value).strip()
        if not _VERSION_RE.match(value):
            raise ValidationError(f"invalid version: {value!r}")
        return super().__new__(cls, value)

    @property
    def parts(self) -> tuple[int, int, int]:
        major, minor, patch = (int(p) for p in self.split("."))
        return major, minor, patch


# ════════════════════════════════════════════════════════════
# TIME
# ════════════════════════════════════════════════════════════

_clock_lock = threading.Lock()
_last_now: datetime | None = None


def utcnow() -> datetime:
    """Current UTC time, strictly increasing across calls in this process.

    Storage keeps microseconds, so consecutive writes (user message, then
    assistant message) never share a timestamp.
    """
    global _last_now
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_now is not None and now <= _last_now:
            now = _last_now + timedelta(microseconds=1)
        _last_now = now
        return now


def to_rfc3339(dt: datetime) -> str:
    """Boundary format: RFC 3339, UTC, second precision (``2026-01-02T03:04:05Z``)."""
    return _as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_storage(dt: datetime) -> str:
    """Storage format: RFC 3339 with microseconds; sorts lexically."""
    return _as_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    if not value:
        raise ValidationError("timestamp cannot be empty")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"invalid RFC 3339 timestamp: {value!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
