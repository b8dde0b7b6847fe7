"""Domain entities: User, Session, Message, Task, Schedule, Skill.

Entities are plain dataclasses. ``new()`` factories validate input and stamp
ids / timestamps; the store rebuilds rows through the regular constructor.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from flowbot.core.cron import CronExpression
from flowbot.core.errors import ValidationError
from flowbot.memory.values import (
    Channel,
    MessageRole,
    TaskStatus,
    Version,
    new_id,
    require_id,
    utcnow,
)

# Permissions that force a skill into the sandbox
SANDBOX_PERMISSIONS = frozenset({"shell", "filesystem", "network", "system"})
DEFAULT_SKILL_TIMEOUT = 30


def canonical_json(value: Any) -> str:
    """Deterministic JSON text (sorted keys, compact separators)."""
    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"value is not JSON serializable: {e}") from e


def _loads(text: str, default: Any) -> Any:
    if not text:
        return default
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return default


# ════════════════════════════════════════════════════════════
# USER / SESSION / MESSAGE
# ════════════════════════════════════════════════════════════


@dataclass
class User:
    id: str
    channel: Channel
    channel_id: str
    created_at: datetime

    @classmethod
    def new(cls, channel: str | Channel, channel_id: str) -> User:
        return cls(
            id=new_id(),
            channel=Channel.parse(channel),
            channel_id=require_id(channel_id, "channel_id"),
            created_at=utcnow(),
        )


@dataclass
class Session:
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new(cls, user_id: str) -> Session:
        now = utcnow()
        return cls(id=new_id(), user_id=require_id(user_id, "user_id"), created_at=now, updated_at=now)

    def touch(self) -> None:
        self.updated_at = max(utcnow(), self.created_at)


@dataclass(frozen=True)
class Message:
    id: str
    session_id: str
    role: MessageRole
    content: str
    created_at: datetime

    @classmethod
    def new(cls, session_id: str, role: str | MessageRole, content: str) -> Message:
        if content is None or not content.strip():
            raise ValidationError("message content cannot be empty")
        return cls(
            id=new_id(),
            session_id=require_id(session_id, "session_id"),
            role=MessageRole.parse(role),
            content=content,
            created_at=utcnow(),
        )

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return self.created_at, self.id


# ════════════════════════════════════════════════════════════
# TASK (lifecycle: pending → running → completed | failed)
# ════════════════════════════════════════════════════════════

_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING}),
    TaskStatus.RUNNING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


@dataclass
class Task:
    id: str
    session_id: str
    skill: str
    input: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
    output: str = ""
    error: str = ""

    @classmethod
    def new(cls, session_id: str, skill: str, input: str = "{}") -> Task:
        now = utcnow()
        return cls(
            id=new_id(),
            session_id=require_id(session_id, "session_id"),
            skill=require_id(skill, "skill"),
            input=input or "{}",
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def _move(self, target: TaskStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise ValidationError(f"illegal task transition {self.status.value} -> {target.value}")
        self.status = target
        self.updated_at = utcnow()

    def start(self) -> None:
        self._move(TaskStatus.RUNNING)

    def complete(self, output: str) -> None:
        self._move(TaskStatus.COMPLETED)
        self.output = output or ""

    def fail(self, error: str) -> None:
        self._move(TaskStatus.FAILED)
        self.error = error or "skill reported failure"

    def get_input(self) -> dict[str, Any]:
        return _loads(self.input, {})


# ════════════════════════════════════════════════════════════
# SCHEDULE / SKILL (registry records)
# ════════════════════════════════════════════════════════════


@dataclass
class Schedule:
    id: str
    skill: str
    cron_expression: CronExpression
    input: str
    created_at: datetime
    enabled: bool = True

    @classmethod
    def new(cls, skill: str, cron_expression: str, input: str = "{}", enabled: bool = True) -> Schedule:
        return cls(
            id=new_id(),
            skill=require_id(skill, "skill"),
            cron_expression=CronExpression(cron_expression),
            input=input or "{}",
            created_at=utcnow(),
            enabled=enabled,
        )

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def get_input(self) -> dict[str, Any]:
        return _loads(self.input, {})


@dataclass
class Skill:
    id: str
    name: str
    version: Version
    location: str
    created_at: datetime
    permissions: str = "[]"
    metadata: str = "{}"
    _metadata_cache: dict[str, Any] | None = field(default=None, repr=False, compare=False)

    @classmethod
    def new(
        cls,
        name: str,
        version: str,
        location: str,
        permissions: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Skill:
        return cls(
            id=new_id(),
            name=require_id(name, "skill name"),
            version=Version(version),
            location=location or "",
            created_at=utcnow(),
            permissions=canonical_json(permissions or []),
            metadata=canonical_json(metadata or {}),
        )

    def set_metadata(self, metadata: dict[str, Any]) -> None:
        self.metadata = canonical_json(metadata)
        self._metadata_cache = None

    def get_metadata(self) -> dict[str, Any]:
        if self._metadata_cache is None:
            parsed = _loads(self.metadata, {})
            self._metadata_cache = parsed if isinstance(parsed, dict) else {}
        return self._metadata_cache

    def get_permissions(self) -> list[str]:
        parsed = _loads(self.permissions, [])
        return [str(p) for p in parsed] if isinstance(parsed, list) else []

    def requires_permission(self, permission: str) -> bool:
        return permission in self.get_permissions()

    def requires_sandbox(self) -> bool:
        return any(p in SANDBOX_PERMISSIONS for p in self.get_permissions())

    @property
    def timeout(self) -> int:
        value = self.get_metadata().get("timeout")
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return int(value)
        return DEFAULT_SKILL_TIMEOUT
