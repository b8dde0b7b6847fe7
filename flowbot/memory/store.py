"""SQLite-based store for flowbot.

One file, six tables:
    users, sessions, messages, tasks, skills, schedules

``MemoryStore`` owns the connection handling and schema; each entity has its
own repository object (``store.users``, ``store.sessions`` ...) implementing
the ports in :mod:`flowbot.memory.base`. A fresh connection is opened per
call, so the store is safe to share between concurrent requests.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from flowbot.core.cron import CronExpression
from flowbot.core.errors import ConflictError, RepositoryError
from flowbot.memory.base import (
    MessageRepository,
    ScheduleRepository,
    SessionRepository,
    SkillRepository,
    TaskRepository,
    UserRepository,
)
from flowbot.memory.entities import Message, Schedule, Session, Skill, Task, User
from flowbot.memory.values import (
    Channel,
    MessageRole,
    TaskStatus,
    Version,
    parse_rfc3339,
    to_storage,
)


class MemoryStore:
    """SQLite store: single source of truth."""

    def __init__(self, db_path: str = "data/flowbot.db"):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

        self.users = SQLiteUserRepository(self)
        self.sessions = SQLiteSessionRepository(self)
        self.messages = SQLiteMessageRepository(self)
        self.tasks = SQLiteTaskRepository(self)
        self.skills = SQLiteSkillRepository(self)
        self.schedules = SQLiteScheduleRepository(self)
        logger.info(f"MemoryStore initialized: {db_path}")

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success, rolls back on error.

        ``sqlite3`` errors are re-raised as ``ConflictError`` (unique
        constraint) or ``RepositoryError`` (anything else).
        """
        try:
            with self._get_conn() as conn:
                try:
                    yield conn
                    conn.commit()
                except BaseException:
                    conn.rollback()
                    raise
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise ConflictError(f"duplicate record: {e}") from e
            raise RepositoryError(f"integrity violation: {e}") from e
        except sqlite3.Error as e:
            raise RepositoryError(f"database error: {e}") from e

    def _init_db(self) -> None:
        with self.transaction() as conn:
            conn.executescript(_SCHEMA)


class _SQLiteRepository:
    def __init__(self, store: MemoryStore):
        self._store = store

    def _fetchone(self, sql: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        with self._store.transaction() as conn:
            return conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._store.transaction() as conn:
            return conn.execute(sql, params).fetchall()

    def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        with self._store.transaction() as conn:
            return conn.execute(sql, params).rowcount


# ════════════════════════════════════════════════════════════
# USERS
# ════════════════════════════════════════════════════════════


class SQLiteUserRepository(_SQLiteRepository, UserRepository):
    def create(self, user: User) -> None:
        self._execute(
            "INSERT INTO users (id, channel, channel_id, created_at) VALUES (?, ?, ?, ?)",
            (user.id, user.channel.value, user.channel_id, to_storage(user.created_at)),
        )
        logger.info(f"New user created: {user.id} ({user.channel.value}:{user.channel_id})")

    def find_by_id(self, user_id: str) -> User | None:
        row = self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        return _row_to_user(row) if row else None

    def find_by_channel(self, channel: str, channel_id: str) -> User | None:
        row = self._fetchone(
            "SELECT * FROM users WHERE channel = ? AND channel_id = ?",
            (str(channel), channel_id),
        )
        return _row_to_user(row) if row else None

    def list(self) -> list[User]:
        rows = self._fetchall("SELECT * FROM users ORDER BY created_at DESC, id")
        return [_row_to_user(r) for r in rows]

    def delete(self, user_id: str) -> bool:
        return self._execute("DELETE FROM users WHERE id = ?", (user_id,)) > 0


# ════════════════════════════════════════════════════════════
# SESSIONS
# ════════════════════════════════════════════════════════════


class SQLiteSessionRepository(_SQLiteRepository, SessionRepository):
    def create(self, session: Session) -> None:
        self._execute(
            "INSERT INTO sessions (id, user_id, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (
                session.id,
                session.user_id,
                to_storage(session.created_at),
                to_storage(session.updated_at),
            ),
        )
        logger.info(f"Session created: {session.id} for {session.user_id}")

    def find_by_id(self, session_id: str) -> Session | None:
        row = self._fetchone("SELECT * FROM sessions WHERE id = ?", (session_id,))
        return _row_to_session(row) if row else None

    def find_by_user_id(self, user_id: str) -> list[Session]:
        rows = self._fetchall(
            "SELECT * FROM sessions WHERE user_id = ? ORDER BY created_at DESC, id",
            (user_id,),
        )
        return [_row_to_session(r) for r in rows]

    def update(self, session: Session) -> None:
        self._execute(
            "UPDATE sessions SET updated_at = ? WHERE id = ?",
            (to_storage(session.updated_at), session.id),
        )

    def delete(self, session_id: str) -> bool:
        # Explicit cascade in one transaction; the FK cascade is a second line.
        with self._store.transaction() as conn:
            conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
            conn.execute("DELETE FROM tasks WHERE session_id = ?", (session_id,))
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Session deleted: {session_id}")
        return deleted


# ════════════════════════════════════════════════════════════
# MESSAGES
# ════════════════════════════════════════════════════════════


class SQLiteMessageRepository(_SQLiteRepository, MessageRepository):
    def create(self, message: Message) -> None:
        self._execute(
            """INSERT INTO messages (id, session_id, role, content, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                message.id,
                message.session_id,
                message.role.value,
                message.content,
                to_storage(message.created_at),
            ),
        )

    def find_by_id(self, message_id: str) -> Message | None:
        row = self._fetchone("SELECT * FROM messages WHERE id = ?", (message_id,))
        return _row_to_message(row) if row else None

    def find_by_session_id(self, session_id: str) -> list[Message]:
        rows = self._fetchall(
            """SELECT * FROM messages WHERE session_id = ?
               ORDER BY created_at ASC, id ASC""",
            (session_id,),
        )
        return [_row_to_message(r) for r in rows]

    def delete(self, message_id: str) -> bool:
        return self._execute("DELETE FROM messages WHERE id = ?", (message_id,)) > 0


# ════════════════════════════════════════════════════════════
# TASKS
# ════════════════════════════════════════════════════════════


class SQLiteTaskRepository(_SQLiteRepository, TaskRepository):
    def create(self, task: Task) -> None:
        self._execute(
            """INSERT INTO tasks
               (id, session_id, skill, input, output, status, error, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                task.id,
                task.session_id,
                task.skill,
                task.input,
                task.output,
                task.status.value,
                task.error,
                to_storage(task.created_at),
                to_storage(task.updated_at),
            ),
        )

    def find_by_id(self, task_id: str) -> Task | None:
        row = self._fetchone("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return _row_to_task(row) if row else None

    def find_by_session_id(self, session_id: str) -> list[Task]:
        rows = self._fetchall(
            "SELECT * FROM tasks WHERE session_id = ? ORDER BY created_at ASC, id ASC",
            (session_id,),
        )
        return [_row_to_task(r) for r in rows]

    def update(self, task: Task) -> None:
        self._execute(
            """UPDATE tasks SET output = ?, status = ?, error = ?, updated_at = ?
               WHERE id = ?""",
            (task.output, task.status.value, task.error, to_storage(task.updated_at), task.id),
        )

    def delete(self, task_id: str) -> bool:
        return self._execute("DELETE FROM tasks WHERE id = ?", (task_id,)) > 0


# ════════════════════════════════════════════════════════════
# SKILLS (registry records)
# ════════════════════════════════════════════════════════════


class SQLiteSkillRepository(_SQLiteRepository, SkillRepository):
    def create(self, skill: Skill) -> None:
        self._execute(
            """INSERT INTO skills (id, name, version, location, permissions, metadata, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                skill.id,
                skill.name,
                str(skill.version),
                skill.location,
                skill.permissions,
                skill.metadata,
                to_storage(skill.created_at),
            ),
        )

    def find_by_id(self, skill_id: str) -> Skill | None:
        row = self._fetchone("SELECT * FROM skills WHERE id = ?", (skill_id,))
        return _row_to_skill(row) if row else None

    def find_by_name(self, name: str) -> Skill | None:
        row = self._fetchone("SELECT * FROM skills WHERE name = ?", (name,))
        return _row_to_skill(row) if row else None

    def list(self) -> list[Skill]:
        rows = self._fetchall("SELECT * FROM skills ORDER BY created_at DESC, id")
        return [_row_to_skill(r) for r in rows]

    def update(self, skill: Skill) -> None:
        self._execute(
            """UPDATE skills SET version = ?, location = ?, permissions = ?, metadata = ?
               WHERE id = ?""",
            (str(skill.version), skill.location, skill.permissions, skill.metadata, skill.id),
        )

    def delete(self, skill_id: str) -> bool:
        return self._execute("DELETE FROM skills WHERE id = ?", (skill_id,)) > 0


# ════════════════════════════════════════════════════════════
# SCHEDULES
# ════════════════════════════════════════════════════════════


class SQLiteScheduleRepository(_SQLiteRepository, ScheduleRepository):
    def create(self, schedule: Schedule) -> None:
        self._execute(
            """INSERT INTO schedules (id, skill, cron_expression, input, enabled, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                schedule.id,
                schedule.skill,
                str(schedule.cron_expression),
                schedule.input,
                int(schedule.enabled),
                to_storage(schedule.created_at),
            ),
        )

    def find_by_id(self, schedule_id: str) -> Schedule | None:
        row = self._fetchone("SELECT * FROM schedules WHERE id = ?", (schedule_id,))
        return _row_to_schedule(row) if row else None

    def find_by_skill(self, skill: str) -> list[Schedule]:
        rows = self._fetchall(
            "SELECT * FROM schedules WHERE skill = ? ORDER BY created_at DESC, id",
            (skill,),
        )
        return [_row_to_schedule(r) for r in rows]

    def find_enabled(self) -> list[Schedule]:
        rows = self._fetchall(
            "SELECT * FROM schedules WHERE enabled = 1 ORDER BY created_at DESC, id"
        )
        return [_row_to_schedule(r) for r in rows]

    def list(self) -> list[Schedule]:
        rows = self._fetchall("SELECT * FROM schedules ORDER BY created_at DESC, id")
        return [_row_to_schedule(r) for r in rows]

    def update(self, schedule: Schedule) -> None:
        self._execute(
            "UPDATE schedules SET cron_expression = ?, input = ?, enabled = ? WHERE id = ?",
            (str(schedule.cron_expression), schedule.input, int(schedule.enabled), schedule.id),
        )

    def delete(self, schedule_id: str) -> bool:
        return self._execute("DELETE FROM schedules WHERE id = ?", (schedule_id,)) > 0


# ════════════════════════════════════════════════════════════
# ROW MAPPERS
# ════════════════════════════════════════════════════════════


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        channel=Channel.parse(row["channel"]),
        channel_id=row["channel_id"],
        created_at=parse_rfc3339(row["created_at"]),
    )


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        created_at=parse_rfc3339(row["created_at"]),
        updated_at=parse_rfc3339(row["updated_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        session_id=row["session_id"],
        role=MessageRole.parse(row["role"]),
        content=row["content"],
        created_at=parse_rfc3339(row["created_at"]),
    )


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        session_id=row["session_id"],
        skill=row["skill"],
        input=row["input"],
        output=row["output"] or "",
        status=TaskStatus.parse(row["status"]),
        error=row["error"] or "",
        created_at=parse_rfc3339(row["created_at"]),
        updated_at=parse_rfc3339(row["updated_at"]),
    )


def _row_to_skill(row: sqlite3.Row) -> Skill:
    return Skill(
        id=row["id"],
        name=row["name"],
        version=Version(row["version"]),
        location=row["location"],
        permissions=row["permissions"] or "[]",
        metadata=row["metadata"] or "{}",
        created_at=parse_rfc3339(row["created_at"]),
    )


def _row_to_schedule(row: sqlite3.Row) -> Schedule:
    return Schedule(
        id=row["id"],
        skill=row["skill"],
        cron_expression=CronExpression(row["cron_expression"]),
        input=row["input"] or "{}",
        enabled=bool(row["enabled"]),
        created_at=parse_rfc3339(row["created_at"]),
    )


_SCHEMA = """
-- 1. Users (one row per channel identity)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    channel TEXT NOT NULL,
    channel_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (channel, channel_id)
);

-- 2. Sessions (no FK to users: sessions outlive their user)
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id, created_at DESC);

-- 3. Messages
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id, created_at, id);

-- 4. Tasks (skill invocations)
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    skill TEXT NOT NULL,
    input TEXT NOT NULL DEFAULT '{}',
    output TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL CHECK (status IN ('pending', 'running', 'completed', 'failed')),
    error TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_tasks_session ON tasks(session_id, created_at);

-- 5. Skills (registry)
CREATE TABLE IF NOT EXISTS skills (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    version TEXT NOT NULL,
    location TEXT NOT NULL DEFAULT '',
    permissions TEXT NOT NULL DEFAULT '[]',
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

-- 6. Schedules (cron specs only, no executor)
CREATE TABLE IF NOT EXISTS schedules (
    id TEXT PRIMARY KEY,
    skill TEXT NOT NULL,
    cron_expression TEXT NOT NULL,
    input TEXT NOT NULL DEFAULT '{}',
    enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_schedules_skill ON schedules(skill);
"""
