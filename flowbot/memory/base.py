"""Repository ports: one abstract persistence contract per entity.

Lookups return ``None`` when the row does not exist; callers decide whether
absence is an error. Store failures raise ``RepositoryError``.
"""

from __future__ import annotations

import abc

from flowbot.memory.entities import Message, Schedule, Session, Skill, Task, User


class UserRepository(abc.ABC):
    @abc.abstractmethod
    def create(self, user: User) -> None: ...

    @abc.abstractmethod
    def find_by_id(self, user_id: str) -> User | None: ...

    @abc.abstractmethod
    def find_by_channel(self, channel: str, channel_id: str) -> User | None: ...

    @abc.abstractmethod
    def list(self) -> list[User]: ...

    @abc.abstractmethod
    def delete(self, user_id: str) -> bool:
        """Delete the user only; sessions are kept as history."""


class SessionRepository(abc.ABC):
    @abc.abstractmethod
    def create(self, session: Session) -> None: ...

    @abc.abstractmethod
    def find_by_id(self, session_id: str) -> Session | None: ...

    @abc.abstractmethod
    def find_by_user_id(self, user_id: str) -> list[Session]:
        """Newest first."""

    @abc.abstractmethod
    def update(self, session: Session) -> None: ...

    @abc.abstractmethod
    def delete(self, session_id: str) -> bool:
        """Delete the session together with its messages and tasks."""


class MessageRepository(abc.ABC):
    @abc.abstractmethod
    def create(self, message: Message) -> None: ...

    @abc.abstractmethod
    def find_by_id(self, message_id: str) -> Message | None: ...

    @abc.abstractmethod
    def find_by_session_id(self, session_id: str) -> list[Message]:
        """Chronological: ``created_at`` ascending, ties by ``id``."""

    @abc.abstractmethod
    def delete(self, message_id: str) -> bool: ...


class TaskRepository(abc.ABC):
    @abc.abstractmethod
    def create(self, task: Task) -> None: ...

    @abc.abstractmethod
    def find_by_id(self, task_id: str) -> Task | None: ...

    @abc.abstractmethod
    def find_by_session_id(self, session_id: str) -> list[Task]:
        """Creation order."""

    @abc.abstractmethod
    def update(self, task: Task) -> None: ...

    @abc.abstractmethod
    def delete(self, task_id: str) -> bool: ...


class ScheduleRepository(abc.ABC):
    @abc.abstractmethod
    def create(self, schedule: Schedule) -> None: ...

    @abc.abstractmethod
    def find_by_id(self, schedule_id: str) -> Schedule | None: ...

    @abc.abstractmethod
    def find_by_skill(self, skill: str) -> list[Schedule]: ...

    @abc.abstractmethod
    def find_enabled(self) -> list[Schedule]: ...

    @abc.abstractmethod
    def list(self) -> list[Schedule]: ...

    @abc.abstractmethod
    def update(self, schedule: Schedule) -> None: ...

    @abc.abstractmethod
    def delete(self, schedule_id: str) -> bool: ...


class SkillRepository(abc.ABC):
    @abc.abstractmethod
    def create(self, skill: Skill) -> None: ...

    @abc.abstractmethod
    def find_by_id(self, skill_id: str) -> Skill | None: ...

    @abc.abstractmethod
    def find_by_name(self, name: str) -> Skill | None: ...

    @abc.abstractmethod
    def list(self) -> list[Skill]: ...

    @abc.abstractmethod
    def update(self, skill: Skill) -> None: ...

    @abc.abstractmethod
    def delete(self, skill_id: str) -> bool: ...
