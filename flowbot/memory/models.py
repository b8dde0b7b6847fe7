"""Pydantic data models: API DTOs and request / response bodies.

Entities live in :mod:`flowbot.memory.entities`; these models are what goes
over the wire. All timestamps are RFC 3339 strings (second precision, UTC).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from flowbot.memory.entities import Message, Schedule, Session, Skill, Task, User
from flowbot.memory.values import to_rfc3339


# ════════════════════════════════════════════════════════════
# ENTITY DTOs
# ════════════════════════════════════════════════════════════


class UserDTO(BaseModel):
    id: str
    channel: str
    channel_id: str
    created_at: str

    @classmethod
    def from_entity(cls, user: User) -> UserDTO:
        return cls(
            id=user.id,
            channel=user.channel.value,
            channel_id=user.channel_id,
            created_at=to_rfc3339(user.created_at),
        )


class SessionDTO(BaseModel):
    id: str
    user_id: str
    created_at: str
    updated_at: str

    @classmethod
    def from_entity(cls, session: Session) -> SessionDTO:
        return cls(
            id=session.id,
            user_id=session.user_id,
            created_at=to_rfc3339(session.created_at),
            updated_at=to_rfc3339(session.updated_at),
        )


class MessageDTO(BaseModel):
    id: str
    session_id: str
    role: str
    content: str
    created_at: str

    @classmethod
    def from_entity(cls, message: Message) -> MessageDTO:
        return cls(
            id=message.id,
            session_id=message.session_id,
            role=message.role.value,
            content=message.content,
            created_at=to_rfc3339(message.created_at),
        )


class TaskDTO(BaseModel):
    id: str
    session_id: str
    skill: str
    input: str
    output: str
    status: str
    error: str
    created_at: str
    updated_at: str

    @classmethod
    def from_entity(cls, task: Task) -> TaskDTO:
        return cls(
            id=task.id,
            session_id=task.session_id,
            skill=task.skill,
            input=task.input,
            output=task.output,
            status=task.status.value,
            error=task.error,
            created_at=to_rfc3339(task.created_at),
            updated_at=to_rfc3339(task.updated_at),
        )


class SkillDTO(BaseModel):
    id: str
    name: str
    version: str
    location: str
    permissions: str
    metadata: str
    created_at: str

    @classmethod
    def from_entity(cls, skill: Skill) -> SkillDTO:
        return cls(
            id=skill.id,
            name=skill.name,
            version=str(skill.version),
            location=skill.location,
            permissions=skill.permissions,
            metadata=skill.metadata,
            created_at=to_rfc3339(skill.created_at),
        )


class ScheduleDTO(BaseModel):
    id: str
    skill: str
    cron_expression: str
    input: str
    enabled: bool
    created_at: str

    @classmethod
    def from_entity(cls, schedule: Schedule) -> ScheduleDTO:
        return cls(
            id=schedule.id,
            skill=schedule.skill,
            cron_expression=str(schedule.cron_expression),
            input=schedule.input,
            enabled=schedule.enabled,
            created_at=to_rfc3339(schedule.created_at),
        )


# ════════════════════════════════════════════════════════════
# CHAT / SESSIONS
# ════════════════════════════════════════════════════════════


class MessagePayload(BaseModel):
    role: str = "user"
    content: str


class SendOptions(BaseModel):
    model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)


class SendMessageRequest(BaseModel):
    user_id: str
    message: MessagePayload
    options: SendOptions = Field(default_factory=SendOptions)


class SendMessageResponse(BaseModel):
    success: bool = True
    message: MessageDTO
    messages: list[MessageDTO]


class CreateSessionRequest(BaseModel):
    user_id: str


class SessionResponse(BaseModel):
    success: bool = True
    session: SessionDTO


class SessionListResponse(BaseModel):
    success: bool = True
    sessions: list[SessionDTO]


class MessageListResponse(BaseModel):
    success: bool = True
    messages: list[MessageDTO]


class TaskListResponse(BaseModel):
    success: bool = True
    tasks: list[TaskDTO]


# ════════════════════════════════════════════════════════════
# SKILL EXECUTION
# ════════════════════════════════════════════════════════════


class SkillExecutionRequest(BaseModel):
    skill: str
    input: dict[str, Any] = Field(default_factory=dict)


class SkillRunRequest(BaseModel):
    input: dict[str, Any] = Field(default_factory=dict)


class SkillExecutionResponse(BaseModel):
    success: bool
    output: str = ""
    error: str | None = None


# ════════════════════════════════════════════════════════════
# ADMIN (users / skills / schedules)
# ════════════════════════════════════════════════════════════


class CreateUserRequest(BaseModel):
    channel: str
    channel_id: str


class UserResponse(BaseModel):
    success: bool = True
    user: UserDTO


class UserListResponse(BaseModel):
    success: bool = True
    users: list[UserDTO]


class CreateSkillRequest(BaseModel):
    name: str
    version: str
    location: str = ""
    permissions: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateSkillRequest(BaseModel):
    version: str | None = None
    location: str | None = None
    permissions: list[str] | None = None
    metadata: dict[str, Any] | None = None


class SkillResponse(BaseModel):
    success: bool = True
    skill: SkillDTO


class SkillListResponse(BaseModel):
    success: bool = True
    skills: list[SkillDTO]


class CreateScheduleRequest(BaseModel):
    skill: str
    cron_expression: str
    input: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


class UpdateScheduleRequest(BaseModel):
    cron_expression: str | None = None
    input: dict[str, Any] | None = None
    enabled: bool | None = None


class ScheduleResponse(BaseModel):
    success: bool = True
    schedule: ScheduleDTO


class ScheduleListResponse(BaseModel):
    success: bool = True
    schedules: list[ScheduleDTO]


class HealthResponse(BaseModel):
    status: str
    version: str = ""
