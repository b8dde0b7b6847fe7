"""Core API routes: chat, sessions, skill execution, health."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from flowbot import __version__
from flowbot.agent.runner import ChatRunner
from flowbot.api.deps import get_cancel_token, get_config, get_runner
from flowbot.core.cancel import CancelToken
from flowbot.core.channels import is_enabled
from flowbot.core.config.schema import Config
from flowbot.core.errors import SkillRuntimeError
from flowbot.memory.models import (
    CreateSessionRequest,
    HealthResponse,
    MessageDTO,
    MessageListResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionDTO,
    SessionListResponse,
    SessionResponse,
    SkillExecutionRequest,
    SkillExecutionResponse,
    TaskDTO,
    TaskListResponse,
)

router = APIRouter()


@router.post("/chat/send", response_model=SendMessageResponse)
async def send_message(
    body: SendMessageRequest,
    config: Config = Depends(get_config),
    runner: ChatRunner = Depends(get_runner),
    token: CancelToken = Depends(get_cancel_token),
):
    """Send a message and get the assistant reply plus the session transcript."""
    if not is_enabled(config.channels, "web"):
        return JSONResponse({"error": "web channel is disabled"}, status_code=403)

    result = await runner.send(
        user_id=body.user_id,
        content=body.message.content,
        role=body.message.role,
        model=body.options.model,
        max_tokens=body.options.max_tokens,
        token=token,
    )
    return SendMessageResponse(
        message=MessageDTO.from_entity(result.message),
        messages=[MessageDTO.from_entity(m) for m in result.messages],
    )


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return HealthResponse(status="ok", version=__version__)


# ── Sessions ────────────────────────────────────────────────


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(body: CreateSessionRequest, runner: ChatRunner = Depends(get_runner)):
    session = runner.create_session(body.user_id)
    return SessionResponse(session=SessionDTO.from_entity(session))


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, runner: ChatRunner = Depends(get_runner)):
    return SessionResponse(session=SessionDTO.from_entity(runner.get_session(session_id)))


@router.delete("/sessions/{session_id}", response_model=SessionResponse)
async def delete_session(session_id: str, runner: ChatRunner = Depends(get_runner)):
    session = runner.delete_session(session_id)
    return SessionResponse(session=SessionDTO.from_entity(session))


@router.get("/sessions/{session_id}/messages", response_model=MessageListResponse)
async def session_messages(session_id: str, runner: ChatRunner = Depends(get_runner)):
    messages = runner.get_conversation(session_id)
    return MessageListResponse(messages=[MessageDTO.from_entity(m) for m in messages])


@router.get("/sessions/{session_id}/tasks", response_model=TaskListResponse)
async def session_tasks(session_id: str, runner: ChatRunner = Depends(get_runner)):
    tasks = runner.get_session_tasks(session_id)
    return TaskListResponse(tasks=[TaskDTO.from_entity(t) for t in tasks])


@router.get("/users/{user_id}/sessions", response_model=SessionListResponse)
async def user_sessions(user_id: str, runner: ChatRunner = Depends(get_runner)):
    sessions = runner.get_user_sessions(user_id)
    return SessionListResponse(sessions=[SessionDTO.from_entity(s) for s in sessions])


# ── Skill execution ─────────────────────────────────────────


@router.post("/skills/execute", response_model=SkillExecutionResponse, response_model_exclude_none=True)
async def execute_skill(
    body: SkillExecutionRequest,
    session_id: str = Query(...),
    runner: ChatRunner = Depends(get_runner),
    token: CancelToken = Depends(get_cancel_token),
):
    """Run a skill inside a session. A skill that ran and failed is still a 200."""
    try:
        outcome = await runner.execute_skill(session_id, body.skill, body.input, token=token)
    except SkillRuntimeError as e:
        return SkillExecutionResponse(success=False, error=str(e))
    return SkillExecutionResponse(
        success=outcome.success,
        output=outcome.output,
        error=outcome.error or None,
    )
