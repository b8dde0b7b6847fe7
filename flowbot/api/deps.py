"""FastAPI dependency injection: pull singletons from app.state."""

from __future__ import annotations

from fastapi import Request

from flowbot.agent.runner import ChatRunner
from flowbot.agent.skills.registry import SkillRegistry
from flowbot.core.cancel import CancelToken
from flowbot.core.config.schema import Config
from flowbot.core.cron.registry import ScheduleRegistry
from flowbot.memory.store import MemoryStore


def get_config(request: Request) -> Config:
    """Get Config singleton from app state."""
    return request.app.state.config


def get_db(request: Request) -> MemoryStore:
    """Get MemoryStore singleton from app state."""
    return request.app.state.db


def get_runner(request: Request) -> ChatRunner:
    """Get ChatRunner singleton from app state."""
    return request.app.state.runner


def get_skills(request: Request) -> SkillRegistry:
    return request.app.state.skills


def get_schedules(request: Request) -> ScheduleRegistry:
    return request.app.state.schedules


def get_cancel_token(request: Request) -> CancelToken:
    """Per-request token bounded by ``server.request_timeout_s``."""
    config: Config = request.app.state.config
    return CancelToken(timeout=config.server.request_timeout_s)
