"""FastAPI application factory."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from flowbot import __version__
from flowbot.agent.runner import ChatRunner
from flowbot.agent.skills.local import LocalSkillRuntime
from flowbot.agent.skills.registry import SkillRegistry
from flowbot.api.admin import router as admin_router
from flowbot.api.errors import install_error_handlers
from flowbot.api.routes import router as core_router
from flowbot.core.channels.telegram import router as telegram_router
from flowbot.core.config.loader import load_config
from flowbot.core.config.schema import Config
from flowbot.core.cron.registry import ScheduleRegistry
from flowbot.core.logging import setup_logging
from flowbot.core.providers.litellm_llm import LiteLLMProvider
from flowbot.memory.store import MemoryStore

REQUEST_ID_HEADER = "X-Request-ID"


# ── Request logging middleware ──────────────────────────────


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Access log line per request + ``X-Request-ID`` propagation."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
            duration_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} "
                f"{duration_ms:.1f}ms request_id={request_id}"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# ── App Factory ──────────────────────────────────────────────


def build_state(app: FastAPI, config: Config) -> None:
    """Wire Config → MemoryStore → provider/runtime → services onto app.state."""
    db = MemoryStore(str(config.db_path))
    provider = LiteLLMProvider(config)
    runtime = LocalSkillRuntime(config.skills)

    app.state.config = config
    app.state.db = db
    app.state.runner = ChatRunner(db, provider, runtime, config.server.max_message_length)
    app.state.skills = SkillRegistry(db.skills, runtime)
    app.state.schedules = ScheduleRegistry(db.schedules)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: init Config → MemoryStore → ChatRunner. Shutdown: log."""
    if not hasattr(app.state, "config"):
        config = load_config()
        setup_logging(config.logging)
        build_state(app, config)

    logger.info(f"flowbot API started, model: {app.state.config.llm.model}")
    yield
    logger.info("flowbot API shutting down")


def create_app(config: Config | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    With ``config`` the state is built eagerly; otherwise the lifespan loads
    configuration on startup.
    """
    app = FastAPI(
        title="flowbot API",
        description="Conversational agent backend",
        version=__version__,
        lifespan=lifespan,
    )

    origins = config.server.cors_origins if config else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    install_error_handlers(app)

    app.include_router(core_router)
    app.include_router(admin_router)
    app.include_router(telegram_router)

    if config is not None:
        build_state(app, config)

    return app


app = create_app()
