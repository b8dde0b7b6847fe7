"""Exception → JSON envelope mapping. Every error body is ``{"error": "<message>"}``."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from flowbot.core.errors import (
    Canceled,
    ConflictError,
    FlowbotError,
    NotFoundError,
    ValidationError,
)

# Most specific first: ConflictError is a RepositoryError.
STATUS_MAP: tuple[tuple[type[FlowbotError], int], ...] = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (Canceled, 504),
)


def status_for(exc: Exception) -> int:
    for cls, status in STATUS_MAP:
        if isinstance(exc, cls):
            return status
    return 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _flowbot_error_handler(request: Request, exc: FlowbotError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.opt(exception=exc).error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status}: {exc}")
    return error_response(status, str(exc))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg', 'invalid value')}" if loc else first.get("msg", "invalid request")
    else:
        message = "invalid request"
    return error_response(400, message)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"{request.method} {request.url.path} crashed: {exc}")
    return error_response(500, "internal server error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FlowbotError, _flowbot_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
