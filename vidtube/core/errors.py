"""
VidTube Errors — typed failures and the top-level error boundary.

Handlers raise an ``ApiError`` subclass; the exception handlers registered by
``register_exception_handlers`` turn anything raised (typed or not) into the
failure envelope ``{success, status, message, stack}``.
"""
from __future__ import annotations

import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class ApiError(Exception):
    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationFailed(ApiError):
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "You are not allowed to modify this resource"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class InfrastructureError(ApiError):
    status_code = 500
    default_message = "Internal server error"


class StoreError(InfrastructureError):
    default_message = "Document store query failed"


class MediaHostError(InfrastructureError):
    default_message = "Media host request failed"


# ── Envelope ─────────────────────────────────────────────────────────────

def failure_response(status: int, message: str, exc: Optional[BaseException] = None) -> JSONResponse:
    stack = None
    if settings.expose_error_stack and exc is not None:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status,
        content={
            "success": False,
            "status": status,
            "message": message,
            "stack": stack,
        },
    )


def _describe_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI):
    """Install the single error boundary on ``app``."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return failure_response(exc.status_code, exc.message, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return failure_response(400, _describe_validation(exc), exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return failure_response(exc.status_code, str(exc.detail), exc)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return failure_response(500, "Internal server error", exc)
