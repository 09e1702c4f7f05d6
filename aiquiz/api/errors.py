"""
Exception handlers.

Every error leaves the API as `{"success": false, "message": ...}`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aiquiz.config import Settings
from aiquiz.core.errors import AIQuizError
from aiquiz.integrations.sentry import capture_exception

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Attach the JSON error handlers to `app`."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Invalid request body on {request.url.path}: {exc.errors()}")
        return error_response(400, "Datos de entrada inválidos")

    @app.exception_handler(AIQuizError)
    async def domain_exception_handler(request: Request, exc: AIQuizError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        capture_exception(exc, path=request.url.path)
        if settings.is_development:
            return error_response(500, "Error interno del servidor", error=str(exc))
        return error_response(500, "Error interno del servidor")
