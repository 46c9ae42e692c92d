"""Response envelope and exception handlers.

Every response body has the shape {success, message?, data?, error?}.
Handlers registered here turn AppError subclasses, request-schema errors
and unexpected exceptions into that envelope.
"""

from __future__ import annotations

import logging
import traceback
from typing import Generic, TypeVar

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core import config
from app.core.errors import AppError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None
    error: str | None = None


def _error_body(
    message: str, code: str, details: dict | None = None, **extra: object
) -> dict:
    body: dict = {"success": False, "message": message, "error": code}
    if details:
        body["details"] = jsonable_encoder(details)
    body.update(extra)
    return body


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "%s %s failed  status=%d code=%s message=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.code,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code, exc.details),
    )


async def _validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_body(
            "Invalid request", "request_validation", {"errors": exc.errors()}
        ),
    )


async def _http_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "http_error"),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    extra: dict[str, object] = {}
    if config.SETTINGS.is_dev:
        extra["traceback"] = traceback.format_exception(exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", "internal_error", **extra),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_handler)
