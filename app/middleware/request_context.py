"""Request context middleware: assigns a unique ID to every request.

Concurrent requests interleave their log lines; the request ID ties each
line back to the request that produced it.  The ID (and, once a token is
verified, the caller's user id) lives in ContextVars, which are per-task
in async code, and a logging filter copies them onto every LogRecord.

The middleware also times each request and logs one summary line, the
raw data behind the "duration_ms" field in JSON log output.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
# Set by the credential verifier after a token is accepted
user_id_var: ContextVar[str] = ContextVar("user_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Injects request_id and user_id into every LogRecord.

    A filter (not a formatter) because formatters can only read fields that
    already exist on the record.  Explicit extra= values win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if not hasattr(record, "user_id"):
            record.user_id = user_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_context_filter() -> None:
    """Attach the filter to every root handler (idempotent).

    Filters on a logger only apply to records created by that logger, so
    the filter goes on the handlers, where records from all loggers pass.
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times requests, and logs completion.

    1. Reads X-Request-ID (if the client sent one) or generates a UUID
    2. Stores it in a ContextVar for the rest of the async call chain
    3. Logs a summary line (method, path, status, duration)
    4. Echoes X-Request-ID on the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)
        user_token = user_id_var.set("-")

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            user_id_var.reset(user_token)
            request_id_var.reset(token)
