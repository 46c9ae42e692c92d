"""Application error hierarchy.

Services raise these; app/api/errors.py turns them into the JSON envelope
{success: false, message, error}.  Each class pins the HTTP status and a
stable machine-readable code so clients can branch without parsing text.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for every error the API reports deliberately."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message


# --- 4xx: caller-caused -----------------------------------------------------


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details=details)


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Conflicting state"


class Unauthorized(AppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthenticated"


class TokenMissing(Unauthorized):
    code = "token_missing"
    default_message = "Token missing"


class TokenExpired(Unauthorized):
    code = "token_expired"
    default_message = "Token has expired. Please log in again."


class TokenInvalid(Unauthorized):
    code = "token_invalid"
    default_message = "Token is invalid. Please log in again."


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Insufficient permissions"


# --- media input errors (still caller-caused) -------------------------------


class SourceFileMissing(ValidationError):
    code = "source_file_missing"
    default_message = "Uploaded file could not be found on disk"


class UnsupportedFileRepresentation(ValidationError):
    code = "unsupported_file_representation"
    default_message = "Invalid image file format"


# --- 5xx: server or provider side ------------------------------------------


class Internal(AppError):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"


class ServerMisconfigured(Internal):
    code = "server_misconfigured"
    default_message = "Server configuration error. Please contact administrator."


class UpstreamFailure(AppError):
    status_code = 502
    code = "upstream_failure"
    default_message = "An upstream service failed"


class ServiceNotConfigured(AppError):
    status_code = 503
    code = "service_not_configured"
    default_message = "Service is not configured"
