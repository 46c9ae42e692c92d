from __future__ import annotations

import logging
from dataclasses import replace
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Request

from app.core.errors import (
    Forbidden,
    ServiceNotConfigured,
    TokenExpired,
    TokenInvalid,
    TokenMissing,
)
from app.core.metrics import AUTH_FAILURES
from app.middleware.request_context import user_id_var
from app.models.identity import Identity
from app.models.user import ROLES, Role, User
from app.repos.registry import Repositories, get_repos
from app.services import token_service
from app.services.media_service import MediaIngestor
from app.services.payment_service import DISABLED_MESSAGE, PaymentGateway

logger = logging.getLogger(__name__)

TOKEN_FIELD = "token"
_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _token_from_body(request: Request) -> str | None:
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            body = await request.json()
            value = body.get(TOKEN_FIELD) if isinstance(body, dict) else None
        elif content_type.startswith(_FORM_TYPES):
            value = (await request.form()).get(TOKEN_FIELD)
        else:
            return None
    except ValueError:
        # Malformed bodies are reported by the route's own validation
        return None
    return value if isinstance(value, str) and value else None


async def extract_token(request: Request) -> str | None:
    """Token lookup order: cookie, body field, then Authorization: Bearer."""
    token = request.cookies.get(TOKEN_FIELD)
    if token:
        return token
    token = await _token_from_body(request)
    if token:
        return token
    scheme, _, value = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


async def get_identity(request: Request) -> Identity:
    """Resolve the caller from a signed token.

    Used as a FastAPI dependency on any protected endpoint.  The token's
    secret and payload never appear in responses or logs.
    """
    raw_token = await extract_token(request)
    if not raw_token:
        AUTH_FAILURES.labels(reason="token_missing").inc()
        raise TokenMissing()

    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        AUTH_FAILURES.labels(reason="token_expired").inc()
        logger.warning("Expired token rejected")
        raise TokenExpired() from None
    except jwt.InvalidTokenError as e:
        AUTH_FAILURES.labels(reason="token_invalid").inc()
        logger.warning("Invalid token rejected: %s", type(e).__name__)
        raise TokenInvalid() from None

    role = claims.get("role")
    try:
        user_id = UUID(str(claims["sub"]))
    except (KeyError, ValueError):
        user_id = None
    if user_id is None or role not in ROLES:
        AUTH_FAILURES.labels(reason="token_invalid").inc()
        logger.warning("Token with malformed claims rejected")
        raise TokenInvalid()

    identity = Identity(user_id=user_id, role=role, email=str(claims.get("email", "")))
    user_id_var.set(str(user_id))
    logger.debug("Token validated for user=%s role=%s", user_id, role)
    return identity


_ROLE_MESSAGES: dict[Role, str] = {
    "Student": "This is a Protected Route for Students",
    "Instructor": "This is a Protected Route for Instructor",
    "Admin": "This is a Protected Route for Admin",
}


def require_role(*roles: Role):
    """Dependency factory: demand one of *roles*.

    The persisted user is re-read on every request because the token's
    role is only a snapshot.  Any failure to confirm the role is a 403.

    Usage: Depends(require_role("Instructor"))
    """
    if not roles:
        raise ValueError("require_role needs at least one role")
    message = _ROLE_MESSAGES[roles[0]] if len(roles) == 1 else "Insufficient permissions"

    async def _guard(
        identity: Annotated[Identity, Depends(get_identity)],
        repos: Annotated[Repositories, Depends(get_repos)],
    ) -> Identity:
        try:
            user = await repos.users.get_by_id(identity.user_id)
        except Exception:
            logger.exception("Role lookup failed for user=%s", identity.user_id)
            AUTH_FAILURES.labels(reason="role_unverified").inc()
            raise Forbidden("User role can't be verified") from None

        if user is None or not user.is_active or user.role not in roles:
            logger.warning(
                "Access denied: user=%s role=%s required=%s",
                identity.user_id,
                user.role if user else None,
                roles,
            )
            AUTH_FAILURES.labels(reason="forbidden").inc()
            raise Forbidden(message)
        return replace(identity, role=user.role)

    return _guard


async def get_current_user(
    identity: Annotated[Identity, Depends(get_identity)],
    repos: Annotated[Repositories, Depends(get_repos)],
) -> User:
    user = await repos.users.get_by_id(identity.user_id)
    if user is None or not user.is_active:
        raise TokenInvalid()
    return user


def get_media_ingestor(request: Request) -> MediaIngestor:
    return request.app.state.media


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payments


def require_payments_enabled(
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> PaymentGateway:
    """The configured gateway; 503 while payments are disabled."""
    if not gateway.enabled:
        raise ServiceNotConfigured(DISABLED_MESSAGE)
    return gateway


Repos = Annotated[Repositories, Depends(get_repos)]
CurrentIdentity = Annotated[Identity, Depends(get_identity)]
Media = Annotated[MediaIngestor, Depends(get_media_ingestor)]
