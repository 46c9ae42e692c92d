"""JWT access token creation and validation (HS256).

Centralizes all token logic so auth.py (issuance) and dependencies.py
(validation) share the same secret and claims schema.  The secret is read
from SETTINGS on every call; when it is missing each request fails with
ServerMisconfigured instead of the process refusing to start.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt

from app.core import config
from app.core.errors import ServerMisconfigured
from app.models.user import User

ALGORITHM = "HS256"


def _secret() -> str:
    secret = config.SETTINGS.jwt_secret
    if not secret:
        raise ServerMisconfigured()
    return secret


def create_access_token(*, user: User) -> str:
    """Build and sign an access token for *user*.

    Claims: sub, role, email, iat, exp, jti.  role is a snapshot; the role
    gate re-reads the persisted user before trusting it.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(hours=config.SETTINGS.jwt_ttl_hours),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry, return the payload.

    Pins the algorithm to HS256 to prevent alg:none and alg-switching.

    Raises ServerMisconfigured when no secret is configured,
    jwt.ExpiredSignatureError / jwt.InvalidTokenError on a bad token.
    """
    return jwt.decode(
        token,
        _secret(),
        algorithms=[ALGORITHM],
        options={"require": ["sub", "role", "exp", "iat"]},
    )
