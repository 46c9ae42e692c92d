from __future__ import annotations

import dataclasses

import jwt
import pytest

from app.core import config
from app.core.errors import ServerMisconfigured
from app.models.user import User
from app.services import token_service


def _user() -> User:
    return User.new(
        email="t@example.com",
        password_hash="x",
        first_name="T",
        last_name="User",
        role="Instructor",
    )


def test_round_trip_claims() -> None:
    user = _user()
    claims = token_service.decode_access_token(token_service.create_access_token(user=user))
    assert claims["sub"] == str(user.id)
    assert claims["role"] == "Instructor"
    assert claims["email"] == "t@example.com"
    assert claims["exp"] - claims["iat"] == config.SETTINGS.jwt_ttl_hours * 3600
    assert claims["jti"]


def test_each_token_has_unique_id() -> None:
    user = _user()
    a = jwt.decode(token_service.create_access_token(user=user), options={"verify_signature": False})
    b = jwt.decode(token_service.create_access_token(user=user), options={"verify_signature": False})
    assert a["jti"] != b["jti"]


def test_other_algorithms_rejected() -> None:
    token = jwt.encode(
        {"sub": "x", "role": "Student", "iat": 1, "exp": 4102444800},
        config.SETTINGS.jwt_secret,
        algorithm="HS512",
    )
    with pytest.raises(jwt.InvalidAlgorithmError):
        token_service.decode_access_token(token)


def test_missing_role_claim_rejected() -> None:
    token = jwt.encode(
        {"sub": "x", "iat": 1, "exp": 4102444800},
        config.SETTINGS.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(jwt.MissingRequiredClaimError):
        token_service.decode_access_token(token)


def test_missing_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        config, "SETTINGS", dataclasses.replace(config.SETTINGS, jwt_secret=None)
    )
    with pytest.raises(ServerMisconfigured):
        token_service.create_access_token(user=_user())
    with pytest.raises(ServerMisconfigured):
        token_service.decode_access_token("anything")
