from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from app.core.errors import Conflict, ValidationError
from app.repos.user_repo import InMemoryUserRepo
from app.services.auth_service import (
    authenticate_user,
    hash_password,
    register_user,
    verify_password,
)


def _register(repo: InMemoryUserRepo, **overrides):
    fields = {
        "email": " Grace@Example.com ",
        "password": "hopper-1906",
        "first_name": "Grace",
        "last_name": "Hopper",
        "role": "Instructor",
    }
    fields.update(overrides)
    return asyncio.run(register_user(repo, **fields))


def test_hash_and_verify() -> None:
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed) is True
    assert verify_password("wrong", hashed) is False
    assert verify_password("s3cret-pass", "not-a-hash") is False


def test_register_normalizes_email() -> None:
    repo = InMemoryUserRepo()
    user = _register(repo)
    assert user.email == "grace@example.com"
    assert user.courses == ()
    assert verify_password("hopper-1906", user.password_hash)


def test_register_duplicate_is_conflict() -> None:
    repo = InMemoryUserRepo()
    _register(repo)
    with pytest.raises(Conflict):
        _register(repo, email="grace@example.com")


def test_register_refuses_admin_by_default() -> None:
    with pytest.raises(ValidationError):
        _register(InMemoryUserRepo(), role="Admin")


def test_register_admin_when_allowed() -> None:
    user = _register(InMemoryUserRepo(), role="Admin", allowed_roles=("Admin",))
    assert user.role == "Admin"


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"email": "not-an-email"}, "email"),
        ({"first_name": " "}, "first_name"),
        ({"password": "short"}, "password"),
    ],
    ids=["email", "name", "password"],
)
def test_register_validates(overrides: dict, field: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        _register(InMemoryUserRepo(), **overrides)
    assert exc_info.value.details["field"] == field


def test_authenticate() -> None:
    repo = InMemoryUserRepo()
    user = _register(repo)
    assert asyncio.run(authenticate_user(repo, "GRACE@example.com", "hopper-1906")) == user
    assert asyncio.run(authenticate_user(repo, "grace@example.com", "nope")) is None
    assert asyncio.run(authenticate_user(repo, "ghost@example.com", "hopper-1906")) is None


def test_authenticate_inactive_user() -> None:
    repo = InMemoryUserRepo()
    user = _register(repo)
    repo._by_id[user.id] = replace(user, is_active=False)
    assert asyncio.run(authenticate_user(repo, "grace@example.com", "hopper-1906")) is None
