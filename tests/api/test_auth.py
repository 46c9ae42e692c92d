"""Sign-up, login and credential extraction.

Tokens are looked up in the "token" cookie first, then a "token" body
field, then the Authorization header.  Each rejection reason has its own
error code so clients can tell an expired session from a forged one.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from app.core import config
from app.main import app
from tests.conftest import JWT_SECRET, PASSWORD, auth, create_course, make_user, mint_token

# ---- signup ----


def _signup_body(**overrides: object) -> dict:
    body = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "password": "correct-horse",
        "confirmPassword": "correct-horse",
        "accountType": "Instructor",
    }
    body.update(overrides)
    return body


def test_signup_creates_user(client: TestClient) -> None:
    resp = client.post("/v1/auth/signup", json=_signup_body())
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["email"] == "ada@example.com"
    assert body["data"]["role"] == "Instructor"
    assert "password_hash" not in body["data"]


def test_signup_defaults_to_student(client: TestClient) -> None:
    payload = _signup_body()
    del payload["accountType"]
    resp = client.post("/v1/auth/signup", json=payload)
    assert resp.status_code == 201
    assert resp.json()["data"]["role"] == "Student"


def test_signup_duplicate_email_is_conflict(client: TestClient) -> None:
    client.post("/v1/auth/signup", json=_signup_body())
    resp = client.post("/v1/auth/signup", json=_signup_body(email="ADA@example.com"))
    assert resp.status_code == 409
    assert resp.json()["message"] == "User already exists. Please sign in to continue."


def test_signup_password_mismatch(client: TestClient) -> None:
    resp = client.post("/v1/auth/signup", json=_signup_body(confirmPassword="nope-nope"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_signup_short_password(client: TestClient) -> None:
    resp = client.post(
        "/v1/auth/signup", json=_signup_body(password="short", confirmPassword="short")
    )
    assert resp.status_code == 400
    assert resp.json()["details"]["field"] == "password"


def test_signup_cannot_self_assign_admin(client: TestClient) -> None:
    resp = client.post("/v1/auth/signup", json=_signup_body(accountType="Admin"))
    assert resp.status_code == 422
    assert resp.json()["error"] == "request_validation"


# ---- login ----


def test_login_returns_token_and_sets_cookie(client: TestClient, repos) -> None:
    user = make_user(repos, "Student", email="sam@example.com")
    resp = client.post(
        "/v1/auth/login", json={"email": "sam@example.com", "password": PASSWORD}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["data"]["user"]["id"] == str(user.id)
    assert resp.cookies.get("token") == body["data"]["token"]
    assert "httponly" in resp.headers["set-cookie"].lower()


def test_login_wrong_password(client: TestClient, repos) -> None:
    make_user(repos, "Student", email="sam@example.com")
    resp = client.post(
        "/v1/auth/login", json={"email": "sam@example.com", "password": "wrong-password"}
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid email or password"
    assert "token" not in resp.cookies


def test_login_unknown_email(client: TestClient) -> None:
    resp = client.post(
        "/v1/auth/login", json={"email": "ghost@example.com", "password": PASSWORD}
    )
    assert resp.status_code == 401


# ---- credential extraction ----


def test_me_with_bearer_header(client: TestClient, student) -> None:
    resp = client.get("/v1/auth/me", headers=auth(student))
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "student@example.com"


def test_me_with_cookie_from_login(repos) -> None:
    make_user(repos, "Student", email="sam@example.com")
    with TestClient(app) as session:
        session.post("/v1/auth/login", json={"email": "sam@example.com", "password": PASSWORD})
        resp = session.get("/v1/auth/me")
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "sam@example.com"


def test_token_in_json_body_field(client: TestClient, instructor, category, student) -> None:
    course = create_course(client, instructor, category, status="Published")
    client.post(f"/v1/courses/{course['id']}/enroll", headers=auth(student))
    resp = client.post(
        "/v1/courses/full-details",
        json={"courseId": course["id"], "token": mint_token(student)},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["completed_videos"] == []


def test_cookie_wins_over_header(repos, student) -> None:
    other = make_user(repos, "Student", email="other@example.com")
    with TestClient(app, cookies={"token": mint_token(student)}) as session:
        resp = session.get("/v1/auth/me", headers=auth(other))
    assert resp.json()["data"]["email"] == "student@example.com"


def test_missing_token(client: TestClient) -> None:
    resp = client.get("/v1/auth/me")
    assert resp.status_code == 401
    assert resp.json()["error"] == "token_missing"


def test_expired_token(client: TestClient, student) -> None:
    past = datetime.now(UTC) - timedelta(hours=2)
    token = jwt.encode(
        {
            "sub": str(student.id),
            "role": "Student",
            "iat": past,
            "exp": past + timedelta(minutes=5),
        },
        JWT_SECRET,
        algorithm="HS256",
    )
    resp = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "token_expired"


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        jwt.encode(
            {"sub": "x", "role": "Student", "iat": 1, "exp": 4102444800},
            "some-other-secret",
            algorithm="HS256",
        ),
        jwt.encode(
            {"sub": "not-a-uuid", "role": "Student", "iat": 1, "exp": 4102444800},
            JWT_SECRET,
            algorithm="HS256",
        ),
    ],
    ids=["garbage", "wrong-secret", "bad-subject"],
)
def test_invalid_token(client: TestClient, token: str) -> None:
    resp = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "token_invalid"


def test_missing_secret_is_server_error(
    client: TestClient, student, monkeypatch: pytest.MonkeyPatch
) -> None:
    headers = auth(student)
    monkeypatch.setattr(
        config, "SETTINGS", dataclasses.replace(config.SETTINGS, jwt_secret=None)
    )
    resp = client.get("/v1/auth/me", headers=headers)
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "server_misconfigured"
    assert body["message"] == "Server configuration error. Please contact administrator."
