"""Tests for the request context middleware and logging filter.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- Log records stamped with the request and user ids
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from app.middleware.request_context import (
    _RequestContextFilter,
    install_context_filter,
    request_id_var,
    user_id_var,
)
from tests.conftest import auth


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 404) get an X-Request-ID header."""
    resp = client.get("/v1/auth/me")  # No auth token → 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_completion_line_logged(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "req-42"})
    lines = [r for r in caplog.records if r.name == "app.middleware.request_context"]
    assert any(r.getMessage().startswith("GET /health -> 200") for r in lines)
    assert all(getattr(r, "request_id", None) == "req-42" for r in lines)


def test_user_id_stamped_after_authentication(
    client: TestClient, student, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.handler.addFilter(_RequestContextFilter())
    with caplog.at_level(logging.DEBUG, logger="app.api.dependencies"):
        client.get("/v1/auth/me", headers=auth(student))
    validated = [r for r in caplog.records if "Token validated" in r.getMessage()]
    assert validated
    assert validated[0].user_id == str(student.id)


def test_filter_uses_placeholders_outside_requests() -> None:
    record = logging.LogRecord("x", logging.INFO, "x.py", 1, "msg", (), None)
    _RequestContextFilter().filter(record)
    assert record.request_id == "-"
    assert record.user_id == "-"


def test_filter_keeps_explicit_extra() -> None:
    token = request_id_var.set("from-context")
    user_token = user_id_var.set("user-ctx")
    try:
        record = logging.LogRecord("x", logging.INFO, "x.py", 1, "msg", (), None)
        record.request_id = "explicit"
        _RequestContextFilter().filter(record)
    finally:
        user_id_var.reset(user_token)
        request_id_var.reset(token)
    assert record.request_id == "explicit"
    assert record.user_id == "user-ctx"


def test_install_context_filter_is_idempotent() -> None:
    install_context_filter()
    install_context_filter()
    for handler in logging.getLogger().handlers:
        count = sum(isinstance(f, _RequestContextFilter) for f in handler.filters)
        assert count == 1
