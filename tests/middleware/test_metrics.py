"""Tests for Prometheus metrics middleware.

NOTE ON TESTING PROMETHEUS METRICS:
The prometheus-client library uses a global default registry.  Counters
can only go up and cannot be reset between tests.  To avoid test
pollution, we assert on DELTAS: read the value before the action, perform
the action, read the value after, and assert the difference.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    """Each HTTP request should increment the request counter."""
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    """Each request should add an observation to the duration histogram."""
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before == 1


def test_endpoint_label_uses_route_template(client: TestClient) -> None:
    """Per-id URLs share one series keyed by the route template."""
    labels = {
        "method": "DELETE",
        "endpoint": "/v1/courses/{course_id}",
        "status_code": "401",
    }
    before = _get_sample("http_requests_total", labels)
    client.delete(f"/v1/courses/{uuid4()}")
    client.delete(f"/v1/courses/{uuid4()}")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 2


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/path")
    client.get("/another/missing/path")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 2


def test_auth_failures_counted_by_reason(client: TestClient, student) -> None:
    missing_before = _get_sample("auth_failures_total", {"reason": "token_missing"})
    forbidden_before = _get_sample("auth_failures_total", {"reason": "forbidden"})

    client.get("/v1/auth/me")
    client.get("/v1/courses/instructor", headers=auth(student))

    assert _get_sample("auth_failures_total", {"reason": "token_missing"}) - missing_before == 1
    assert _get_sample("auth_failures_total", {"reason": "forbidden"}) - forbidden_before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """GET /metrics should return Prometheus text exposition format."""
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "course_operations_total" in resp.text
    assert "media_uploads_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    after = _get_sample("http_requests_total", labels)
    assert after == before
