"""Application metrics (Prometheus client).

One inventory of everything the service measures.  HTTP metrics are fed
by MetricsMiddleware; the domain counters are incremented by the services
that own the behaviour.  All of them are exposed on GET /metrics.

Endpoint labels use the route template (/v1/courses/{course_id}), not the
raw path, so per-course URLs do not explode label cardinality.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Uploads dominate the upper buckets
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

COURSE_OPERATIONS = Counter(
    "course_operations_total",
    "Course lifecycle operations by outcome",
    ["operation", "outcome"],  # create|edit|delete|enroll, ok|error
)

BACKREF_FAILURES = Counter(
    "course_backref_failures_total",
    "Back-reference updates that failed and were left inconsistent",
    ["target"],  # instructor|category
)

CASCADE_COMPENSATIONS = Counter(
    "course_cascade_compensations_total",
    "Compensating actions run after a failed cascade step",
    ["outcome"],  # ok|error
)

MEDIA_UPLOADS = Counter(
    "media_uploads_total",
    "Media uploads by input representation and outcome",
    ["representation", "outcome"],  # path|bytes|movable, ok|error|disabled
)

MEDIA_UPLOAD_DURATION = Histogram(
    "media_upload_duration_seconds",
    "Time spent uploading media to object storage",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

AUTH_FAILURES = Counter(
    "auth_failures_total",
    "Rejected credentials by reason",
    ["reason"],  # token_missing|token_expired|token_invalid|forbidden|...
)
