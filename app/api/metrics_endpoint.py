"""Prometheus metrics endpoint (text exposition format, not JSON).

Metric data reveals request rates and error patterns; in production keep
/metrics on an internal network or behind the scraper's allow-list.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
