"""Health and readiness endpoints.

  /health (liveness): "is the process alive?"  Always 200; the body
    reports each dependency so a degraded instance is visible without
    being restarted.

  /ready (readiness): "can this instance take traffic?"  503 when the
    configured database is unreachable, so the load balancer stops routing
    here until it recovers.  Media and payments are optional providers and
    never affect readiness.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from app.db import engine as db

router = APIRouter(tags=["health"])


def _provider_status(request: Request, attr: str) -> str:
    provider = getattr(request.app.state, attr, None)
    if provider is None:
        return "not_configured"
    if getattr(provider, "enabled", True) is False or hasattr(provider, "reason"):
        return "disabled"
    return "ok"


@router.get("/health")
async def health(request: Request) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if db.engine is None:
        checks["database"] = "in_memory"
    elif await db.ping_database():
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    checks["media"] = _provider_status(request, "media")
    checks["payments"] = _provider_status(request, "payments")

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if db.engine is not None and not await db.ping_database():
        return Response(status_code=503)
    return Response(status_code=200)
