from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.auth import router as auth_router
from app.api.categories import router as categories_router
from app.api.courses import router as courses_router
from app.api.errors import install_error_handlers
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.payments import router as payments_router
from app.api.progress import router as progress_router
from app.api.sections import router as sections_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import (
    RequestContextMiddleware,
    install_context_filter,
)
from app.services.media_service import build_media_ingestor
from app.services.payment_service import build_payment_gateway

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        yield


app = FastAPI(
    title="course-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Provider adapters are chosen once from configuration; routes read them
# through dependencies so tests can override them.
app.state.media = build_media_ingestor(SETTINGS.media)
app.state.payments = build_payment_gateway(SETTINGS.payments)

install_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) -> Metrics -> CORS -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(categories_router)
app.include_router(courses_router)
app.include_router(sections_router)
app.include_router(progress_router)
app.include_router(payments_router)

logger.info(
    "course-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
