from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

DEFAULT_MEDIA_FOLDER = "course-service"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _getenv_bool(name: str) -> bool:
    return _getenv(name, "false").lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Provider settings: each provider is either configured or explicitly disabled.
# Components receive one of the two variants and never look at env vars.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MediaSettings:
    bucket: str
    access_key_id: str
    secret_access_key: str
    region: str
    folder: str = DEFAULT_MEDIA_FOLDER
    public_base_url: str | None = None
    max_height: int | None = None
    quality: int | None = None
    memory_limit_bytes: int = 1024 * 1024


@dataclass(frozen=True)
class MediaDisabled:
    reason: str
    folder: str = DEFAULT_MEDIA_FOLDER


@dataclass(frozen=True)
class PaymentSettings:
    key_id: str
    key_secret: str
    api_base: str = "https://api.razorpay.com/v1"
    currency: str = "INR"


@dataclass(frozen=True)
class PaymentDisabled:
    reason: str


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    jwt_secret: str | None
    jwt_ttl_hours: int
    media: MediaSettings | MediaDisabled
    payments: PaymentSettings | PaymentDisabled
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _load_media_settings() -> MediaSettings | MediaDisabled:
    folder = _getenv("MEDIA_FOLDER", "") or DEFAULT_MEDIA_FOLDER
    bucket = _getenv("MEDIA_BUCKET", "")
    key_id = _getenv("MEDIA_ACCESS_KEY_ID", "")
    secret = _getenv("MEDIA_SECRET_ACCESS_KEY", "")

    missing = [
        name
        for name, value in (
            ("MEDIA_BUCKET", bucket),
            ("MEDIA_ACCESS_KEY_ID", key_id),
            ("MEDIA_SECRET_ACCESS_KEY", secret),
        )
        if not value
    ]
    if missing:
        return MediaDisabled(reason=f"missing {', '.join(missing)}", folder=folder)

    max_height = _getenv_int("MEDIA_MAX_HEIGHT", 0) or None
    quality = _getenv_int("MEDIA_QUALITY", 0) or None
    if quality is not None and not 1 <= quality <= 100:
        raise ValueError(f"MEDIA_QUALITY must be 1..100 (got {quality})")

    return MediaSettings(
        bucket=bucket,
        access_key_id=key_id,
        secret_access_key=secret,
        region=_getenv("MEDIA_REGION", "us-east-1"),
        folder=folder,
        public_base_url=_getenv("MEDIA_PUBLIC_BASE_URL", "") or None,
        max_height=max_height,
        quality=quality,
        memory_limit_bytes=_getenv_int("MEDIA_MEMORY_LIMIT_BYTES", 1024 * 1024),
    )


def _load_payment_settings() -> PaymentSettings | PaymentDisabled:
    key_id = _getenv("PAYMENT_KEY_ID", "")
    key_secret = _getenv("PAYMENT_KEY_SECRET", "")
    if not key_id or not key_secret:
        return PaymentDisabled(reason="missing PAYMENT_KEY_ID or PAYMENT_KEY_SECRET")
    return PaymentSettings(
        key_id=key_id,
        key_secret=key_secret,
        api_base=_getenv("PAYMENT_API_BASE", "https://api.razorpay.com/v1"),
        currency=_getenv("PAYMENT_CURRENCY", "INR").upper(),
    )


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000)
    jwt_ttl_hours = _getenv_int("JWT_TTL_HOURS", 24)
    if jwt_ttl_hours <= 0:
        raise ValueError(f"JWT_TTL_HOURS must be positive (got {jwt_ttl_hours})")

    cors_raw = _getenv("CORS_ORIGINS", "http://localhost:3000")
    cors_origins = tuple(o.strip() for o in cors_raw.split(",") if o.strip())

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        jwt_secret=_getenv("JWT_SECRET", "") or None,
        jwt_ttl_hours=jwt_ttl_hours,
        media=_load_media_settings(),
        payments=_load_payment_settings(),
        cors_origins=cors_origins,
    )


SETTINGS = load_settings()
