from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Peer name -> (environment variable, default base URL)
PEER_SERVICES: dict[str, tuple[str, str]] = {
    "auth": ("AUTH_SERVICE_URL", "http://localhost:4001"),
    "user": ("USER_SERVICE_URL", "http://localhost:4002"),
    "course": ("COURSE_SERVICE_URL", "http://localhost:4003"),
    "attendance": ("ATTENDANCE_SERVICE_URL", "http://localhost:4004"),
    "grade": ("GRADE_SERVICE_URL", "http://localhost:4005"),
    "content": ("CONTENT_SERVICE_URL", "http://localhost:4006"),
}

# Only used when ESYSTEM_ENV=development and no secret is configured.
DEV_JWT_SECRET = "esystem-dev-secret"


class ConfigurationError(Exception):
    """Raised when configuration is invalid at startup."""

    pass


@dataclass
class Settings:
    service_name: str
    host: str
    port: int
    log_level: str
    reload: bool
    environment: str
    jwt_secret: str | None
    jwt_algorithm: str
    jwt_expires_minutes: int
    request_timeout_seconds: float
    request_retries: int
    retry_backoff_seconds: float
    peer_urls: dict[str, str] = field(default_factory=dict)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _int_from_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be a valid integer, got '{raw}'")


def _float_from_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a valid number, got '{raw}'")


def get_settings() -> Settings:
    environment = os.getenv("ESYSTEM_ENV", "development").strip().lower()
    jwt_secret = os.getenv("ESYSTEM_JWT_SECRET") or os.getenv("JWT_SECRET")
    if not jwt_secret and environment == "development":
        jwt_secret = DEV_JWT_SECRET
    peer_urls = {
        name: os.getenv(env_var, default).rstrip("/")
        for name, (env_var, default) in PEER_SERVICES.items()
    }
    return Settings(
        service_name=os.getenv("ESYSTEM_SERVICE_NAME", "esystem"),
        host=os.getenv("ESYSTEM_HOST", "0.0.0.0"),
        port=_int_from_env("ESYSTEM_PORT", "4000"),
        log_level=os.getenv("ESYSTEM_LOG_LEVEL", "info"),
        reload=os.getenv("ESYSTEM_RELOAD", "false").lower() == "true",
        environment=environment,
        jwt_secret=jwt_secret,
        jwt_algorithm=os.getenv("ESYSTEM_JWT_ALGORITHM", "HS256"),
        jwt_expires_minutes=_int_from_env("ESYSTEM_JWT_EXPIRES_MINUTES", "60"),
        request_timeout_seconds=_float_from_env("ESYSTEM_REQUEST_TIMEOUT", "5.0"),
        request_retries=_int_from_env("ESYSTEM_REQUEST_RETRIES", "0"),
        retry_backoff_seconds=_float_from_env("ESYSTEM_RETRY_BACKOFF", "0.2"),
        peer_urls=peer_urls,
    )


def validate_settings(settings: Settings) -> None:
    """Fail fast on configuration that would make every request fail.

    Raises:
        ConfigurationError: If no JWT secret is configured outside development,
            or if the timeout or retry values are out of range.
    """
    if not settings.jwt_secret and not settings.is_development:
        msg = "ESYSTEM_JWT_SECRET (or JWT_SECRET) must be set outside development."
        logger.error(msg)
        raise ConfigurationError(msg)
    if settings.jwt_secret == DEV_JWT_SECRET:
        logger.warning(
            "Using the built-in development JWT secret; set ESYSTEM_ENV=production "
            "and ESYSTEM_JWT_SECRET for any deployed service."
        )
    if settings.request_timeout_seconds <= 0:
        raise ConfigurationError("ESYSTEM_REQUEST_TIMEOUT must be positive")
    if settings.request_retries < 0:
        raise ConfigurationError("ESYSTEM_REQUEST_RETRIES must not be negative")
