from __future__ import annotations

from typing import Any, Callable

import httpx

from esystem.auth import UserPayload, create_access_token
from esystem.client import ServiceClient
from esystem.config import Settings

COURSE_URL = "http://course.test"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "service_name": "grade-service",
        "host": "127.0.0.1",
        "port": 4005,
        "log_level": "info",
        "reload": False,
        "environment": "production",
        "jwt_secret": "test-secret",
        "jwt_algorithm": "HS256",
        "jwt_expires_minutes": 60,
        "request_timeout_seconds": 1.0,
        "request_retries": 0,
        "retry_backoff_seconds": 0.0,
        "peer_urls": {"course": COURSE_URL},
    }
    values.update(overrides)
    return Settings(**values)


def make_user(role: str = "teacher", **overrides: Any) -> UserPayload:
    values: dict[str, Any] = {
        "userId": "u-1",
        "email": "ada@school.test",
        "role": role,
        "fullName": "Ada Lovelace",
    }
    values.update(overrides)
    return UserPayload(**values)


def issue_token(settings: Settings, role: str = "teacher", **overrides: Any) -> str:
    return create_access_token(make_user(role, **overrides), settings)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def course_client(handler: Callable, **overrides: Any) -> ServiceClient:
    values: dict[str, Any] = {
        "service_name": "course-service",
        "base_url": COURSE_URL,
        "retry_backoff_seconds": 0.0,
        "transport": httpx.MockTransport(handler),
    }
    values.update(overrides)
    return ServiceClient(**values)
