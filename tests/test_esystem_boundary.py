"""Boundary handler: exceptions in, envelopes out."""

import logging

import pytest
from asgi_lifespan import LifespanManager
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from esystem.api import create_app
from esystem.boundary import error_envelope, render_error
from esystem.service_errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RemoteServiceError,
    ServiceError,
    ServiceTransportError,
    ValidationError,
)

from .helpers import make_settings


def test_authentication_error_without_message():
    status, envelope = error_envelope(AuthenticationError())

    assert status == 401
    assert envelope.to_json_dict() == {
        "success": False,
        "error": {
            "message": "Authentication required",
            "code": "AUTHENTICATION_ERROR",
            "statusCode": 401,
        },
    }


@pytest.mark.parametrize(
    "exc",
    [
        AuthenticationError(),
        ConflictError("Course with this code already exists"),
        NotFoundError(resource="Course", identifier="42"),
        ValidationError(details=[{"field": "email", "message": "Invalid email format"}]),
        RuntimeError("secret connection string"),
    ],
)
def test_mapping_is_idempotent(exc):
    first = render_error(exc)
    second = render_error(exc)

    assert first.status_code == second.status_code
    assert first.body == second.body


def test_unexpected_error_is_masked():
    status, envelope = error_envelope(RuntimeError("password=hunter2"))

    assert status == 500
    body = envelope.to_json_dict()
    assert body["error"]["message"] == "An unexpected error occurred"
    assert "details" not in body["error"]
    assert "hunter2" not in str(body)


def test_unexpected_error_detail_only_in_debug():
    _, envelope = error_envelope(RuntimeError("password=hunter2"), debug=True)

    assert envelope.error.details == [{"type": "RuntimeError", "message": "password=hunter2"}]


def test_non_operational_service_error_is_masked():
    status, envelope = error_envelope(ServiceError("internal invariant broken"))

    assert status == 500
    assert envelope.error.message == "An unexpected error occurred"


def test_transport_error_maps_to_service_unavailable():
    status, envelope = error_envelope(ServiceTransportError("course-service", "transport error"))

    assert status == 503
    assert envelope.error.message == "Service unavailable"
    assert envelope.error.code == "SERVICE_UNAVAILABLE"


def test_remote_error_keeps_remote_message_and_rederived_status():
    exc = RemoteServiceError("course-service", "Course not found", status_code=404)

    status, envelope = error_envelope(exc)

    assert status == 404
    assert envelope.error.message == "Course not found"
    assert envelope.error.code == "NOT_FOUND"


def test_remote_unexpected_error_is_masked():
    exc = RemoteServiceError("course-service", "stack trace from peer", status_code=500)

    status, envelope = error_envelope(exc)

    assert status == 500
    assert envelope.error.message == "An unexpected error occurred"


def test_401_carries_www_authenticate():
    response = render_error(AuthenticationError())
    assert response.headers["WWW-Authenticate"] == "Bearer"


class Grade(BaseModel):
    student_id: str
    score: float


def _app_with_failing_routes(**settings_overrides):
    app = create_app(settings=make_settings(**settings_overrides))

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database exploded")

    @app.get("/missing")
    async def missing():
        raise NotFoundError(resource="Course", identifier="7")

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=403, detail="Not your course")

    @app.post("/grades")
    async def create_grade(grade: Grade):
        return {"success": True, "data": grade.model_dump()}

    return app


@pytest.mark.asyncio
async def test_app_renders_operational_error():
    app = _app_with_failing_routes()
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get("/missing")

    assert resp.status_code == 404
    assert resp.json() == {
        "success": False,
        "error": {
            "message": "Course with identifier '7' not found",
            "code": "NOT_FOUND",
            "statusCode": 404,
        },
    }


@pytest.mark.asyncio
async def test_app_masks_unexpected_error_in_production(caplog):
    app = _app_with_failing_routes(environment="production")
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    with caplog.at_level(logging.ERROR, logger="esystem.boundary"):
        async with LifespanManager(app):
            async with AsyncClient(transport=transport, base_url="http://test") as c:
                resp = await c.get("/boom")

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["message"] == "An unexpected error occurred"
    assert "database exploded" not in resp.text
    assert any("database exploded" in str(r.exc_info[1]) for r in caplog.records if r.exc_info)


@pytest.mark.asyncio
async def test_app_shows_unexpected_error_in_development():
    app = _app_with_failing_routes(environment="development")
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with LifespanManager(app):
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/boom")

    assert resp.status_code == 500
    assert resp.json()["error"]["details"] == [
        {"type": "RuntimeError", "message": "database exploded"}
    ]


@pytest.mark.asyncio
async def test_app_renders_request_validation_as_400():
    app = _app_with_failing_routes()
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.post("/grades", json={"score": "A+"})

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert sorted(d["field"] for d in error["details"]) == ["score", "student_id"]


@pytest.mark.asyncio
async def test_app_wraps_http_exceptions_and_unknown_routes():
    app = _app_with_failing_routes()
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            forbidden = await c.get("/teapot")
            unknown = await c.get("/does-not-exist")

    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == {
        "message": "Not your course",
        "code": "AUTHORIZATION_ERROR",
        "statusCode": 403,
    }
    assert unknown.status_code == 404
    assert unknown.json()["success"] is False
    assert unknown.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_health_returns_envelope():
    app = create_app(settings=make_settings(service_name="course-service"))
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "data": {"status": "ok", "service": "course-service", "environment": "production"},
    }
