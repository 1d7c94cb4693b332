"""Convert exceptions into envelopes at the edge of a service.

This is the only place errors are caught and turned into responses. Handlers
raise and let errors propagate here. Operational errors keep their message
and status. Anything else becomes a 500 with a generic message: the full
exception is logged, and its text reaches the client only in development.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from esystem.envelope import ApiResponse, error_response, success_response
from esystem.service_errors import (
    ErrorKind,
    ServiceError,
    ServiceTransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def error_envelope(exc: BaseException, *, debug: bool = False) -> tuple[int, ApiResponse[Any]]:
    """Return `(status_code, envelope)` for any exception. Pure and deterministic."""
    if isinstance(exc, ServiceError) and exc.kind.operational:
        kind = exc.kind
        return kind.status_code, error_response(
            exc.detail,
            status_code=kind.status_code,
            code=kind.code,
            details=exc.details,
        )

    if isinstance(exc, ServiceTransportError):
        kind = ErrorKind.UNAVAILABLE
        return kind.status_code, error_response(
            kind.default_message,
            status_code=kind.status_code,
            code=kind.code,
        )

    kind = ErrorKind.INTERNAL
    details = [{"type": type(exc).__name__, "message": str(exc)}] if debug else None
    return kind.status_code, error_response(
        kind.default_message,
        status_code=kind.status_code,
        code=kind.code,
        details=details,
    )


def render_error(exc: BaseException, *, debug: bool = False) -> JSONResponse:
    status_code, envelope = error_envelope(exc, debug=debug)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=envelope.to_json_dict(), headers=headers)


def respond(data: Any = None, *, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    """Wrap a handler result in a success envelope."""
    return JSONResponse(status_code=status_code, content=success_response(data, message).to_json_dict())


def _debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.is_development)


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if not exc.is_operational:
        logger.error(
            "Unexpected service error on %s %s", request.method, request.url.path, exc_info=exc
        )
    return render_error(exc, debug=_debug(request))


async def _transport_error_handler(request: Request, exc: ServiceTransportError) -> JSONResponse:
    # The client already logged the failure with its cause.
    return render_error(exc, debug=_debug(request))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return render_error(ValidationError.from_pydantic_errors(list(exc.errors())))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = ErrorKind.from_status(exc.status_code)
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else kind.default_message
    envelope = error_response(
        message,
        status_code=exc.status_code if exc.status_code >= 400 else None,
        code=kind.code if kind.status_code == exc.status_code else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope.to_json_dict(),
        headers=getattr(exc, "headers", None),
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return render_error(exc, debug=_debug(request))


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ServiceTransportError, _transport_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unexpected_error_handler)
