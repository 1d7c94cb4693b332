"""Error taxonomy shared by every esystem service.

Service code raises these instead of fastapi.HTTPException so it stays
transport-agnostic. Each exception carries an `ErrorKind`, and the kind (not
the Python class) decides the status code, machine code and default message.
The REST layer converts them to envelopes in `esystem.boundary`; the service
client raises `RemoteServiceError` when a peer answers with a non-2xx status.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from esystem.messages import ERROR_MESSAGES


class ErrorKind(Enum):
    """Closed set of error kinds that are meaningful across service boundaries.

    Each member is `(code, status_code, message_key, operational)`.
    """

    AUTHENTICATION = ("AUTHENTICATION_ERROR", 401, "UNAUTHORIZED", True)
    AUTHORIZATION = ("AUTHORIZATION_ERROR", 403, "INSUFFICIENT_PERMISSIONS", True)
    NOT_FOUND = ("NOT_FOUND", 404, "NOT_FOUND", True)
    CONFLICT = ("CONFLICT", 409, "CONFLICT", True)
    VALIDATION = ("VALIDATION_ERROR", 400, "VALIDATION_ERROR", True)
    UNAVAILABLE = ("SERVICE_UNAVAILABLE", 503, "SERVICE_UNAVAILABLE", True)
    INTERNAL = ("INTERNAL_ERROR", 500, "INTERNAL_SERVER_ERROR", False)

    def __init__(self, code: str, status_code: int, message_key: str, operational: bool) -> None:
        self.code = code
        self.status_code = status_code
        self.message_key = message_key
        self.operational = operational

    @property
    def default_message(self) -> str:
        return ERROR_MESSAGES[self.message_key]

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["ErrorKind"]:
        if not code:
            return None
        for kind in cls:
            if kind.code == code:
                return kind
        return None

    @classmethod
    def from_status(cls, status_code: Optional[int]) -> "ErrorKind":
        """Map an HTTP status to a kind. 422 is folded into VALIDATION."""
        if status_code == 422:
            return cls.VALIDATION
        for kind in cls:
            if kind.status_code == status_code:
                return kind
        return cls.INTERNAL


class ServiceError(Exception):
    """Base for all service-layer errors.

    A bare ServiceError is an unexpected (non-operational) failure and is
    masked at the boundary.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.kind.default_message
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def is_operational(self) -> bool:
        return self.kind.operational

    @property
    def details(self) -> Optional[list[dict[str, Any]]]:
        return None


class AuthenticationError(ServiceError):
    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(ServiceError):
    kind = ErrorKind.AUTHORIZATION


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource: Optional[str] = None,
        identifier: Optional[str | int] = None,
    ) -> None:
        if detail is None and resource is not None:
            if identifier is not None and identifier != "":
                detail = f"{resource} with identifier '{identifier}' not found"
            else:
                detail = f"{resource} not found"
        super().__init__(detail)


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        detail: Optional[str] = None,
        details: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self._details = list(details) if details else None
        super().__init__(detail)

    @property
    def details(self) -> Optional[list[dict[str, Any]]]:
        return self._details

    @classmethod
    def from_pydantic_errors(cls, errors: list[dict[str, Any]]) -> "ValidationError":
        """Build from `exc.errors()` of pydantic or FastAPI RequestValidationError."""
        details = []
        for err in errors:
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            details.append({"field": ".".join(loc), "message": err.get("msg", "")})
        return cls(details=details)


class ServiceUnavailableError(ServiceError):
    kind = ErrorKind.UNAVAILABLE


class RemoteServiceError(ServiceError):
    """A peer service answered with a non-2xx status.

    The message is the remote one. The classification is re-derived from the
    remote `error.code`, falling back to the HTTP status.
    """

    def __init__(
        self,
        service_name: str,
        detail: str,
        *,
        status_code: int,
        remote_code: Optional[str] = None,
        envelope: Optional[dict[str, Any]] = None,
    ) -> None:
        self.service_name = service_name
        self.remote_status_code = status_code
        self.remote_code = remote_code
        self.envelope = envelope
        self.kind = ErrorKind.from_code(remote_code) or ErrorKind.from_status(status_code)
        super().__init__(detail)


class ServiceTransportError(Exception):
    """A peer could not be reached or did not speak the envelope protocol."""

    def __init__(self, service_name: str, detail: str) -> None:
        self.service_name = service_name
        self.detail = detail
        super().__init__(f"[{service_name}] {detail}")


class EnvelopeProtocolError(ServiceTransportError):
    """The peer's body was not JSON or did not carry a boolean `success` field."""
