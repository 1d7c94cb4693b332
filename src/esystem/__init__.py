"""Shared inter-service communication core for E-System services."""

from esystem.client import ServiceClient
from esystem.envelope import ApiResponse, ErrorDetail
from esystem.forwarding import ForwardingClient
from esystem.service_errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ErrorKind,
    NotFoundError,
    RemoteServiceError,
    ServiceError,
    ServiceTransportError,
    ValidationError,
)

__all__ = [
    "ApiResponse",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "ErrorDetail",
    "ErrorKind",
    "ForwardingClient",
    "NotFoundError",
    "RemoteServiceError",
    "ServiceClient",
    "ServiceError",
    "ServiceTransportError",
    "ValidationError",
]
