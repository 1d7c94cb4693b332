"""Inbound authentication for esystem services.

Every service verifies the caller's bearer JWT itself; no service trusts an
upstream hop without re-verifying. The verified identity and the raw token
travel together as a `Caller` so handlers can forward the token verbatim to
peers (see `esystem.forwarding`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from esystem.config import ConfigurationError, Settings
from esystem.messages import ERROR_MESSAGES
from esystem.service_errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class UserPayload(BaseModel):
    """Identity claims carried in every access token."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: str = Field(alias="userId", min_length=1)
    email: str
    role: UserRole
    full_name: str = Field(alias="fullName")


@dataclass(frozen=True)
class Caller:
    """The verified identity of the inbound request plus the token it arrived with."""

    user: UserPayload
    token: str


def _jwt_secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        logger.error("No JWT secret configured. Set ESYSTEM_JWT_SECRET or JWT_SECRET.")
        raise ConfigurationError("JWT secret not configured")
    return settings.jwt_secret


def create_access_token(
    user: UserPayload,
    settings: Settings,
    *,
    expires_minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    minutes = settings.jwt_expires_minutes if expires_minutes is None else expires_minutes
    claims = user.model_dump(mode="json", by_alias=True)
    claims["iat"] = int(now.timestamp())
    claims["exp"] = int((now + timedelta(minutes=minutes)).timestamp())
    return jwt.encode(claims, _jwt_secret(settings), algorithm=settings.jwt_algorithm)


def verify_access_token(token: str, settings: Settings) -> UserPayload:
    """Decode and validate an access token.

    Raises:
        AuthenticationError: If the token is expired, badly signed, or its
            claims do not form a UserPayload.
    """
    try:
        claims = jwt.decode(token, _jwt_secret(settings), algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError(ERROR_MESSAGES["TOKEN_EXPIRED"])
    except JWTError:
        raise AuthenticationError(ERROR_MESSAGES["TOKEN_INVALID"])
    try:
        return UserPayload.model_validate(claims)
    except PydanticValidationError:
        raise AuthenticationError(ERROR_MESSAGES["TOKEN_INVALID"])


def parse_bearer_token(request: Request) -> Optional[str]:
    """
    Extract Bearer token from Authorization header.

    Returns the token if Authorization header is present and properly formatted
    as "Bearer <token>". Returns None if header is absent.
    Raises AuthenticationError if header is present but malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    if not auth_header.startswith("Bearer ") or not auth_header[7:].strip():
        raise AuthenticationError("Invalid Authorization header. Expected: Bearer <token>")

    return auth_header[7:]  # Strip "Bearer " prefix


async def get_caller(request: Request) -> Caller:
    """FastAPI dependency returning the verified caller of this request."""
    cached = getattr(request.state, "caller", None)
    if cached is not None:
        return cached

    token = parse_bearer_token(request)
    if token is None:
        raise AuthenticationError()

    settings: Settings = request.app.state.settings
    caller = Caller(user=verify_access_token(token, settings), token=token)
    request.state.caller = caller
    return caller


def require_roles(*roles: UserRole | str) -> Callable:
    """Dependency factory that admits only callers holding one of `roles`.

    Example: `Depends(require_roles("admin", "teacher"))`
    """
    allowed = {UserRole(role) for role in roles}

    async def _require_roles(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.user.role not in allowed:
            raise AuthorizationError()
        return caller

    return _require_roles
