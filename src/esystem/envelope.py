"""The response envelope every esystem endpoint returns.

    {"success": bool, "data"?: T, "message"?: str, "error"?: ErrorDetail}

`success` is true exactly when `data` is present and `error` is absent, and
false exactly when `error` is present. Presence is tracked through the
model's set fields, so an explicit `"data": null` counts as present.
"""

from __future__ import annotations

import json
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from esystem.service_errors import EnvelopeProtocolError

T = TypeVar("T")


class ErrorDetail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    code: Optional[str] = None
    status_code: Optional[int] = Field(default=None, alias="statusCode", ge=400, le=599)
    details: Optional[list[dict[str, Any]]] = None


class ApiResponse(BaseModel, Generic[T]):
    # Peers may add top-level fields such as `meta` or `timestamp`; keep them.
    model_config = ConfigDict(extra="allow")

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[ErrorDetail] = None

    @model_validator(mode="after")
    def check_success_matches_payload(self) -> "ApiResponse[T]":
        has_data = "data" in self.model_fields_set
        has_error = self.error is not None
        if self.success and (not has_data or has_error):
            raise ValueError("successful envelope must carry data and no error")
        if not self.success and not has_error:
            raise ValueError("failed envelope must carry an error")
        return self

    def to_json_dict(self) -> dict[str, Any]:
        dumped = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        for key, value in (self.model_extra or {}).items():
            dumped.setdefault(key, value)
        return dumped


def success_response(data: Any = None, message: Optional[str] = None) -> ApiResponse[Any]:
    fields: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        fields["message"] = message
    return ApiResponse[Any](**fields)


def error_response(
    message: str,
    *,
    status_code: Optional[int] = None,
    code: Optional[str] = None,
    details: Optional[list[dict[str, Any]]] = None,
) -> ApiResponse[Any]:
    error_fields: dict[str, Any] = {"message": message}
    if code is not None:
        error_fields["code"] = code
    if status_code is not None:
        error_fields["status_code"] = status_code
    if details:
        error_fields["details"] = details
    return ApiResponse[Any](success=False, error=ErrorDetail(**error_fields))


def decode_body(service_name: str, content: bytes) -> dict[str, Any]:
    """Decode a peer's body into a raw envelope mapping.

    Raises EnvelopeProtocolError if the body is not a JSON object with a
    boolean `success` field.
    """
    try:
        body = json.loads(content)
    except ValueError as exc:
        raise EnvelopeProtocolError(service_name, "response body is not valid JSON") from exc
    if not isinstance(body, dict):
        raise EnvelopeProtocolError(service_name, "response body is not a JSON object")
    if not isinstance(body.get("success"), bool):
        raise EnvelopeProtocolError(service_name, "response envelope has no boolean 'success' field")
    return body


def parse_envelope(
    service_name: str,
    body: dict[str, Any],
    data_model: Any = Any,
) -> ApiResponse[Any]:
    """Validate a raw envelope, optionally validating `data` as `data_model`."""
    try:
        return ApiResponse[data_model].model_validate(body)
    except PydanticValidationError as exc:
        raise EnvelopeProtocolError(service_name, f"malformed response envelope: {exc}") from exc


def remote_error_message(body: dict[str, Any]) -> Optional[str]:
    """Pick the human-readable message out of a failed envelope."""
    message = body.get("message")
    if isinstance(message, str) and message:
        return message
    error = body.get("error")
    if isinstance(error, dict):
        error_message = error.get("message")
        if isinstance(error_message, str) and error_message:
            return error_message
    return None
