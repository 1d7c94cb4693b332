from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel

from esystem.envelope import ApiResponse, decode_body, parse_envelope, remote_error_message
from esystem.service_errors import RemoteServiceError, ServiceTransportError

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "DELETE"})

RequestBody = Union[BaseModel, Mapping[str, Any], Sequence[Any], None]


def _serialize_body(body: RequestBody) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True).encode("utf-8")
    if isinstance(body, Mapping):
        body = dict(body)
    elif not isinstance(body, (list, tuple)):
        raise TypeError(f"request body must be a pydantic model, mapping or list, got {type(body).__name__}")
    return json.dumps(body).encode("utf-8")


@dataclass(frozen=True)
class ServiceClient:
    """HTTP client for one peer service.

    Holds configuration only; every call opens its own connection, so a single
    instance can be shared by concurrent requests. Every call takes `token`
    as a required keyword: handlers forward the inbound caller's token (see
    `esystem.forwarding`), and unauthenticated calls must say `token=None`.
    """

    service_name: str
    base_url: str
    timeout_seconds: float = 5.0
    retries: int = 0
    retry_backoff_seconds: float = 0.2
    transport: httpx.AsyncBaseTransport | None = None
    log: logging.Logger = field(default=logger, repr=False, compare=False)

    async def get(self, path: str, *, token: str | None, data_model: Any = Any) -> ApiResponse[Any]:
        return await self.request("GET", path, token=token, data_model=data_model)

    async def post(
        self,
        path: str,
        body: RequestBody = None,
        *,
        token: str | None,
        data_model: Any = Any,
    ) -> ApiResponse[Any]:
        return await self.request("POST", path, body=body, token=token, data_model=data_model)

    async def put(
        self,
        path: str,
        body: RequestBody = None,
        *,
        token: str | None,
        data_model: Any = Any,
    ) -> ApiResponse[Any]:
        return await self.request("PUT", path, body=body, token=token, data_model=data_model)

    async def delete(self, path: str, *, token: str | None, data_model: Any = Any) -> ApiResponse[Any]:
        return await self.request("DELETE", path, token=token, data_model=data_model)

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None,
        body: RequestBody = None,
        data_model: Any = Any,
    ) -> ApiResponse[Any]:
        """Issue one call and return the peer's envelope.

        Raises:
            RemoteServiceError: The peer answered with a non-2xx status.
            ServiceTransportError: The peer was unreachable, timed out, or sent
                something that is not an envelope.
        """
        method = method.upper()
        try:
            return await self._request_envelope(method, path, token=token, body=body, data_model=data_model)
        except RemoteServiceError as exc:
            self.log.warning(
                "[%s] %s %s failed with status %s: %s",
                self.service_name,
                method,
                path,
                exc.remote_status_code,
                exc.detail,
            )
            raise
        except ServiceTransportError as exc:
            self.log.error(
                "[%s] %s %s request failed: %s",
                self.service_name,
                method,
                path,
                exc.detail,
                exc_info=exc.__cause__ is not None,
            )
            raise

    async def _request_envelope(
        self,
        method: str,
        path: str,
        *,
        token: str | None,
        body: RequestBody,
        data_model: Any,
    ) -> ApiResponse[Any]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        content = _serialize_body(body)

        resp = await self._send_with_retry(method, path, headers, content)
        raw = decode_body(self.service_name, resp.content)

        if not resp.is_success:
            error = raw.get("error")
            raise RemoteServiceError(
                self.service_name,
                remote_error_message(raw) or f"{self.service_name} request failed",
                status_code=resp.status_code,
                remote_code=error.get("code") if isinstance(error, dict) else None,
                envelope=raw,
            )
        return parse_envelope(self.service_name, raw, data_model)

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        content: Optional[bytes],
    ) -> httpx.Response:
        """Send, retrying transport failures of idempotent methods with exponential backoff.

        Other request errors (an undecodable body, too many redirects) mean the
        peer did answer, so they fail at once without a retry.
        """
        attempts = 1 + (self.retries if method in IDEMPOTENT_METHODS else 0)
        for attempt in range(attempts):
            try:
                return await self._send(method, path, headers, content)
            except httpx.TimeoutException as exc:
                failure: Exception = exc
                detail = f"timed out after {self.timeout_seconds}s"
            except httpx.TransportError as exc:
                failure = exc
                detail = f"transport error: {exc!r}"
            except httpx.RequestError as exc:
                raise ServiceTransportError(self.service_name, f"request error: {exc!r}") from exc

            if attempt < attempts - 1:
                delay = self.retry_backoff_seconds * (2**attempt)
                self.log.debug(
                    "[%s] %s %s %s; retrying in %.2fs (attempt %d/%d)",
                    self.service_name,
                    method,
                    path,
                    detail,
                    delay,
                    attempt + 1,
                    attempts,
                )
                await asyncio.sleep(delay)
                continue
            raise ServiceTransportError(self.service_name, detail) from failure

        raise AssertionError("unreachable")  # pragma: no cover

    async def _send(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        content: Optional[bytes],
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            transport=self.transport,
        ) as client:
            return await client.request(method, path, headers=headers, content=content)
