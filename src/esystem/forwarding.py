"""Identity forwarding to peer services.

A handler that needs a peer's data on behalf of its caller asks for a
`ForwardingClient` instead of a bare `ServiceClient`. The forwarding client
is bound to the verified `Caller` and attaches exactly the token the inbound
request arrived with; its methods take no token argument, so there is no way
to substitute or drop it.

    @router.get("/v1/grades/{course_id}")
    async def grades(course_id: str, courses: ForwardingClient = Depends(peer_client("course"))):
        course = await courses.get(f"/api/v1/courses/{course_id}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Depends, Request

from esystem.auth import Caller, get_caller
from esystem.client import RequestBody, ServiceClient
from esystem.envelope import ApiResponse


@dataclass(frozen=True)
class ForwardingClient:
    client: ServiceClient
    caller: Caller

    @property
    def service_name(self) -> str:
        return self.client.service_name

    async def get(self, path: str, *, data_model: Any = Any) -> ApiResponse[Any]:
        return await self.client.get(path, token=self.caller.token, data_model=data_model)

    async def post(self, path: str, body: RequestBody = None, *, data_model: Any = Any) -> ApiResponse[Any]:
        return await self.client.post(path, body, token=self.caller.token, data_model=data_model)

    async def put(self, path: str, body: RequestBody = None, *, data_model: Any = Any) -> ApiResponse[Any]:
        return await self.client.put(path, body, token=self.caller.token, data_model=data_model)

    async def delete(self, path: str, *, data_model: Any = Any) -> ApiResponse[Any]:
        return await self.client.delete(path, token=self.caller.token, data_model=data_model)


def forward(client: ServiceClient, caller: Caller) -> ForwardingClient:
    return ForwardingClient(client=client, caller=caller)


def peer_client(name: str) -> Callable:
    """Dependency factory yielding the named peer bound to the current caller."""

    async def _peer_client(request: Request, caller: Caller = Depends(get_caller)) -> ForwardingClient:
        return forward(request.app.state.peers.get(name), caller)

    return _peer_client
