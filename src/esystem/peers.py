from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

import httpx

from esystem.client import ServiceClient
from esystem.config import Settings


class ServiceRegistry:
    """Named ServiceClients for the peers this service talks to.

    Base URLs come from configuration; nothing here probes or discovers peers.
    """

    def __init__(self, clients: Mapping[str, ServiceClient]) -> None:
        self._clients: dict[str, ServiceClient] = dict(clients)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceRegistry":
        return cls(
            {
                name: ServiceClient(
                    service_name=f"{name}-service",
                    base_url=url,
                    timeout_seconds=settings.request_timeout_seconds,
                    retries=settings.request_retries,
                    retry_backoff_seconds=settings.retry_backoff_seconds,
                    transport=transport,
                )
                for name, url in settings.peer_urls.items()
            }
        )

    def get(self, name: str) -> ServiceClient:
        client = self._clients.get(name)
        if client is None:
            available = ", ".join(sorted(self._clients.keys())) or "(none)"
            raise RuntimeError(f"Unknown peer service '{name}'. Available peers: {available}")
        return client

    def names(self) -> list[str]:
        return sorted(self._clients.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._clients
