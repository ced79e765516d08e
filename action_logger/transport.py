"""HTTP transport that posts event batches to the collector."""

import logging
from typing import Protocol

import httpx

from action_logger.errors import TransportError
from action_logger.models import LogEvent, event_to_dict

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send(self, batch: list[LogEvent]) -> None:
        """Deliver *batch* or raise TransportError."""
        ...

    async def aclose(self) -> None: ...


class HttpTransport:
    """Posts ``{"logs": [...]}`` to the collector over ``httpx.AsyncClient``.

    Any non-2xx status or request failure raises TransportError. The
    response body is not inspected.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        endpoint: str = "/api/analytics/logs",
        timeout_seconds: float = 5.0,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._endpoint = endpoint
        self._owns_client = client is None
        headers = {"Content-Type": "application/json"}
        if user_agent:
            headers["User-Agent"] = user_agent
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return str(self._client.base_url.join(self._endpoint))

    async def send(self, batch: list[LogEvent]) -> None:
        payload = {"logs": [event_to_dict(event) for event in batch]}
        try:
            response = await self._client.post(self._endpoint, json=payload)
        except httpx.RequestError as exc:
            raise TransportError(
                message=f"POST {self.url} failed: {exc}",
                url=self.url,
                retryable=True,
                cause=exc,
            ) from exc

        if not response.is_success:
            raise TransportError(
                message=f"HTTP {response.status_code} for POST {self.url}",
                url=self.url,
                status_code=response.status_code,
                retryable=response.status_code >= 500 or response.status_code == 429,
            )
        logger.debug("Delivered %d events to %s", len(batch), self.url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
