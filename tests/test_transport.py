"""Tests for the HTTP transport."""

import json

import httpx
import pytest

from action_logger.errors import TransportError
from action_logger.models import EventContext, EventType, LogEvent, LogLevel, utc_timestamp
from action_logger.transport import HttpTransport


def _events(count: int = 2) -> list[LogEvent]:
    return [
        LogEvent(
            correlation_id="corr-1",
            session_id="sess-1",
            event_type=EventType.UI_CLICK,
            timestamp=utc_timestamp(),
            level=LogLevel.INFO,
            message=f"User clicked button-{i}",
            context=EventContext(url="/", user_agent="test"),
            data={"element": f"button-{i}"},
        )
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_posts_batch_as_json():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, request=request)

    transport = HttpTransport(
        base_url="https://collector.test",
        user_agent="action-logger/test",
        transport=httpx.MockTransport(handler),
    )
    try:
        await transport.send(_events(2))
    finally:
        await transport.aclose()

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/analytics/logs"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["user-agent"] == "action-logger/test"
    body = json.loads(request.content)
    assert [event["data"]["element"] for event in body["logs"]] == ["button-0", "button-1"]


@pytest.mark.asyncio
async def test_non_2xx_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable", request=request)

    transport = HttpTransport(
        base_url="https://collector.test",
        transport=httpx.MockTransport(handler),
    )
    try:
        with pytest.raises(TransportError) as exc_info:
            await transport.send(_events(1))
    finally:
        await transport.aclose()

    error = exc_info.value
    assert error.status_code == 503
    assert error.retryable is True
    assert error.url == "https://collector.test/api/analytics/logs"


@pytest.mark.asyncio
async def test_client_error_status_not_retryable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, request=request)

    transport = HttpTransport(base_url="https://collector.test", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(TransportError) as exc_info:
            await transport.send(_events(1))
    finally:
        await transport.aclose()

    assert exc_info.value.status_code == 400
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_network_failure_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = HttpTransport(base_url="https://collector.test", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(TransportError) as exc_info:
            await transport.send(_events(1))
    finally:
        await transport.aclose()

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


@pytest.mark.asyncio
async def test_injected_client_is_not_closed():
    client = httpx.AsyncClient(
        base_url="https://collector.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(204, request=request)),
    )
    transport = HttpTransport(client=client)
    await transport.send(_events(1))
    await transport.aclose()

    assert not client.is_closed
    await client.aclose()
