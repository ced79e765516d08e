"""Shared pytest fixtures for the action logger test suite."""

import pytest

from action_logger.collector import create_app
from action_logger.config import LoggerConfig
from action_logger.emitter import ActionLogger
from action_logger.errors import TransportError


class RecordingTransport:
    """In-memory transport that records delivered batches or always fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batches: list[list] = []
        self.attempts = 0
        self.closed = False

    async def send(self, batch):
        self.attempts += 1
        if self.fail:
            raise TransportError(message="collector unavailable", url="memory://collector")
        self.batches.append(list(batch))

    async def aclose(self):
        self.closed = True

    @property
    def events(self) -> list:
        return [event for batch in self.batches for event in batch]


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def failing_transport() -> RecordingTransport:
    return RecordingTransport(fail=True)


@pytest.fixture()
def make_logger():
    """Factory building an ActionLogger with config overrides and a recording transport."""

    def _make(transport=None, **overrides) -> ActionLogger:
        config = LoggerConfig(**overrides)
        return ActionLogger(config, transport=transport or RecordingTransport())

    return _make


@pytest.fixture()
def sample_page() -> str:
    return (
        "<html><body>"
        '<div id="app">'
        '<div style="cursor:pointer">Open menu</div>'
        '<button onClick="save()">Save</button>'
        "</div>"
        "</body></html>"
    )


@pytest.fixture()
def app():
    return create_app(max_batches=10)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def sample_event() -> dict:
    return {
        "correlation_id": "corr-1",
        "session_id": "sess-1",
        "event_type": "ui.click",
        "timestamp": "2024-01-15T10:30:00+00:00",
        "level": "info",
        "message": "User clicked save",
        "context": {"url": "/settings", "user_agent": "action-logger/1.0.0"},
        "data": {"element": "save"},
    }
