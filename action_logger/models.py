"""Log event model: levels, event types and the immutable LogEvent record."""

import datetime
import traceback
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def priority(self) -> int:
        return _PRIORITY[self]

    @classmethod
    def parse(cls, value) -> "LogLevel":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


_PRIORITY = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}


class EventType(Enum):
    UI_CLICK = "ui.click"
    UI_SUBMIT = "ui.submit"
    UI_ROUTE_CHANGE = "ui.route_change"
    UI_FORM_VALIDATION = "ui.form_validation"
    UI_DEAD_BUTTON = "ui.dead_button"
    NET_REQUEST = "net.request"
    NET_RESPONSE = "net.response"
    ERROR_BOUNDARY = "error.boundary"
    ADMIN_ACTION = "admin.action"
    AUTH_LOGIN = "auth.login"
    AUTH_LOGOUT = "auth.logout"
    SUBSCRIPTION_CHANGE = "subscription.change"
    HANDLER_START = "handler.start"
    HANDLER_OK = "handler.ok"
    HANDLER_ERR = "handler.err"


@dataclass(frozen=True)
class ErrorInfo:
    name: str
    message: str
    stack: Optional[str] = None


@dataclass(frozen=True)
class PerformanceInfo:
    duration_ms: float
    memory_usage: Optional[int] = None


@dataclass(frozen=True)
class EventContext:
    url: str = ""
    user_agent: str = ""
    component: Optional[str] = None
    handler_name: Optional[str] = None


@dataclass(frozen=True)
class LogEvent:
    correlation_id: str
    session_id: str
    event_type: EventType
    timestamp: str
    level: LogLevel
    message: str
    context: EventContext
    user_id: Optional[str] = None
    data: Optional[dict] = None
    error: Optional[ErrorInfo] = None
    performance: Optional[PerformanceInfo] = None


def utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def error_info_from_exception(exc: BaseException) -> ErrorInfo:
    """Capture name, message and formatted traceback from an exception."""
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return ErrorInfo(name=type(exc).__name__, message=str(exc), stack=stack or None)


def _drop_none(record: dict) -> dict:
    return {k: v for k, v in record.items() if v is not None}


def event_to_dict(event: LogEvent) -> dict:
    """Convert a LogEvent to the JSON wire shape sent to the collector."""
    result = {
        "correlation_id": event.correlation_id,
        "session_id": event.session_id,
        "event_type": event.event_type.value,
        "timestamp": event.timestamp,
        "level": event.level.value,
        "message": event.message,
        "context": _drop_none(asdict(event.context)),
    }
    if event.user_id is not None:
        result["user_id"] = event.user_id
    if event.data is not None:
        result["data"] = dict(event.data)
    if event.error is not None:
        result["error"] = _drop_none(asdict(event.error))
    if event.performance is not None:
        result["performance"] = _drop_none(asdict(event.performance))
    return result
