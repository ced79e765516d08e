"""ActionLogger: builds structured events, buffers them and flushes them to the collector."""

import asyncio
import logging
import time
from types import MappingProxyType

from action_logger.buffer import EventBuffer
from action_logger.config import LoggerConfig
from action_logger.errors import TransportError
from action_logger.identity import IdentityContext, SessionStore, generate_id
from action_logger.metrics import FlushMetrics
from action_logger.models import (
    EventContext,
    EventType,
    LogEvent,
    LogLevel,
    PerformanceInfo,
    error_info_from_exception,
    utc_timestamp,
)
from action_logger.scrubber import scrub_pii
from action_logger.transport import HttpTransport, Transport

logger = logging.getLogger(__name__)
console = logging.getLogger("action_logger.console")


class Timer:
    """Monotonic stopwatch; end() returns elapsed milliseconds."""

    def __init__(self):
        self._start = time.perf_counter()

    def end(self) -> float:
        return (time.perf_counter() - self._start) * 1000


CIRCULAR = "<circular>"


def _safe_repr(value) -> str:
    try:
        return repr(value)
    except Exception:
        return f"<unrepresentable {type(value).__name__}>"


def _safe_key(key) -> str:
    if isinstance(key, str):
        return key
    try:
        return str(key)
    except Exception:
        return _safe_repr(key)


def _json_safe(value, _active: set[int] | None = None):
    """Copy a payload value into fresh JSON-encodable containers.

    Containers already being copied further up the tree are replaced with
    CIRCULAR; values json cannot encode become their repr.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if not isinstance(value, (dict, list, tuple, set, frozenset)):
        return _safe_repr(value)

    active = _active if _active is not None else set()
    if id(value) in active:
        return CIRCULAR
    active.add(id(value))
    try:
        if isinstance(value, dict):
            return {_safe_key(k): _json_safe(v, active) for k, v in value.items()}
        return [_json_safe(v, active) for v in value]
    finally:
        active.discard(id(value))


def _merged(base: dict, extra) -> dict:
    """Caller data layered over the event's own fields."""
    if extra is None:
        return base
    try:
        return {**base, **extra}
    except Exception:
        return {**base, "data": _json_safe(extra)}


def _salvage(data) -> dict:
    salvaged = {}
    try:
        keys = list(data.keys())
    except Exception:
        return {"value": _json_safe(data)}
    for key in keys:
        try:
            salvaged[str(key)] = data[key]
        except Exception:
            continue
    return salvaged


class ActionLogger:
    """Emits structured events for user actions, network calls and handlers.

    Events below the configured level are dropped before they reach the
    buffer. A flush is triggered when the buffer reaches max_buffer_size,
    immediately for every error-level event, and every flush_interval
    seconds by the periodic task started with start().
    """

    def __init__(
        self,
        config: LoggerConfig | None = None,
        transport: Transport | None = None,
        session_store: SessionStore | None = None,
        url: str = "",
    ):
        self._config = config or LoggerConfig()
        self._level = LogLevel.parse(self._config.log_level)
        self._identity = IdentityContext(store=session_store)
        self._buffer = EventBuffer(max_size=self._config.max_buffer_size)
        self._metrics = FlushMetrics()
        self._owns_transport = transport is None
        self._transport = transport or HttpTransport(
            base_url=self._config.collector_url,
            endpoint=self._config.endpoint,
            timeout_seconds=self._config.request_timeout,
            user_agent=self._config.user_agent,
        )
        self._url = url
        self._flush_task: asyncio.Task | None = None
        self._send_tasks: set[asyncio.Task] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic flush task on the running event loop."""
        if self._flush_task is not None and not self._flush_task.done():
            return
        self._closed = False
        self._flush_task = asyncio.get_running_loop().create_task(self._flush_loop())

    async def shutdown(self, flush: bool = True) -> None:
        """Stop the periodic task, flush what is left and close the transport."""
        if self._flush_task is not None:
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
            self._flush_task = None

        if flush:
            await self.flush(trigger="shutdown")
        await self.join()

        self._closed = True
        if self._owns_transport:
            await self._transport.aclose()
        logger.info("Action logger stopped: %s", self._metrics.snapshot())

    async def __aenter__(self) -> "ActionLogger":
        self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.shutdown()

    async def _flush_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.flush_interval)
            if len(self._buffer):
                await self.flush(trigger="timer")

    # ------------------------------------------------------------------
    # Identity and context
    # ------------------------------------------------------------------

    @property
    def config(self) -> LoggerConfig:
        return self._config

    @property
    def identity(self) -> IdentityContext:
        return self._identity

    @property
    def buffer(self) -> EventBuffer:
        return self._buffer

    @property
    def metrics(self) -> FlushMetrics:
        return self._metrics

    @property
    def url(self) -> str:
        return self._url

    def set_user_id(self, user_id: str | None) -> None:
        self._identity.set_user_id(user_id)

    def set_correlation_id(self, correlation_id: str) -> None:
        self._identity.set_correlation_id(correlation_id)

    def set_url(self, url: str) -> None:
        self._url = url

    def timer(self) -> Timer:
        return Timer()

    # ------------------------------------------------------------------
    # Public emitters
    # ------------------------------------------------------------------

    def log_click(self, element_id: str, data: dict | None = None) -> None:
        self._log(EventType.UI_CLICK, LogLevel.INFO, f"User clicked {element_id}",
                  _merged({"element": element_id}, data))

    def log_submit(self, form_id: str, data: dict | None = None) -> None:
        self._log(EventType.UI_SUBMIT, LogLevel.INFO, f"Form submitted: {form_id}",
                  _merged({"form": form_id}, data))

    def log_route_change(self, from_path: str, to_path: str) -> None:
        self._log(EventType.UI_ROUTE_CHANGE, LogLevel.INFO,
                  f"Route changed from {from_path} to {to_path}",
                  {"from": from_path, "to": to_path})

    def log_form_validation(self, form_id: str, errors: dict | list) -> None:
        self._log(EventType.UI_FORM_VALIDATION, LogLevel.WARN,
                  f"Form validation failed: {form_id}",
                  {"form": form_id, "errors": errors})

    def log_request(self, method: str, url: str, data: dict | None = None) -> str:
        """Log an outgoing request; the returned id pairs it with its response."""
        request_id = generate_id()
        self._log(EventType.NET_REQUEST, LogLevel.INFO, f"{method} {url}",
                  _merged({"method": method, "url": url, "request_id": request_id}, data))
        return request_id

    def log_response(
        self,
        request_id: str,
        status: int,
        duration_ms: float,
        data: dict | None = None,
    ) -> None:
        if status >= 400:
            level = LogLevel.ERROR
        elif status >= 300:
            level = LogLevel.WARN
        else:
            level = LogLevel.INFO
        self._log(EventType.NET_RESPONSE, level, f"Response {status}",
                  _merged({"request_id": request_id, "status": status}, data),
                  duration_ms=duration_ms)

    def log_handler_start(self, name: str, data: dict | None = None) -> str:
        handler_id = generate_id()
        self._log(EventType.HANDLER_START, LogLevel.INFO, f"Handler started: {name}",
                  _merged({"handler_name": name, "handler_id": handler_id}, data))
        return handler_id

    def log_handler_ok(
        self,
        handler_id: str,
        name: str,
        duration_ms: float,
        data: dict | None = None,
    ) -> None:
        self._log(EventType.HANDLER_OK, LogLevel.INFO, f"Handler completed: {name}",
                  _merged({"handler_name": name, "handler_id": handler_id}, data),
                  duration_ms=duration_ms)

    def log_handler_error(
        self,
        handler_id: str,
        name: str,
        error: BaseException,
        duration_ms: float,
    ) -> None:
        self._log(EventType.HANDLER_ERR, LogLevel.ERROR, f"Handler failed: {name}",
                  {"handler_name": name, "handler_id": handler_id},
                  error=error, duration_ms=duration_ms)

    def log_error_boundary(self, error: BaseException, component_stack: str | None = None) -> None:
        self._log(EventType.ERROR_BOUNDARY, LogLevel.ERROR, "Error boundary caught error",
                  {"component_stack": component_stack}, error=error)

    def log_admin_action(self, action: str, target: str | None = None,
                         data: dict | None = None) -> None:
        self._log(EventType.ADMIN_ACTION, LogLevel.INFO, f"Admin action: {action}",
                  _merged({"action": action, "target": target}, data))

    def log_login(self, user_id: str, method: str | None = None) -> None:
        """Set the active user and record the login."""
        self.set_user_id(user_id)
        self._log(EventType.AUTH_LOGIN, LogLevel.INFO, "User logged in", {"method": method})

    def log_logout(self) -> None:
        """Record the logout, then clear the active user."""
        self._log(EventType.AUTH_LOGOUT, LogLevel.INFO, "User logged out")
        self.set_user_id(None)

    def log_subscription_change(self, old_plan: str | None, new_plan: str,
                                data: dict | None = None) -> None:
        self._log(EventType.SUBSCRIPTION_CHANGE, LogLevel.INFO,
                  f"Subscription changed from {old_plan} to {new_plan}",
                  _merged({"old_plan": old_plan, "new_plan": new_plan}, data))

    def log_dead_button(self, path: str, html: str, reason: str) -> None:
        self._log(EventType.UI_DEAD_BUTTON, LogLevel.WARN, f"Dead button detected: {path}",
                  {"path": path, "html": html, "reason": reason})

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    def _log(
        self,
        event_type: EventType,
        level: LogLevel,
        message: str,
        data: dict | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        if level.priority < self._level.priority:
            self._metrics.record_filtered()
            return

        event = self._build_event(event_type, level, message, data, error, duration_ms)
        self._buffer.append(event)
        self._metrics.record_emitted(level.value)

        if self._config.console_mirror:
            self._mirror(event)

        if level is LogLevel.ERROR:
            self._trigger_flush("error")
        elif self._buffer.is_full:
            self._trigger_flush("size")

    def _build_event(self, event_type, level, message, data, error, duration_ms) -> LogEvent:
        payload = self._prepare_data(data)
        error_info = None
        if error is not None:
            try:
                error_info = error_info_from_exception(error)
            except Exception:
                logger.debug("Could not capture error details for %s", event_type.value, exc_info=True)
        performance = PerformanceInfo(duration_ms=duration_ms) if duration_ms is not None else None

        component = payload.get("component") if payload else None
        handler_name = payload.get("handler_name") if payload else None
        identity = self._identity
        return LogEvent(
            correlation_id=identity.correlation_id,
            session_id=identity.session_id,
            user_id=identity.user_id,
            event_type=event_type,
            timestamp=utc_timestamp(),
            level=level,
            message=message,
            data=MappingProxyType(payload) if payload is not None else None,
            error=error_info,
            performance=performance,
            context=EventContext(
                url=self._url,
                user_agent=self._config.user_agent,
                component=component if isinstance(component, str) else None,
                handler_name=handler_name if isinstance(handler_name, str) else None,
            ),
        )

    def _prepare_data(self, data: dict | None) -> dict | None:
        """Copy the payload into fresh JSON-safe containers, then scrub it.

        Never raises: unreadable payloads shrink to their salvageable
        top-level fields, or to an empty mapping.
        """
        if data is None:
            return None
        try:
            payload = _json_safe(data)
        except Exception:
            logger.debug("Payload copy failed, keeping salvageable fields", exc_info=True)
            payload = self._salvaged_copy(data)
        if not isinstance(payload, dict):
            payload = {"value": payload}

        try:
            return scrub_pii(payload, recursive=self._config.scrub_nested)
        except Exception:
            logger.debug("Scrubbing failed, dropping payload", exc_info=True)
            return {}

    @staticmethod
    def _salvaged_copy(data) -> dict:
        try:
            return _json_safe(_salvage(data))
        except Exception:
            logger.debug("Payload salvage failed, dropping payload", exc_info=True)
            return {}

    def _mirror(self, event: LogEvent) -> None:
        text = "[%s] %s"
        args = (event.event_type.value, event.message)
        if event.level is LogLevel.ERROR:
            console.error(text, *args)
        elif event.level is LogLevel.WARN:
            console.warning(text, *args)
        else:
            console.info(text, *args)

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def _trigger_flush(self, trigger: str) -> None:
        """Drain now and send on the running loop; without a loop, keep buffering."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._closed:
            return
        batch = self._buffer.drain()
        if not batch:
            return
        self._metrics.record_flush(trigger)
        task = loop.create_task(self._send(batch))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def flush(self, trigger: str = "manual") -> None:
        """Drain the buffer and deliver it; failures requeue a capped prefix."""
        batch = self._buffer.drain()
        if not batch:
            return
        self._metrics.record_flush(trigger)
        await self._send(batch)

    async def join(self) -> None:
        """Wait for sends started by size and error triggers."""
        while True:
            pending = [task for task in self._send_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _send(self, batch: list[LogEvent]) -> None:
        start = time.monotonic()
        try:
            await self._transport.send(batch)
        except TransportError as exc:
            self._requeue(batch, exc)
            return
        except Exception as exc:
            logger.debug("Transport raised unexpectedly", exc_info=True)
            self._requeue(batch, exc)
            return
        self._metrics.record_sent(len(batch), (time.monotonic() - start) * 1000)

    def _requeue(self, batch: list[LogEvent], exc: Exception) -> None:
        dropped = self._buffer.requeue(batch)
        self._metrics.record_failure(requeued=len(batch) - dropped, dropped=dropped)
        if not self._config.is_production:
            logger.warning(
                "Failed to send logs (%d events, %d dropped): %s",
                len(batch), dropped, exc,
            )

    @property
    def pending_count(self) -> int:
        return len(self._buffer)


# ----------------------------------------------------------------------
# Module-level lifecycle helpers
# ----------------------------------------------------------------------

_default_logger: ActionLogger | None = None


def create(
    config: LoggerConfig | None = None,
    transport: Transport | None = None,
    session_store: SessionStore | None = None,
) -> ActionLogger:
    """Build a logger; the periodic flush starts if an event loop is running."""
    action_logger = ActionLogger(config, transport=transport, session_store=session_store)
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return action_logger
    action_logger.start()
    return action_logger


async def shutdown(action_logger: ActionLogger) -> None:
    await action_logger.shutdown()


def get_default_logger() -> ActionLogger:
    """Return the process default logger, creating one from defaults on first use."""
    global _default_logger
    if _default_logger is None:
        _default_logger = ActionLogger()
    return _default_logger


def set_default_logger(action_logger: ActionLogger | None) -> None:
    global _default_logger
    _default_logger = action_logger
