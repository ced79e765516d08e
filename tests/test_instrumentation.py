"""Tests for handler wrappers, the decorator and the error boundary."""

import inspect

import pytest

from action_logger.emitter import set_default_logger
from action_logger.instrumentation import (
    error_boundary,
    logged_handler,
    wrap_async,
    wrap_handler,
    wrap_sync,
)
from action_logger.models import EventType


class CustomError(Exception):
    pass


class TestWrapSync:
    def test_returns_result_and_logs_start_and_ok(self, make_logger):
        lg = make_logger()
        wrapped = wrap_sync(lg, "compute", lambda: 42, component="Calculator")

        assert wrapped() == 42

        start, ok = lg.buffer.snapshot()
        assert start.event_type is EventType.HANDLER_START
        assert ok.event_type is EventType.HANDLER_OK
        assert start.data["handler_id"] == ok.data["handler_id"]
        assert start.context.component == "Calculator"
        assert ok.performance.duration_ms >= 0

    def test_reraises_identical_exception(self, make_logger):
        lg = make_logger()
        error = CustomError("nope")

        def handler():
            raise error

        wrapped = wrap_sync(lg, "explode", handler)
        with pytest.raises(CustomError) as exc_info:
            wrapped()

        assert exc_info.value is error
        start, err = lg.buffer.snapshot()
        assert err.event_type is EventType.HANDLER_ERR
        assert err.error.name == "CustomError"
        assert err.error.message == "nope"
        assert err.data["handler_id"] == start.data["handler_id"]

    def test_arguments_passed_through(self, make_logger):
        lg = make_logger()
        wrapped = wrap_sync(lg, "add", lambda a, b=0: a + b)
        assert wrapped(2, b=3) == 5

    def test_preserves_metadata(self, make_logger):
        def save_profile():
            """Persist the profile."""

        wrapped = wrap_sync(make_logger(), "save", save_profile)
        assert wrapped.__name__ == "save_profile"
        assert wrapped.__doc__ == "Persist the profile."


class TestWrapAsync:
    @pytest.mark.asyncio
    async def test_returns_awaited_result(self, make_logger, transport):
        lg = make_logger(transport=transport)

        async def fetch(x):
            return x * 2

        wrapped = wrap_async(lg, "fetch", fetch)
        assert inspect.iscoroutinefunction(wrapped)
        assert await wrapped(21) == 42
        assert [e.event_type for e in lg.buffer.snapshot()] == [
            EventType.HANDLER_START,
            EventType.HANDLER_OK,
        ]

    @pytest.mark.asyncio
    async def test_rejection_logs_error_and_propagates(self, make_logger, transport):
        lg = make_logger(transport=transport)
        error = CustomError("boom")

        async def handler():
            raise error

        wrapped = wrap_async(lg, "loadData", handler)
        with pytest.raises(CustomError) as exc_info:
            await wrapped()
        await lg.join()

        assert exc_info.value is error
        start, err = transport.events
        assert start.event_type is EventType.HANDLER_START
        assert err.event_type is EventType.HANDLER_ERR
        assert err.error.message == "boom"
        assert err.data["handler_name"] == "loadData"

    @pytest.mark.asyncio
    async def test_start_logged_when_awaited(self, make_logger):
        lg = make_logger()

        async def handler():
            return None

        coro = wrap_async(lg, "lazy", handler)()
        assert len(lg.buffer) == 0
        await coro
        assert len(lg.buffer) == 2


class TestWrapHandler:
    def test_selects_wrapper_by_declaration(self, make_logger):
        lg = make_logger()

        async def async_handler():
            return 1

        def sync_handler():
            return 1

        assert inspect.iscoroutinefunction(wrap_handler(lg, "a", async_handler))
        assert not inspect.iscoroutinefunction(wrap_handler(lg, "s", sync_handler))

    @pytest.mark.asyncio
    async def test_explicit_async_for_coroutine_returning_callable(self, make_logger):
        lg = make_logger()

        async def fetch():
            return "data"

        wrapped = wrap_handler(lg, "fetch", lambda: fetch(), is_async=True)

        assert inspect.iscoroutinefunction(wrapped)
        assert await wrapped() == "data"
        assert [e.event_type for e in lg.buffer.snapshot()] == [
            EventType.HANDLER_START,
            EventType.HANDLER_OK,
        ]

    def test_explicit_sync_overrides_declaration(self, make_logger):
        async def handler():
            return 1

        wrapped = wrap_handler(make_logger(), "h", handler, is_async=False)
        assert not inspect.iscoroutinefunction(wrapped)


class TestLoggedHandler:
    def test_explicit_logger_and_default_name(self, make_logger):
        lg = make_logger()

        @logged_handler(action_logger=lg)
        def submit_order():
            return "ok"

        assert submit_order() == "ok"
        start, _ = lg.buffer.snapshot()
        assert start.data["handler_name"] == "submit_order"

    def test_resolves_default_logger_at_call_time(self, make_logger):
        @logged_handler(name="refresh", component="Sidebar")
        def refresh():
            return "done"

        lg = make_logger()
        set_default_logger(lg)
        try:
            assert refresh() == "done"
        finally:
            set_default_logger(None)

        start, ok = lg.buffer.snapshot()
        assert start.data["handler_name"] == "refresh"
        assert start.context.component == "Sidebar"
        assert ok.event_type is EventType.HANDLER_OK

    @pytest.mark.asyncio
    async def test_async_with_default_logger(self, make_logger):
        @logged_handler()
        async def poll():
            return 7

        assert inspect.iscoroutinefunction(poll)
        lg = make_logger()
        set_default_logger(lg)
        try:
            assert await poll() == 7
        finally:
            set_default_logger(None)
        assert len(lg.buffer) == 2


class TestErrorBoundary:
    def test_logs_and_reraises(self, make_logger):
        lg = make_logger()
        with pytest.raises(CustomError):
            with error_boundary(lg, component="CheckoutPage"):
                raise CustomError("render failed")

        (event,) = lg.buffer.snapshot()
        assert event.event_type is EventType.ERROR_BOUNDARY
        assert event.data["component_stack"] == "CheckoutPage"
        assert event.error.message == "render failed"

    def test_no_event_without_error(self, make_logger):
        lg = make_logger()
        with error_boundary(lg):
            pass
        assert len(lg.buffer) == 0
