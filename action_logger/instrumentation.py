"""Handler instrumentation: start/ok/error events with timing around callables.

Synchronous and coroutine callables get separate wrappers; the caller
picks the one matching the callable's calling convention. Both return the
original result unchanged and re-raise the original exception object.
"""

import functools
import inspect
from typing import Awaitable, Callable, TypeVar

from action_logger.emitter import ActionLogger, Timer, get_default_logger

T = TypeVar("T")


def wrap_sync(
    action_logger: ActionLogger,
    name: str,
    func: Callable[..., T],
    component: str | None = None,
) -> Callable[..., T]:
    """Instrument a synchronous callable."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        timer = Timer()
        handler_id = action_logger.log_handler_start(name, {"component": component})
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            action_logger.log_handler_error(handler_id, name, exc, timer.end())
            raise
        action_logger.log_handler_ok(handler_id, name, timer.end())
        return result

    return wrapper


def wrap_async(
    action_logger: ActionLogger,
    name: str,
    func: Callable[..., Awaitable[T]],
    component: str | None = None,
) -> Callable[..., Awaitable[T]]:
    """Instrument a coroutine function.

    The wrapper awaits only the wrapped coroutine, so it adds no suspension
    points of its own.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        timer = Timer()
        handler_id = action_logger.log_handler_start(name, {"component": component})
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            action_logger.log_handler_error(handler_id, name, exc, timer.end())
            raise
        action_logger.log_handler_ok(handler_id, name, timer.end())
        return result

    return wrapper


def declared_async(func, is_async: bool | None = None) -> bool:
    """*is_async* when the caller names the variant, else read it off the declaration."""
    if is_async is not None:
        return is_async
    return inspect.iscoroutinefunction(func)


def wrap_handler(
    action_logger: ActionLogger,
    name: str,
    func,
    component: str | None = None,
    is_async: bool | None = None,
):
    """Pick the async or sync wrapper, once, for *func*."""
    if declared_async(func, is_async):
        return wrap_async(action_logger, name, func, component)
    return wrap_sync(action_logger, name, func, component)


def logged_handler(
    name: str | None = None,
    component: str | None = None,
    action_logger: ActionLogger | None = None,
    is_async: bool | None = None,
):
    """Decorator form of wrap_handler.

    Without an explicit logger the process default logger is resolved at
    call time, so decorating at import time does not create one.
    """

    def decorator(func):
        handler_name = name or func.__name__
        if action_logger is not None:
            return wrap_handler(action_logger, handler_name, func, component, is_async)

        if declared_async(func, is_async):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                wrapped = wrap_async(get_default_logger(), handler_name, func, component)
                return await wrapped(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            return wrap_sync(get_default_logger(), handler_name, func, component)(*args, **kwargs)

        return sync_wrapper

    return decorator


class error_boundary:
    """Context manager recording an escaping exception as ``error.boundary``.

    The exception is never suppressed.
    """

    def __init__(self, action_logger: ActionLogger, component: str | None = None):
        self._logger = action_logger
        self._component = component

    def __enter__(self) -> "error_boundary":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None and isinstance(exc, Exception):
            self._logger.log_error_boundary(exc, component_stack=self._component)
        return False
