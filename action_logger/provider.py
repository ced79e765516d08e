"""Provider wiring router, render and auth signals into the logger and auditor."""

import functools
import logging

from action_logger.auditor import DeadElementAuditor
from action_logger.emitter import ActionLogger
from action_logger.instrumentation import declared_async, wrap_async, wrap_sync

logger = logging.getLogger(__name__)


class ActionLoggerProvider:
    """Connects a host application's navigation and auth state to an ActionLogger.

    The host calls navigate() on every route change, rendered() when a
    render pass has settled and set_user() when auth state changes. The
    provider also builds logged click/submit/action handlers.
    """

    def __init__(
        self,
        action_logger: ActionLogger,
        auditor: DeadElementAuditor | None = None,
        initial_path: str = "/",
    ):
        self._logger = action_logger
        self._auditor = auditor
        self._path = initial_path
        self._logger.set_url(initial_path)

    @property
    def logger(self) -> ActionLogger:
        return self._logger

    @property
    def auditor(self) -> DeadElementAuditor | None:
        return self._auditor

    @property
    def path(self) -> str:
        return self._path

    def __enter__(self) -> "ActionLoggerProvider":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # External signals
    # ------------------------------------------------------------------

    def set_user(self, user_id: str | None) -> None:
        self._logger.set_user_id(user_id or None)

    def navigate(self, path: str) -> None:
        """Record a route change and schedule an audit of the new page."""
        previous = self._path
        if previous == path:
            return
        logger.debug("Route change %s -> %s", previous, path)
        self._logger.log_route_change(previous, path)
        self._logger.set_url(path)
        self._path = path
        if self._auditor is not None:
            self._auditor.on_route_change()

    def rendered(self) -> None:
        if self._auditor is not None:
            self._auditor.after_render()

    def close(self) -> None:
        if self._auditor is not None:
            self._auditor.cancel()

    # ------------------------------------------------------------------
    # Logged handlers
    # ------------------------------------------------------------------

    def log_click(self, element_id: str, element_type: str, data: dict | None = None) -> None:
        payload = dict(data) if data else {}
        payload["element_type"] = element_type
        self._logger.log_click(element_id, payload)

    def _instrument(self, name: str, handler, before=None, is_async: bool | None = None):
        if declared_async(handler, is_async):
            wrapped = wrap_async(self._logger, name, handler)

            @functools.wraps(handler)
            async def async_handler(*args, **kwargs):
                if before is not None:
                    before(*args)
                return await wrapped(*args, **kwargs)

            return async_handler

        wrapped = wrap_sync(self._logger, name, handler)

        @functools.wraps(handler)
        def sync_handler(*args, **kwargs):
            if before is not None:
                before(*args)
            return wrapped(*args, **kwargs)

        return sync_handler

    def click_handler(
        self,
        element_id: str,
        element_type: str,
        handler,
        data: dict | None = None,
        is_async: bool | None = None,
    ):
        """Handler that logs the click, then runs *handler* instrumented as ``click_<id>``."""
        return self._instrument(
            f"click_{element_id}",
            handler,
            before=lambda *_: self.log_click(element_id, element_type, data),
            is_async=is_async,
        )

    def submit_handler(self, form_id: str, handler, is_async: bool | None = None):
        """Handler that logs the submission (with the form data), then runs *handler*."""

        def before(form_data=None, *_):
            self._logger.log_submit(form_id, form_data if isinstance(form_data, dict) else None)

        return self._instrument(f"submit_{form_id}", handler, before=before, is_async=is_async)

    def action_handler(self, name: str, handler, is_async: bool | None = None):
        return self._instrument(name, handler, is_async=is_async)
