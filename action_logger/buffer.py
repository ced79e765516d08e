"""In-memory event buffer with atomic drain and capped requeue."""

import logging

from action_logger.models import LogEvent

logger = logging.getLogger(__name__)


class EventBuffer:
    """Append-only queue of emitted events.

    All mutations are synchronous, so on a single event loop each call is
    atomic relative to every other coroutine and callback.
    """

    def __init__(self, max_size: int = 100):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._max_size = max_size
        self._events: list[LogEvent] = []
        self._dropped_count = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def is_full(self) -> bool:
        return len(self._events) >= self._max_size

    @property
    def dropped_count(self) -> int:
        """Events discarded because a failed batch did not fit back in."""
        return self._dropped_count

    def append(self, event: LogEvent) -> None:
        self._events.append(event)

    def drain(self) -> list[LogEvent]:
        """Hand over every buffered event and start a fresh buffer."""
        batch = self._events
        self._events = []
        return batch

    def requeue(self, batch: list[LogEvent]) -> int:
        """Put the oldest events of a failed batch back in front of the buffer.

        Only as many events as fit under max_size are restored; the rest
        are dropped. Returns the number of dropped events.
        """
        room = max(0, self._max_size - len(self._events))
        kept = batch[:room]
        dropped = len(batch) - len(kept)
        self._events = kept + self._events
        if dropped:
            self._dropped_count += dropped
            logger.debug("Requeue dropped %d of %d events", dropped, len(batch))
        return dropped

    def snapshot(self) -> list[LogEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)
