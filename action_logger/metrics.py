"""Flush metrics: counters and latency percentiles for the logging pipeline."""

import logging
import math
import time

logger = logging.getLogger(__name__)


class FlushMetrics:
    """Collects and reports metrics about event emission and batch delivery."""

    def __init__(self) -> None:
        self._emitted: dict[str, int] = {}
        self._filtered = 0
        self._flush_triggers: dict[str, int] = {}
        self._events_sent = 0
        self._batches_sent = 0
        self._failed_flushes = 0
        self._requeued = 0
        self._dropped = 0
        self._send_times: list[float] = []
        self._start_time = time.monotonic()

    def record_emitted(self, level: str) -> None:
        self._emitted[level] = self._emitted.get(level, 0) + 1

    def record_filtered(self) -> None:
        self._filtered += 1

    def record_flush(self, trigger: str) -> None:
        self._flush_triggers[trigger] = self._flush_triggers.get(trigger, 0) + 1

    def record_sent(self, batch_size: int, send_time_ms: float) -> None:
        """Record one batch accepted by the collector.

        Args:
            batch_size: Number of events in the batch.
            send_time_ms: Time taken by the send, in milliseconds.
        """
        self._batches_sent += 1
        self._events_sent += batch_size
        self._send_times.append(send_time_ms)

    def record_failure(self, requeued: int, dropped: int) -> None:
        self._failed_flushes += 1
        self._requeued += requeued
        self._dropped += dropped

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all collected metrics."""
        send_times = list(self._send_times)
        avg_send = sum(send_times) / len(send_times) if send_times else 0.0
        return {
            "emitted": dict(self._emitted),
            "filtered": self._filtered,
            "flush_triggers": dict(self._flush_triggers),
            "batches_sent": self._batches_sent,
            "events_sent": self._events_sent,
            "failed_flushes": self._failed_flushes,
            "requeued": self._requeued,
            "dropped": self._dropped,
            "avg_send_time_ms": avg_send,
            "p95_send_time_ms": self._percentile(send_times, 95),
            "uptime_seconds": time.monotonic() - self._start_time,
        }

    @staticmethod
    def _percentile(data: list, pct: float) -> float:
        """Nearest-rank percentile of *data*, 0.0 when empty."""
        if not data:
            return 0.0
        ranked = sorted(data)
        rank = max(1, math.ceil(pct / 100 * len(ranked)))
        return float(ranked[min(rank, len(ranked)) - 1])
