"""Development collector: a Flask sink for ``POST /api/analytics/logs``.

Batches are validated against the event schema and kept in a bounded
in-memory deque so a developer can inspect what the client sends. Nothing
is persisted.
"""

import logging
from collections import deque

import jsonschema
from flask import Flask, jsonify, request

from action_logger.schema import BATCH_SCHEMA

logger = logging.getLogger(__name__)


class BatchValidator:
    """Validates collector request bodies against BATCH_SCHEMA."""

    def __init__(self, schema: dict = BATCH_SCHEMA):
        self._validator = jsonschema.Draft202012Validator(schema)
        self._stats = {"total": 0, "valid": 0, "invalid": 0}

    def validate(self, body) -> tuple[bool, list[str]]:
        """Return (is_valid, error messages) for one request body."""
        self._stats["total"] += 1
        errors = [
            f"{'/'.join(str(p) for p in error.absolute_path) or '<body>'}: {error.message}"
            for error in self._validator.iter_errors(body)
        ]
        if errors:
            self._stats["invalid"] += 1
            return False, errors
        self._stats["valid"] += 1
        return True, []

    def get_stats(self) -> dict:
        return dict(self._stats)


class BatchStore:
    """Keeps the most recent accepted batches in memory."""

    def __init__(self, max_batches: int = 1000):
        self._batches: deque[list[dict]] = deque(maxlen=max_batches)
        self._total_events = 0

    def add(self, events: list[dict]) -> None:
        self._batches.append(list(events))
        self._total_events += len(events)

    def recent_events(self, limit: int = 50) -> list[dict]:
        events = [event for batch in self._batches for event in batch]
        return events[-limit:] if limit > 0 else []

    @property
    def batch_count(self) -> int:
        return len(self._batches)

    @property
    def total_events(self) -> int:
        return self._total_events


def create_app(max_batches: int = 1000) -> Flask:
    """Flask application factory for the development collector."""
    app = Flask(__name__)

    validator = BatchValidator()
    store = BatchStore(max_batches=max_batches)
    app.config["components"] = {"validator": validator, "store": store}

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "batches": store.batch_count,
            "total_events": store.total_events,
            "validation": validator.get_stats(),
        })

    @app.route("/api/analytics/logs", methods=["POST"])
    def ingest_logs():
        body = request.get_json(force=True, silent=True)
        if body is None:
            return jsonify({"status": "invalid", "errors": ["body is not valid JSON"]}), 400

        is_valid, errors = validator.validate(body)
        if not is_valid:
            logger.warning("Rejected batch: %d schema errors", len(errors))
            return jsonify({"status": "invalid", "errors": errors}), 400

        events = body["logs"]
        store.add(events)
        for event in events:
            logger.info("[%s] %s %s", event["level"], event["event_type"], event["message"])
        return jsonify({"status": "accepted", "accepted": len(events)}), 202

    @app.route("/api/analytics/logs", methods=["GET"])
    def recent_logs():
        limit = request.args.get("limit", 50, type=int)
        return jsonify({"logs": store.recent_events(limit)})

    return app
