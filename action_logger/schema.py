"""JSON schema for the batches accepted by the collector."""

from action_logger.models import EventType, LogLevel

LOG_EVENT_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": [
        "correlation_id", "session_id", "event_type",
        "timestamp", "level", "message", "context",
    ],
    "properties": {
        "correlation_id": {"type": "string", "minLength": 1},
        "session_id": {"type": "string", "minLength": 1},
        "user_id": {"type": "string"},
        "event_type": {"enum": [t.value for t in EventType]},
        "timestamp": {"type": "string", "minLength": 1},
        "level": {"enum": [level.value for level in LogLevel]},
        "message": {"type": "string"},
        "data": {"type": "object"},
        "error": {
            "type": "object",
            "required": ["name", "message"],
            "properties": {
                "name": {"type": "string"},
                "message": {"type": "string"},
                "stack": {"type": "string"},
            },
        },
        "performance": {
            "type": "object",
            "required": ["duration_ms"],
            "properties": {
                "duration_ms": {"type": "number", "minimum": 0},
                "memory_usage": {"type": "number"},
            },
        },
        "context": {
            "type": "object",
            "required": ["url", "user_agent"],
            "properties": {
                "url": {"type": "string"},
                "user_agent": {"type": "string"},
                "component": {"type": "string"},
                "handler_name": {"type": "string"},
            },
        },
    },
    "additionalProperties": False,
}

BATCH_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["logs"],
    "properties": {
        "logs": {"type": "array", "items": LOG_EVENT_SCHEMA},
    },
}
