"""Typed errors raised inside the logging pipeline."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ActionLoggerError(Exception):
    """Base error type for the action logger."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class TransportError(ActionLoggerError):
    """A batch could not be delivered to the collector."""

    url: str = ""
    status_code: int | None = None
    retryable: bool = True
    cause: Exception | None = None


@dataclass(frozen=True)
class DeadElementsFound(ActionLoggerError):
    """A CI audit found interactive elements without any bound action."""

    result: Any = None
