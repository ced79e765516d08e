"""Correlation, session and user identity stamped onto every event."""

import uuid
from typing import Optional, Protocol

SESSION_KEY = "session_id"


def generate_id() -> str:
    return str(uuid.uuid4())


class SessionStore(Protocol):
    """Session-scoped key/value storage (the host's equivalent of sessionStorage)."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemorySessionStore:
    """In-process session storage; cleared storage yields a fresh session id."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def clear(self) -> None:
        self._items.clear()


def get_or_create_session_id(store: SessionStore) -> str:
    """Return the stored session id, creating and persisting one on first use."""
    session_id = store.get(SESSION_KEY)
    if not session_id:
        session_id = generate_id()
        store.set(SESSION_KEY, session_id)
    return session_id


class IdentityContext:
    """Mutable identity state read at emission time.

    Changes apply to events emitted afterwards; already-built events are
    immutable and keep the identity they were stamped with.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        correlation_id: str | None = None,
        user_id: str | None = None,
    ):
        self._store = store if store is not None else MemorySessionStore()
        self.correlation_id = correlation_id or generate_id()
        self.session_id = get_or_create_session_id(self._store)
        self.user_id = user_id

    @property
    def store(self) -> SessionStore:
        return self._store

    def set_user_id(self, user_id: str | None) -> None:
        self.user_id = user_id or None

    def set_correlation_id(self, correlation_id: str) -> None:
        self.correlation_id = correlation_id
