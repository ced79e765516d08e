"""Tests for identity and session handling."""

from action_logger.identity import (
    SESSION_KEY,
    IdentityContext,
    MemorySessionStore,
    get_or_create_session_id,
)


def test_session_id_persisted_in_store():
    store = MemorySessionStore()
    session_id = get_or_create_session_id(store)
    assert store.get(SESSION_KEY) == session_id
    assert get_or_create_session_id(store) == session_id


def test_session_stable_across_contexts_sharing_a_store():
    store = MemorySessionStore()
    first = IdentityContext(store=store)
    second = IdentityContext(store=store)
    assert first.session_id == second.session_id
    assert first.correlation_id != second.correlation_id


def test_cleared_store_regenerates_session():
    store = MemorySessionStore()
    before = get_or_create_session_id(store)
    store.clear()
    assert get_or_create_session_id(store) != before


def test_user_and_correlation_updates():
    identity = IdentityContext(correlation_id="corr-1")
    assert identity.correlation_id == "corr-1"
    assert identity.user_id is None

    identity.set_user_id("user-7")
    identity.set_correlation_id("corr-2")
    assert identity.user_id == "user-7"
    assert identity.correlation_id == "corr-2"

    identity.set_user_id("")
    assert identity.user_id is None
