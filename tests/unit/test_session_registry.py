"""Unit tests for SessionStorage and SessionRegistry (LRU of browser sessions)."""

from __future__ import annotations

import pytest

from keydeck.keys.manager import KeyLifecycleManager
from keydeck.session.store import SessionRegistry, SessionStorage
from keydeck.store.protocol import InMemoryKeyStore


@pytest.fixture
def manager() -> KeyLifecycleManager:
    return KeyLifecycleManager(InMemoryKeyStore())


class TestSessionStorage:
    def test_absent_slot_is_none(self) -> None:
        assert SessionStorage().get("apiKey") is None

    def test_set_get_clear(self) -> None:
        storage = SessionStorage()
        storage.set("apiKey", "tvly-x")
        assert storage.get("apiKey") == "tvly-x"
        assert "apiKey" in storage
        storage.clear("apiKey")
        assert storage.get("apiKey") is None

    def test_clear_all(self) -> None:
        storage = SessionStorage()
        storage.set("a", "1")
        storage.set("b", "2")
        storage.clear()
        assert "a" not in storage and "b" not in storage

    def test_clear_missing_slot_is_noop(self) -> None:
        SessionStorage().clear("missing")


class TestSessionRegistry:
    async def test_new_session_for_missing_id(self, manager: KeyLifecycleManager) -> None:
        registry = SessionRegistry(manager)
        context = registry.get_or_create(None)
        assert context.id
        assert context.id in registry
        assert len(registry) == 1

    async def test_existing_id_returns_same_context(self, manager: KeyLifecycleManager) -> None:
        registry = SessionRegistry(manager)
        context = registry.get_or_create(None)
        assert registry.get_or_create(context.id) is context
        assert len(registry) == 1

    async def test_unknown_id_not_adopted(self, manager: KeyLifecycleManager) -> None:
        """A client-chosen id never becomes a session id."""
        registry = SessionRegistry(manager)
        context = registry.get_or_create("attacker-chosen")
        assert context.id != "attacker-chosen"
        assert "attacker-chosen" not in registry

    async def test_sessions_are_isolated(self, manager: KeyLifecycleManager) -> None:
        registry = SessionRegistry(manager)
        a = registry.get_or_create(None)
        b = registry.get_or_create(None)
        a.storage.set("apiKey", "tvly-a")
        a.dashboard.visibility.toggle("k1")
        assert b.storage.get("apiKey") is None
        assert not b.dashboard.visibility.is_revealed("k1")
        assert a.notifications is not b.notifications

    async def test_dashboard_shares_session_queue(self, manager: KeyLifecycleManager) -> None:
        context = SessionRegistry(manager).get_or_create(None)
        assert context.dashboard.notifications is context.notifications

    async def test_ttl_passed_to_queue(self, manager: KeyLifecycleManager) -> None:
        context = SessionRegistry(manager, notification_ttl_ms=1234).get_or_create(None)
        assert context.notifications.ttl_ms == 1234

    async def test_lru_eviction_closes_oldest(self, manager: KeyLifecycleManager) -> None:
        registry = SessionRegistry(manager, max_sessions=2)
        first = registry.get_or_create(None)
        second = registry.get_or_create(None)
        registry.get_or_create(first.id)  # first is now most recently used
        third = registry.get_or_create(None)

        assert first.id in registry
        assert third.id in registry
        assert second.id not in registry
        assert second.notifications.closed

    async def test_end_clears_token_and_notices(self, manager: KeyLifecycleManager) -> None:
        registry = SessionRegistry(manager)
        context = registry.get_or_create(None)
        context.storage.set("apiKey", "tvly-x")
        context.notifications.success("Success!", "x")

        registry.end(context.id)

        assert context.id not in registry
        assert context.storage.get("apiKey") is None
        assert context.notifications.closed
        assert len(context.notifications) == 0

    async def test_end_unknown_id_is_noop(self, manager: KeyLifecycleManager) -> None:
        SessionRegistry(manager).end("missing")

    async def test_close_ends_every_session(self, manager: KeyLifecycleManager) -> None:
        registry = SessionRegistry(manager)
        contexts = [registry.get_or_create(None) for _ in range(3)]
        registry.close()
        assert len(registry) == 0
        assert all(c.notifications.closed for c in contexts)
