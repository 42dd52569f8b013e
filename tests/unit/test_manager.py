"""Unit tests for KeyLifecycleManager — validation, generation retry, verify."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from keydeck.errors import ConstraintViolation, NotFound, StoreUnavailable, ValidationError
from keydeck.keys.generator import is_api_key_format
from keydeck.keys.manager import _MAX_GENERATION_ATTEMPTS, KeyLifecycleManager
from keydeck.store.protocol import InMemoryKeyStore
from keydeck.store.sqlite_backend import LocalSQLiteKeyStore


@pytest.fixture
def store() -> InMemoryKeyStore:
    return InMemoryKeyStore()


@pytest.fixture
def manager(store: InMemoryKeyStore) -> KeyLifecycleManager:
    return KeyLifecycleManager(store)


# ─── create_key ───────────────────────────────────────────────────────────────


class TestCreateKey:
    async def test_creates_generated_value(self, manager: KeyLifecycleManager) -> None:
        record = await manager.create_key("production")
        assert is_api_key_format(record.value)
        assert record.name == "production"
        assert record.usage == 1000

    async def test_custom_usage(self, manager: KeyLifecycleManager) -> None:
        record = await manager.create_key("ci", usage=0)
        assert record.usage == 0

    async def test_new_key_listed_first(self, manager: KeyLifecycleManager) -> None:
        await manager.create_key("old")
        newest = await manager.create_key("new")
        assert (await manager.list_keys())[0].id == newest.id

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    async def test_blank_name_rejected_without_store_call(self, name: str) -> None:
        store = AsyncMock()
        manager = KeyLifecycleManager(store)
        with pytest.raises(ValidationError, match="Key name is required"):
            await manager.create_key(name)
        store.insert.assert_not_called()

    @pytest.mark.parametrize("usage", [-1, True, 1.5, "10"])
    async def test_invalid_usage_rejected(self, usage: object) -> None:
        store = AsyncMock()
        manager = KeyLifecycleManager(store)
        with pytest.raises(ValidationError):
            await manager.create_key("prod", usage=usage)  # type: ignore[arg-type]
        store.insert.assert_not_called()

    async def test_value_collision_regenerates(
        self, store: InMemoryKeyStore, manager: KeyLifecycleManager
    ) -> None:
        """A duplicate value is retried with a fresh value."""
        await store.insert("existing", "tvly-" + "a" * 32, 1)
        values = iter(["tvly-" + "a" * 32, "tvly-" + "b" * 32])
        with patch("keydeck.keys.manager.generate_api_key", side_effect=lambda: next(values)):
            record = await manager.create_key("second")
        assert record.value == "tvly-" + "b" * 32

    async def test_collision_on_every_attempt_raises(self) -> None:
        store = AsyncMock()
        store.insert.side_effect = ConstraintViolation("duplicate key value")
        manager = KeyLifecycleManager(store)
        with pytest.raises(ConstraintViolation):
            await manager.create_key("prod")
        assert store.insert.await_count == _MAX_GENERATION_ATTEMPTS

    async def test_store_unavailable_propagates_without_retry(self) -> None:
        store = AsyncMock()
        store.insert.side_effect = StoreUnavailable()
        manager = KeyLifecycleManager(store)
        with pytest.raises(StoreUnavailable):
            await manager.create_key("prod")
        assert store.insert.await_count == 1


# ─── update_key / delete_key ──────────────────────────────────────────────────


class TestUpdateKey:
    async def test_update_keeps_value(self, manager: KeyLifecycleManager) -> None:
        record = await manager.create_key("prod")
        await manager.update_key(record.id, "renamed", 5)
        (updated,) = await manager.list_keys()
        assert (updated.name, updated.usage, updated.value) == ("renamed", 5, record.value)

    async def test_update_accepts_empty_name(self, manager: KeyLifecycleManager) -> None:
        """Unlike create, update stores an empty name as given."""
        record = await manager.create_key("prod")
        await manager.update_key(record.id, "", 5)
        assert (await manager.list_keys())[0].name == ""

    async def test_update_negative_usage_rejected(self) -> None:
        store = AsyncMock()
        manager = KeyLifecycleManager(store)
        with pytest.raises(ValidationError):
            await manager.update_key("id", "prod", -5)
        store.update.assert_not_called()

    async def test_update_unknown_id(self, manager: KeyLifecycleManager) -> None:
        with pytest.raises(NotFound):
            await manager.update_key("missing", "x", 1)


class TestDeleteKey:
    async def test_delete_then_verify_fails(self, manager: KeyLifecycleManager) -> None:
        record = await manager.create_key("prod")
        await manager.delete_key(record.id)
        assert await manager.list_keys() == []
        assert await manager.verify_key(record.value) is False

    async def test_delete_unknown_id(self, manager: KeyLifecycleManager) -> None:
        with pytest.raises(NotFound):
            await manager.delete_key("missing")


# ─── verify_key ───────────────────────────────────────────────────────────────


class TestVerifyKey:
    async def test_existing_value_verifies(self, manager: KeyLifecycleManager) -> None:
        record = await manager.create_key("prod")
        assert await manager.verify_key(record.value) is True

    async def test_unknown_value_fails(self, manager: KeyLifecycleManager) -> None:
        assert await manager.verify_key("tvly-" + "z" * 32) is False

    async def test_exact_match_only(self, manager: KeyLifecycleManager) -> None:
        record = await manager.create_key("prod")
        assert await manager.verify_key(record.value.swapcase()) is False
        assert await manager.verify_key(f" {record.value} ") is False

    async def test_store_failure_collapses_to_false(self) -> None:
        store = AsyncMock()
        store.find_by_value.side_effect = StoreUnavailable()
        manager = KeyLifecycleManager(store)
        assert await manager.verify_key("tvly-anything") is False

    async def test_unexpected_store_exception_collapses_to_false(self) -> None:
        store = AsyncMock()
        store.find_by_value.side_effect = UnicodeEncodeError(
            "utf-8", "tvly-\ud800", 5, 6, "surrogates not allowed"
        )
        manager = KeyLifecycleManager(store)
        assert await manager.verify_key("tvly-\ud800") is False

    async def test_unencodable_candidate_against_sqlite(self, tmp_path) -> None:
        store = LocalSQLiteKeyStore(db_path=str(tmp_path / "keys.db"))
        await store.initialize()
        manager = KeyLifecycleManager(store)
        await manager.create_key("prod")
        assert await manager.verify_key("tvly-\ud800") is False
        await store.close()
