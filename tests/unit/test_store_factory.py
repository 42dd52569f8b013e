"""Unit tests for keydeck/store/factory.py

Tests:
  - backend=auto, no SUPABASE env vars → LocalSQLiteKeyStore
  - backend=auto, SUPABASE_URL + SUPABASE_KEY → SupabaseKeyStore
  - backend=auto, only SUPABASE_URL → LocalSQLiteKeyStore fallback
  - backend=memory → InMemoryKeyStore
  - backend=supabase without env vars → SystemExit(1)
  - RuntimeError from LocalSQLiteKeyStore propagates (schema mismatch)
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import aiosqlite
import pytest

from keydeck.config import Config
from keydeck.store.factory import _ENV_SUPABASE_KEY, _ENV_SUPABASE_URL, create_key_store
from keydeck.store.protocol import InMemoryKeyStore, KeyStore
from keydeck.store.sqlite_backend import LocalSQLiteKeyStore
from keydeck.store.supabase_backend import SupabaseKeyStore


def _config(backend: str, tmp_path: Any) -> Config:
    config = Config.defaults()
    config.store.backend = backend
    config.store.path = str(tmp_path / "factory.db")
    return config


class TestBackendSelection:
    async def test_auto_without_supabase_env_returns_sqlite(self, tmp_path: Any) -> None:
        store = await create_key_store(_config("auto", tmp_path))
        assert isinstance(store, LocalSQLiteKeyStore)
        assert isinstance(store, KeyStore)
        assert (tmp_path / "factory.db").exists()
        await store.close()

    async def test_auto_with_supabase_env_returns_supabase(
        self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(_ENV_SUPABASE_URL, "https://abcd.supabase.co")
        monkeypatch.setenv(_ENV_SUPABASE_KEY, "service-role-key")
        with patch.object(SupabaseKeyStore, "initialize", new=AsyncMock()) as init:
            store = await create_key_store(_config("auto", tmp_path))
        assert isinstance(store, SupabaseKeyStore)
        init.assert_awaited_once()

    async def test_auto_with_only_url_falls_back_to_sqlite(
        self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(_ENV_SUPABASE_URL, "https://abcd.supabase.co")
        store = await create_key_store(_config("auto", tmp_path))
        assert isinstance(store, LocalSQLiteKeyStore)
        await store.close()

    async def test_memory_backend(self, tmp_path: Any) -> None:
        store = await create_key_store(_config("memory", tmp_path))
        assert isinstance(store, InMemoryKeyStore)
        assert not (tmp_path / "factory.db").exists()

    async def test_sqlite_backend_ignores_supabase_env(
        self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(_ENV_SUPABASE_URL, "https://abcd.supabase.co")
        monkeypatch.setenv(_ENV_SUPABASE_KEY, "service-role-key")
        store = await create_key_store(_config("sqlite", tmp_path))
        assert isinstance(store, LocalSQLiteKeyStore)
        await store.close()

    async def test_supabase_backend_without_env_exits(
        self, tmp_path: Any, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            await create_key_store(_config("supabase", tmp_path))
        assert exc_info.value.code == 1
        assert "SUPABASE_URL" in capsys.readouterr().err


class TestInitializationErrors:
    async def test_schema_mismatch_propagates(self, tmp_path: Any) -> None:
        db_path = tmp_path / "factory.db"
        async with aiosqlite.connect(str(db_path)) as db:
            await db.execute("PRAGMA user_version = 7;")
            await db.commit()

        with pytest.raises(RuntimeError):
            await create_key_store(_config("sqlite", tmp_path))
