"""LocalSQLiteKeyStore — aiosqlite-based async key store.

Uses aiosqlite EXCLUSIVELY — no synchronous sqlite3 calls on the event loop.

Features:
  - WAL mode: PRAGMA journal_mode=WAL
  - Schema version guard: PRAGMA user_version=1 — RuntimeError on mismatch, refuse startup
  - Long-lived connection: opened in initialize(), closed in close()
  - UNIQUE(value): duplicate key values raise ConstraintViolation
  - File permissions 0600 — the table holds raw key values
  - Zero-row UPDATE/DELETE raise NotFound instead of silently succeeding
  - Parameters sqlite3 cannot bind (lone surrogates, integers past 64 bits)
    never escape as raw ValueError/OverflowError
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from keydeck.errors import ConstraintViolation, NotFound, StoreUnavailable, ValidationError
from keydeck.store.models import ApiKeyRecord
from keydeck.utils.logger import get_logger
from keydeck.utils.ulid import generate_ulid

logger = get_logger(__name__)

# ─── Schema DDL ───────────────────────────────────────────────────────────────

_CREATE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS api_keys (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    value       TEXT NOT NULL UNIQUE,
    usage       INTEGER NOT NULL CHECK(usage >= 0),
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_api_keys_created_at
    ON api_keys(created_at DESC);
"""

_SCHEMA_VERSION = 1

_DEFAULT_DB_PATH = "~/.keydeck/keys.db"

# Raised by sqlite3 while binding parameters, before the statement runs.
# UnicodeEncodeError is a ValueError.
_UNBINDABLE = (ValueError, OverflowError)

# rowid breaks ties between rows created within the same microsecond
_SELECT_ALL_SQL = (
    "SELECT id, name, value, usage, created_at FROM api_keys "
    "ORDER BY created_at DESC, rowid DESC"
)


def _utc_now_iso() -> str:
    # Fixed-width timestamps keep lexicographic ORDER BY equal to time order.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


# ─── LocalSQLiteKeyStore ──────────────────────────────────────────────────────


class LocalSQLiteKeyStore:
    """Async SQLite key store using aiosqlite exclusively.

    Default path: ~/.keydeck/keys.db
    Override via: KEYDECK_DB_PATH environment variable (applied by config.py),
    or pass db_path explicitly (used in tests).

    Usage:
        store = LocalSQLiteKeyStore(db_path="/tmp/keys.db")
        await store.initialize()   # raises RuntimeError on schema version mismatch
        record = await store.insert("prod", "tvly-...", 1000)
        await store.close()
    """

    def __init__(self, db_path: str = _DEFAULT_DB_PATH) -> None:
        self._db_path: str = os.path.expanduser(db_path)
        self._db: Optional[aiosqlite.Connection] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Open the connection, enable WAL mode, and create/verify schema.

        PRAGMA user_version:
          - 0: fresh DB → create schema, set user_version=1
          - 1: compatible schema → no-op
          - other: RuntimeError (the app lifespan refuses startup)
        """
        parent_dir = os.path.dirname(self._db_path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)

        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row

        await self._db.execute("PRAGMA journal_mode=WAL;")

        cursor = await self._db.execute("PRAGMA user_version;")
        row = await cursor.fetchone()
        current_version: int = row[0] if row else 0

        if current_version == 0:
            await self._db.executescript(_CREATE_SCHEMA_SQL)
            # executescript may not honour PRAGMA in all SQLite builds
            await self._db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION};")
            await self._db.commit()
            logger.info(
                "key_db_schema_created",
                db_path=self._db_path,
                schema_version=_SCHEMA_VERSION,
            )
        elif current_version == _SCHEMA_VERSION:
            logger.info(
                "key_db_schema_ok",
                db_path=self._db_path,
                schema_version=current_version,
            )
        else:
            await self._db.close()
            self._db = None
            raise RuntimeError(
                f"Unsupported key database schema version: {current_version}. "
                f"Delete {self._db_path} to reset."
            )

        # Raw key values live in this file: owner read/write only.
        os.chmod(self._db_path, 0o600)

    async def close(self) -> None:
        """Close the aiosqlite connection gracefully."""
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.debug("key_db_closed", db_path=self._db_path)

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreUnavailable("Key store not initialized")
        return self._db

    # ── KeyStore Protocol Methods ─────────────────────────────────────────────

    async def list_keys(self) -> list[ApiKeyRecord]:
        db = self._conn()
        try:
            cursor = await db.execute(_SELECT_ALL_SQL)
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            logger.error("key_db_list_failed", error=str(exc), error_type=type(exc).__name__)
            raise StoreUnavailable("Failed to list API keys") from exc
        return [ApiKeyRecord.from_row(row) for row in rows]

    async def insert(self, name: str, value: str, usage: int) -> ApiKeyRecord:
        db = self._conn()
        key_id = generate_ulid()
        created_at = _utc_now_iso()
        try:
            await db.execute(
                "INSERT INTO api_keys (id, name, value, usage, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (key_id, name, value, usage, created_at),
            )
            await db.commit()
        except aiosqlite.IntegrityError as exc:
            await db.rollback()
            raise ConstraintViolation(f"API key rejected by store: {exc}") from exc
        except aiosqlite.Error as exc:
            logger.error("key_db_insert_failed", error=str(exc), error_type=type(exc).__name__)
            raise StoreUnavailable("Failed to create API key") from exc
        except _UNBINDABLE as exc:
            raise ValidationError("API key fields cannot be stored") from exc

        return ApiKeyRecord(
            id=key_id,
            name=name,
            value=value,
            usage=usage,
            created_at=datetime.fromisoformat(created_at),
        )

    async def update(self, key_id: str, name: str, usage: int) -> None:
        db = self._conn()
        try:
            cursor = await db.execute(
                "UPDATE api_keys SET name = ?, usage = ? WHERE id = ?",
                (name, usage, key_id),
            )
            await db.commit()
        except aiosqlite.IntegrityError as exc:
            await db.rollback()
            raise ConstraintViolation(f"API key update rejected by store: {exc}") from exc
        except aiosqlite.Error as exc:
            logger.error("key_db_update_failed", key_id=key_id, error=str(exc))
            raise StoreUnavailable("Failed to update API key") from exc
        except _UNBINDABLE as exc:
            raise ValidationError("API key fields cannot be stored") from exc

        if cursor.rowcount == 0:
            raise NotFound(f"API key '{key_id}' not found")

    async def delete(self, key_id: str) -> None:
        db = self._conn()
        try:
            cursor = await db.execute("DELETE FROM api_keys WHERE id = ?", (key_id,))
            await db.commit()
        except aiosqlite.Error as exc:
            logger.error("key_db_delete_failed", key_id=key_id, error=str(exc))
            raise StoreUnavailable("Failed to delete API key") from exc
        except _UNBINDABLE as exc:
            raise NotFound(f"API key '{key_id}' not found") from exc

        if cursor.rowcount == 0:
            raise NotFound(f"API key '{key_id}' not found")

    async def find_by_value(self, value: str) -> ApiKeyRecord:
        db = self._conn()
        try:
            cursor = await db.execute(
                "SELECT id, name, value, usage, created_at FROM api_keys WHERE value = ?",
                (value,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("key_db_lookup_failed", error=str(exc), error_type=type(exc).__name__)
            raise StoreUnavailable("Failed to look up API key") from exc
        except _UNBINDABLE as exc:
            # No stored value can equal one sqlite3 cannot encode
            raise NotFound("No API key matches the given value") from exc

        if row is None:
            raise NotFound("No API key matches the given value")
        return ApiKeyRecord.from_row(row)

    async def health_check(self) -> bool:
        """Returns True if the DB connection is alive and queryable."""
        if self._db is None:
            return False
        try:
            await self._db.execute("SELECT 1")
            return True
        except aiosqlite.Error:
            return False
