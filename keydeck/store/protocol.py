"""KeyStore Protocol + InMemoryKeyStore.

This module defines the pluggable persistence contract used by the key
lifecycle manager, and a process-local implementation of it.

Layout:
    models.py           — ApiKeyRecord
    protocol.py         — KeyStore Protocol + InMemoryKeyStore
    sqlite_backend.py   — LocalSQLiteKeyStore (aiosqlite, WAL, user_version guard)
    supabase_backend.py — SupabaseKeyStore (async client, 5s timeout)
    factory.py          — create_key_store() — backend selection
"""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from keydeck.errors import ConstraintViolation, NotFound
from keydeck.store.models import ApiKeyRecord
from keydeck.utils.logger import get_logger
from keydeck.utils.ulid import generate_ulid

logger = get_logger(__name__)


# ─── KeyStore Protocol ────────────────────────────────────────────────────────


@runtime_checkable
class KeyStore(Protocol):
    """Persistent collection of ApiKeyRecord rows.

    Implementations: InMemoryKeyStore, LocalSQLiteKeyStore, SupabaseKeyStore.
    Selection via create_key_store() (store/factory.py).

    All methods are async. Unlike a fire-and-forget sink, every data method
    propagates failure: backend errors surface as StoreUnavailable, write
    conflicts as ConstraintViolation, missing targets as NotFound.
    """

    async def initialize(self) -> None:
        """Open connections / create schema. Called once from the app lifespan."""
        ...

    async def list_keys(self) -> list[ApiKeyRecord]:
        """Return all records, newest created_at first."""
        ...

    async def insert(self, name: str, value: str, usage: int) -> ApiKeyRecord:
        """Insert a record; the store assigns id and created_at.

        Raises ConstraintViolation if value already exists.
        """
        ...

    async def update(self, key_id: str, name: str, usage: int) -> None:
        """Replace name and usage. Raises NotFound when no row matched."""
        ...

    async def delete(self, key_id: str) -> None:
        """Hard-delete a record. Raises NotFound when no row matched."""
        ...

    async def find_by_value(self, value: str) -> ApiKeyRecord:
        """Exact, case-sensitive lookup by key value. Raises NotFound."""
        ...

    async def health_check(self) -> bool:
        """Returns True if the store is operational. Must not raise."""
        ...

    async def close(self) -> None:
        """Release connections. Called during graceful shutdown."""
        ...


# ─── InMemoryKeyStore ─────────────────────────────────────────────────────────


class InMemoryKeyStore:
    """Process-local KeyStore backed by a dict.

    Used by the test suite and by ``store.backend: memory`` for throwaway
    local runs. Enforces the same uniqueness rule on ``value`` as the SQL
    backends. A monotonic sequence number breaks created_at ties so that two
    inserts within the same clock tick still list newest-first.
    """

    def __init__(self) -> None:
        self._records: dict[str, ApiKeyRecord] = {}
        self._sequence: dict[str, int] = {}
        self._counter = itertools.count()

    async def initialize(self) -> None:
        logger.debug("memory_key_store_initialized")

    async def list_keys(self) -> list[ApiKeyRecord]:
        return sorted(
            self._records.values(),
            key=lambda r: (r.created_at, self._sequence[r.id]),
            reverse=True,
        )

    async def insert(self, name: str, value: str, usage: int) -> ApiKeyRecord:
        if any(r.value == value for r in self._records.values()):
            raise ConstraintViolation("duplicate key value")
        record = ApiKeyRecord(
            id=generate_ulid(),
            name=name,
            value=value,
            usage=usage,
            created_at=datetime.now(timezone.utc),
        )
        self._records[record.id] = record
        self._sequence[record.id] = next(self._counter)
        return record

    async def update(self, key_id: str, name: str, usage: int) -> None:
        record = self._records.get(key_id)
        if record is None:
            raise NotFound(f"API key '{key_id}' not found")
        self._records[key_id] = record.with_changes(name=name, usage=usage)

    async def delete(self, key_id: str) -> None:
        if self._records.pop(key_id, None) is None:
            raise NotFound(f"API key '{key_id}' not found")
        self._sequence.pop(key_id, None)

    async def find_by_value(self, value: str) -> ApiKeyRecord:
        for record in self._records.values():
            if record.value == value:
                return record
        raise NotFound("No API key matches the given value")

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        logger.debug("memory_key_store_closed", records=len(self._records))


# ─── Protocol compliance assertion ────────────────────────────────────────────
# Runs at import time: a protocol mismatch fails on import.
assert isinstance(InMemoryKeyStore(), KeyStore), (
    "InMemoryKeyStore does not satisfy KeyStore protocol — implementation error"
)
