"""SupabaseKeyStore — async Supabase (PostgREST) key store.

All calls are wrapped in asyncio.wait_for with a 5-second default timeout.
Failures are NOT swallowed: the dashboard must tell the user that an action
failed, so every error is translated into the KeyDeck taxonomy:

    asyncio.TimeoutError / transport / API errors → StoreUnavailable
    PostgreSQL unique_violation (SQLSTATE 23505)   → ConstraintViolation
    zero rows returned by UPDATE / DELETE          → NotFound

Install: pip install keydeck[supabase]  # includes supabase>=2.4.0

Environment:
  SUPABASE_URL  — project URL
  SUPABASE_KEY  — service role key (the table has no RLS policy for anon)

Table schema (run once in the Supabase SQL editor):

    create table api_keys (
        id          uuid primary key default gen_random_uuid(),
        name        text not null,
        value       text not null unique,
        usage       integer not null check (usage >= 0),
        created_at  timestamptz not null default now()
    );
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from keydeck.errors import ConstraintViolation, NotFound, StoreUnavailable
from keydeck.store.models import ApiKeyRecord
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

# The supabase library is an optional dependency (keydeck[supabase]).
try:
    from supabase import create_async_client  # type: ignore[import-untyped]
    _SUPABASE_AVAILABLE = True
except ImportError:
    _SUPABASE_AVAILABLE = False

# ─── Constants ────────────────────────────────────────────────────────────────

_SUPABASE_TIMEOUT_S = 5.0
"""All Supabase operations are wrapped in asyncio.wait_for(timeout=_SUPABASE_TIMEOUT_S)."""

_TABLE_NAME = "api_keys"

_UNIQUE_VIOLATION = "23505"
"""PostgreSQL SQLSTATE for unique_violation, surfaced by postgrest APIError.code."""


# ─── SupabaseKeyStore ─────────────────────────────────────────────────────────


class SupabaseKeyStore:
    """Async Supabase key store.

    Implements the KeyStore protocol against Supabase's PostgREST API.

    Usage:
        store = SupabaseKeyStore(url="https://...", key="service-role-key")
        await store.initialize()
        keys = await store.list_keys()
        await store.close()
    """

    def __init__(
        self,
        url: str,
        key: str,
        table_name: str = _TABLE_NAME,
        timeout_s: float = _SUPABASE_TIMEOUT_S,
    ) -> None:
        self._url = url
        self._key = key
        self._table_name = table_name
        self._timeout_s = timeout_s
        self._client: Optional[Any] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the async Supabase client.

        Raises:
            StoreUnavailable: supabase is not installed, or client creation
                              failed or timed out.
        """
        if not _SUPABASE_AVAILABLE:
            raise StoreUnavailable(
                "supabase package not installed — install with: pip install keydeck[supabase]"
            )

        try:
            self._client = await asyncio.wait_for(
                create_async_client(self._url, self._key),
                timeout=self._timeout_s,
            )
        except Exception as exc:
            logger.error(
                "supabase_store_init_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise StoreUnavailable("Could not connect to Supabase") from exc

        logger.info(
            "supabase_store_initialized",
            table=self._table_name,
            timeout_s=self._timeout_s,
        )

    async def close(self) -> None:
        """Drop the client (PostgREST calls are stateless HTTP)."""
        self._client = None
        logger.debug("supabase_store_closed")

    # ── Execution helper ──────────────────────────────────────────────────────

    def _table(self) -> Any:
        if self._client is None:
            raise StoreUnavailable("Key store not initialized")
        return self._client.table(self._table_name)

    async def _execute(self, query: Any, operation: str) -> Any:
        """Run a query builder with the timeout and translate failures."""
        try:
            return await asyncio.wait_for(query.execute(), timeout=self._timeout_s)
        except asyncio.TimeoutError as exc:
            logger.error("supabase_timeout", operation=operation, timeout_s=self._timeout_s)
            raise StoreUnavailable(f"Supabase {operation} timed out") from exc
        except Exception as exc:
            if getattr(exc, "code", None) == _UNIQUE_VIOLATION:
                raise ConstraintViolation("duplicate key value") from exc
            logger.error(
                "supabase_request_failed",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise StoreUnavailable(f"Supabase {operation} failed") from exc

    # ── KeyStore Protocol Methods ─────────────────────────────────────────────

    async def list_keys(self) -> list[ApiKeyRecord]:
        query = self._table().select("*").order("created_at", desc=True)
        response = await self._execute(query, "list")
        return [ApiKeyRecord.from_row(row) for row in response.data or []]

    async def insert(self, name: str, value: str, usage: int) -> ApiKeyRecord:
        query = self._table().insert({"name": name, "value": value, "usage": usage})
        response = await self._execute(query, "insert")
        if not response.data:
            raise StoreUnavailable("Supabase insert returned no row")
        return ApiKeyRecord.from_row(response.data[0])

    async def update(self, key_id: str, name: str, usage: int) -> None:
        query = self._table().update({"name": name, "usage": usage}).eq("id", key_id)
        response = await self._execute(query, "update")
        if not response.data:
            raise NotFound(f"API key '{key_id}' not found")

    async def delete(self, key_id: str) -> None:
        query = self._table().delete().eq("id", key_id)
        response = await self._execute(query, "delete")
        if not response.data:
            raise NotFound(f"API key '{key_id}' not found")

    async def find_by_value(self, value: str) -> ApiKeyRecord:
        query = self._table().select("*").eq("value", value).limit(1)
        response = await self._execute(query, "lookup")
        if not response.data:
            raise NotFound("No API key matches the given value")
        return ApiKeyRecord.from_row(response.data[0])

    async def health_check(self) -> bool:
        """Returns True if Supabase answers a one-row select within the timeout."""
        if self._client is None:
            return False
        try:
            await self._execute(self._table().select("id").limit(1), "health_check")
            return True
        except StoreUnavailable:
            return False
