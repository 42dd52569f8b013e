"""KeyDeck key store package.

Re-exports the public API for ergonomic imports:

    from keydeck.store import ApiKeyRecord, KeyStore, InMemoryKeyStore

Layout:
    models.py           — ApiKeyRecord
    protocol.py         — KeyStore Protocol + InMemoryKeyStore
    sqlite_backend.py   — LocalSQLiteKeyStore (aiosqlite, WAL mode, PRAGMA version guard)
    supabase_backend.py — SupabaseKeyStore (async client, 5s timeout)
    factory.py          — create_key_store() — backend selection by config/env
"""

from keydeck.store.models import ApiKeyRecord
from keydeck.store.protocol import InMemoryKeyStore, KeyStore

__all__ = [
    "ApiKeyRecord",
    "KeyStore",
    "InMemoryKeyStore",
]
