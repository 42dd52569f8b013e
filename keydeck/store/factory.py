"""Key store factory — backend selection and initialization.

Backend selection (store.backend in config):
  auto      SUPABASE_URL + SUPABASE_KEY both set → SupabaseKeyStore,
            otherwise LocalSQLiteKeyStore
  sqlite    LocalSQLiteKeyStore at store.path (KEYDECK_DB_PATH overrides)
  supabase  SupabaseKeyStore — SystemExit(1) if the env vars are missing
  memory    InMemoryKeyStore (nothing persisted)

Initialization errors propagate to the FastAPI lifespan so a misconfigured
store refuses startup instead of serving a dashboard that cannot save.
"""

from __future__ import annotations

import os
import sys

from keydeck.config import Config
from keydeck.store.protocol import InMemoryKeyStore, KeyStore
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Environment variable names ───────────────────────────────────────────────

_ENV_SUPABASE_URL = "SUPABASE_URL"
_ENV_SUPABASE_KEY = "SUPABASE_KEY"


async def create_key_store(config: Config) -> KeyStore:
    """Create and initialize the configured key store.

    Raises:
      RuntimeError:     SQLite schema version is incompatible.
      StoreUnavailable: Supabase client could not be created.
      SystemExit(1):    backend=supabase without SUPABASE_URL/SUPABASE_KEY.
    """
    backend = config.store.backend
    supabase_url = os.getenv(_ENV_SUPABASE_URL)
    supabase_key = os.getenv(_ENV_SUPABASE_KEY)

    if backend == "memory":
        store: KeyStore = InMemoryKeyStore()
        await store.initialize()
        logger.warning("key_store_selected", backend="InMemoryKeyStore", persistent=False)
        return store

    if backend == "supabase" and not (supabase_url and supabase_key):
        print(
            "CONFIG ERROR: store.backend is 'supabase' but SUPABASE_URL and "
            "SUPABASE_KEY are not both set.",
            file=sys.stderr,
        )
        raise SystemExit(1)

    if backend == "supabase" or (backend == "auto" and supabase_url and supabase_key):
        return await _create_supabase_store(config, supabase_url or "", supabase_key or "")

    return await _create_local_sqlite_store(config)


async def _create_supabase_store(config: Config, url: str, key: str) -> KeyStore:
    from keydeck.store.supabase_backend import SupabaseKeyStore

    store = SupabaseKeyStore(
        url=url,
        key=key,
        table_name=config.store.table,
        timeout_s=config.store.timeout_s,
    )
    await store.initialize()
    logger.info(
        "key_store_selected",
        backend="SupabaseKeyStore",
        # Never log the key; only the project ref from the URL host
        supabase_host=url.split("//")[-1].split(".")[0] if "//" in url else "unknown",
    )
    return store


async def _create_local_sqlite_store(config: Config) -> KeyStore:
    from keydeck.store.sqlite_backend import LocalSQLiteKeyStore

    store = LocalSQLiteKeyStore(db_path=config.store.path)
    await store.initialize()
    logger.info("key_store_selected", backend="LocalSQLiteKeyStore", db_path=config.store.path)
    return store
