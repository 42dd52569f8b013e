"""Config loading for KeyDeck.

Reads `.keydeck/config.yaml` (or `~/.keydeck/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. KEYDECK_CONFIG environment variable (if set)
  3. `.keydeck/config.yaml` (working directory — for development)
  4. `~/.keydeck/config.yaml` (home directory)

Environment variable overrides (applied after the file):
  KEYDECK_PORT    — overrides server.port
  KEYDECK_DB_PATH — overrides store.path
  SUPABASE_URL / SUPABASE_KEY — read by store/factory.py for backend selection

Example:

    version: 1
    server:
      host: 127.0.0.1
      port: 4343
    store:
      backend: sqlite          # auto | sqlite | supabase | memory
      path: ~/.keydeck/keys.db
    notifications:
      ttl_ms: 3000
    session:
      cookie_name: keydeck_session
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Optional

import yaml

from keydeck.constants import NOTIFICATION_TTL_MS
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# ─── Validation sets ─────────────────────────────────────────────────────────

VALID_STORE_BACKENDS: frozenset[str] = frozenset({"auto", "sqlite", "supabase", "memory"})

DEFAULT_CONFIG_PATHS = [
    ".keydeck/config.yaml",
    os.path.expanduser("~/.keydeck/config.yaml"),
]


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class ServerConfig:
    """HTTP binding configuration."""

    host: str = "127.0.0.1"
    port: int = 4343


@dataclass
class StoreConfig:
    """Key store selection.

    backend: "auto" picks Supabase when SUPABASE_URL and SUPABASE_KEY are both
             set, otherwise the local SQLite file at `path`.
    """

    backend: str = "auto"
    path: str = "~/.keydeck/keys.db"
    table: str = "api_keys"
    timeout_s: float = 5.0


@dataclass
class NotificationConfig:
    ttl_ms: int = NOTIFICATION_TTL_MS


@dataclass
class SessionConfig:
    """Browser session cookie settings.

    The cookie carries no max-age, so it ends with the browser session — the
    unlock token's lifetime is bound to it.
    """

    cookie_name: str = "keydeck_session"
    max_sessions: int = 1000
    secure_cookie: bool = False


@dataclass
class Config:
    """Root configuration object populated from .keydeck/config.yaml.

    All fields have safe defaults — KeyDeck can start without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On an invalid store.backend or a non-positive
                           notifications.ttl_ms.
        """
        # ── Store ─────────────────────────────────────────────────────────────
        store_raw = raw.get("store") or {}
        backend = store_raw.get("backend", "auto")
        if backend not in VALID_STORE_BACKENDS:
            msg = (
                f"CONFIG ERROR: Invalid store.backend: '{backend}'. "
                f"Supported values: {sorted(VALID_STORE_BACKENDS)}."
            )
            print(msg, file=sys.stderr)
            raise SystemExit(1)
        store = StoreConfig(
            backend=backend,
            path=store_raw.get("path", "~/.keydeck/keys.db"),
            table=store_raw.get("table", "api_keys"),
            timeout_s=float(store_raw.get("timeout_s", 5.0)),
        )

        # ── Server ────────────────────────────────────────────────────────────
        server_raw = raw.get("server") or {}
        server = ServerConfig(
            host=server_raw.get("host", "127.0.0.1"),
            port=server_raw.get("port", 4343),
        )

        # ── Notifications ─────────────────────────────────────────────────────
        notifications_raw = raw.get("notifications") or {}
        ttl_ms = notifications_raw.get("ttl_ms", NOTIFICATION_TTL_MS)
        if not isinstance(ttl_ms, int) or ttl_ms <= 0:
            msg = f"CONFIG ERROR: notifications.ttl_ms must be a positive integer, got {ttl_ms!r}."
            print(msg, file=sys.stderr)
            raise SystemExit(1)

        # ── Session ───────────────────────────────────────────────────────────
        session_raw = raw.get("session") or {}
        session = SessionConfig(
            cookie_name=session_raw.get("cookie_name", "keydeck_session"),
            max_sessions=session_raw.get("max_sessions", 1000),
            secure_cookie=session_raw.get("secure_cookie", False),
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            server=server,
            store=store,
            notifications=NotificationConfig(ttl_ms=ttl_ms),
            session=session,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate KeyDeck configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes the error to stderr and raises SystemExit(1).
    Environment overrides are applied in both cases.

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, invalid ``store.backend``, or invalid ``KEYDECK_PORT``.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("KEYDECK_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = (
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "KeyDeck refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)
    except OSError as exc:
        msg = f"CONFIG ERROR: Could not read {found_path}: {exc}"
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    if not isinstance(raw, dict):
        if raw is None:
            msg = (
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        else:
            msg = (
                f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
                "The config file must be a YAML dictionary at the top level."
            )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        msg = (
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    if version not in SUPPORTED_VERSIONS:
        msg = (
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.server.host == "0.0.0.0":
        logger.warning(
            "SECURITY WARNING: KeyDeck is configured to bind on 0.0.0.0 (all interfaces). "
            "The dashboard displays raw API keys and has no login. "
            "Recommended: use server.host: '127.0.0.1'."
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        store_backend=config.store.backend,
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Handles:
      KEYDECK_PORT    — overrides config.server.port (SystemExit(1) if not an integer)
      KEYDECK_DB_PATH — overrides config.store.path
    """
    env_port = os.environ.get("KEYDECK_PORT")
    if env_port is not None:
        try:
            config.server.port = int(env_port)
        except ValueError:
            msg = (
                f"CONFIG ERROR: KEYDECK_PORT environment variable is not a valid "
                f"integer: '{env_port}'"
            )
            print(msg, file=sys.stderr)
            raise SystemExit(1)

    env_db_path = os.environ.get("KEYDECK_DB_PATH")
    if env_db_path:
        config.store.path = env_db_path
