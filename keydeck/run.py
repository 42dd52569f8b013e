"""Programmatic uvicorn entry point for KeyDeck.

Reads host and port from the loaded config (127.0.0.1:4343 by default) and
starts uvicorn with hardened defaults:

  --limit-concurrency 100  Max 100 concurrent connections; HTTP 503 when exceeded
  --backlog 50             OS connection queue depth
  --timeout-keep-alive 5   Short keep-alive window against slow clients

Usage:
    python -m keydeck.run      # reads .keydeck/config.yaml
    keydeck                    # via pyproject.toml [project.scripts]

Binding to server.host "0.0.0.0" is allowed but logs a SECURITY WARNING (see
keydeck/config.py:load_config): the dashboard shows raw key values.
"""

from __future__ import annotations

import uvicorn

from keydeck.config import load_config

# ─── Uvicorn hardened defaults ────────────────────────────────────────────────

UVICORN_LIMIT_CONCURRENCY: int = 100

UVICORN_BACKLOG: int = 50

UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the KeyDeck server with hardened uvicorn defaults.

    Raises:
        SystemExit: Propagated from load_config() on config parse errors.
    """
    config = load_config()

    uvicorn.run(
        "keydeck.main:app",
        host=config.server.host,
        port=config.server.port,
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
