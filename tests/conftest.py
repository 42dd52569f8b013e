"""Root test configuration for KeyDeck.

Clears the environment variables that steer config loading and store
selection so a developer's shell (SUPABASE_URL, KEYDECK_PORT, ...) never
leaks into the suite. Tests that exercise those overrides set them again
with their own monkeypatch calls.
"""

import pytest

_ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "KEYDECK_CONFIG",
    "KEYDECK_PORT",
    "KEYDECK_DB_PATH",
)


@pytest.fixture(autouse=True)
def clean_keydeck_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove store/config environment overrides for every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
