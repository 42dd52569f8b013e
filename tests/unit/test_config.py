"""Unit tests for keydeck/config.py: file loading, validation, env overrides.

Covers:
  - Missing config file → Config.defaults(), no exception
  - Missing / unsupported 'version' → SystemExit(1)
  - Invalid YAML → SystemExit(1)
  - Invalid store.backend / notifications.ttl_ms → SystemExit(1)
  - KEYDECK_CONFIG, KEYDECK_PORT, KEYDECK_DB_PATH overrides
"""

from __future__ import annotations

import textwrap
from typing import Any

import pytest

from keydeck.config import (
    SUPPORTED_VERSIONS,
    VALID_STORE_BACKENDS,
    Config,
    ServerConfig,
    SessionConfig,
    StoreConfig,
    load_config,
)


def _write(tmp_path: Any, content: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(content))
    return str(path)


# ─── Defaults ─────────────────────────────────────────────────────────────────


class TestDefaults:
    def test_nonexistent_path_returns_defaults(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("keydeck.config.DEFAULT_CONFIG_PATHS", [])
        config = load_config(str(tmp_path / "missing.yaml"))
        assert config.path is None
        assert config.server == ServerConfig()

    def test_default_values(self) -> None:
        config = Config.defaults()
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 4343
        assert config.store.backend == "auto"
        assert config.store.table == "api_keys"
        assert config.store.timeout_s == 5.0
        assert config.notifications.ttl_ms == 3000
        assert config.session == SessionConfig()
        assert config.session.cookie_name == "keydeck_session"

    def test_version_only_populates_defaults(self, tmp_path: Any) -> None:
        config = load_config(_write(tmp_path, "version: 1\n"))
        assert config.store == StoreConfig()
        assert config.notifications.ttl_ms == 3000

    def test_supported_versions(self) -> None:
        assert SUPPORTED_VERSIONS == frozenset({1})
        assert VALID_STORE_BACKENDS == frozenset({"auto", "sqlite", "supabase", "memory"})


# ─── Parsing ──────────────────────────────────────────────────────────────────


class TestParsing:
    def test_full_file(self, tmp_path: Any) -> None:
        path = _write(
            tmp_path,
            """
            version: 1
            server:
              host: 127.0.0.1
              port: 5000
            store:
              backend: memory
              path: /tmp/other.db
              timeout_s: 2
            notifications:
              ttl_ms: 1500
            session:
              cookie_name: deck
              max_sessions: 10
              secure_cookie: true
            """,
        )
        config = load_config(path)
        assert config.path == path
        assert config.server.port == 5000
        assert config.store.backend == "memory"
        assert config.store.path == "/tmp/other.db"
        assert config.store.timeout_s == 2.0
        assert config.notifications.ttl_ms == 1500
        assert config.session == SessionConfig(cookie_name="deck", max_sessions=10, secure_cookie=True)

    def test_keydeck_config_env_var(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "version: 1\nserver:\n  port: 6001\n")
        monkeypatch.setenv("KEYDECK_CONFIG", path)
        assert load_config().server.port == 6001


# ─── Startup refusal ──────────────────────────────────────────────────────────


class TestInvalidConfig:
    def test_missing_version_exits(self, tmp_path: Any, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            load_config(_write(tmp_path, "server:\n  port: 1\n"))
        assert exc_info.value.code == 1
        assert "version" in capsys.readouterr().err

    def test_empty_file_exits(self, tmp_path: Any) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, ""))

    def test_unsupported_version_exits(self, tmp_path: Any, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, "version: 2\n"))
        assert "Unsupported config version" in capsys.readouterr().err

    def test_invalid_yaml_exits(self, tmp_path: Any, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, "version: 1\nserver: [unclosed\n"))
        assert "Failed to parse" in capsys.readouterr().err

    def test_non_mapping_exits(self, tmp_path: Any) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, "- just\n- a list\n"))

    def test_invalid_backend_exits(self, tmp_path: Any, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, "version: 1\nstore:\n  backend: redis\n"))
        assert "store.backend" in capsys.readouterr().err

    @pytest.mark.parametrize("ttl", ["0", "-5", "soon"])
    def test_invalid_ttl_exits(self, tmp_path: Any, ttl: str) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, f"version: 1\nnotifications:\n  ttl_ms: {ttl}\n"))


# ─── Environment overrides ────────────────────────────────────────────────────


class TestEnvOverrides:
    def test_port_override(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYDECK_PORT", "7777")
        assert load_config(_write(tmp_path, "version: 1\n")).server.port == 7777

    def test_port_override_without_file(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("keydeck.config.DEFAULT_CONFIG_PATHS", [])
        monkeypatch.setenv("KEYDECK_PORT", "7778")
        assert load_config(str(tmp_path / "missing.yaml")).server.port == 7778

    def test_invalid_port_exits(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYDECK_PORT", "not-a-port")
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, "version: 1\n"))

    def test_db_path_override(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYDECK_DB_PATH", "/tmp/override.db")
        assert load_config(_write(tmp_path, "version: 1\n")).store.path == "/tmp/override.db"
