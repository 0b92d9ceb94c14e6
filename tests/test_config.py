"""Tests for environment configuration."""

import importlib

import pytest

import config_env
from backend.database import normalize_database_url


@pytest.fixture
def reload_config(monkeypatch):
    """Reload config_env after patching the environment."""

    def _reload(**env: str):
        for key in (
            "LOCK_TIMEOUT_MINUTES",
            "ENABLE_LOCK_SWEEP",
            "LOCK_SWEEP_INTERVAL_MINUTES",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(key, raising=False)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        # keep a developer's .env out of the picture
        monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **kw: False)
        return importlib.reload(config_env)

    yield _reload
    monkeypatch.undo()
    importlib.reload(config_env)


class TestConfigEnv:
    """Tests for config_env parsing."""

    def test_defaults(self, reload_config) -> None:
        cfg = reload_config()
        assert cfg.LOCK_TIMEOUT_MINUTES == 30
        assert cfg.ENABLE_LOCK_SWEEP is True
        assert cfg.LOCK_SWEEP_INTERVAL_MINUTES == 15
        assert cfg.LOG_LEVEL == "INFO"

    def test_overrides(self, reload_config) -> None:
        cfg = reload_config(
            LOCK_TIMEOUT_MINUTES="10",
            ENABLE_LOCK_SWEEP="no",
            LOCK_SWEEP_INTERVAL_MINUTES="2",
            LOG_LEVEL="debug",
        )
        assert cfg.LOCK_TIMEOUT_MINUTES == 10
        assert cfg.ENABLE_LOCK_SWEEP is False
        assert cfg.LOCK_SWEEP_INTERVAL_MINUTES == 2
        assert cfg.LOG_LEVEL == "DEBUG"

    def test_unknown_log_level_falls_back(self, reload_config) -> None:
        cfg = reload_config(LOG_LEVEL="verbose")
        assert cfg.LOG_LEVEL == "INFO"

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", "  "])
    def test_invalid_timeout_falls_back(self, reload_config, raw: str) -> None:
        cfg = reload_config(LOCK_TIMEOUT_MINUTES=raw)
        assert cfg.LOCK_TIMEOUT_MINUTES == 30


class TestDatabaseUrl:
    """Tests for normalize_database_url."""

    def test_railway_postgres_scheme(self) -> None:
        assert (
            normalize_database_url("postgres://u:p@db:5432/crm")
            == "postgresql+asyncpg://u:p@db:5432/crm"
        )

    def test_postgresql_scheme(self) -> None:
        assert (
            normalize_database_url("postgresql://u:p@db/crm")
            == "postgresql+asyncpg://u:p@db/crm"
        )

    def test_other_urls_untouched(self) -> None:
        url = "sqlite+aiosqlite:///./local.db"
        assert normalize_database_url(url) == url
