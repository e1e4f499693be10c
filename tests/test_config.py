import pytest

from oms.config import Settings


def test_from_env_defaults(monkeypatch):
    for name in ("REDIS_URL", "ORDER_EVENTS_CHANNEL", "DB_POOL_SIZE", "INIT_SCHEMA", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://oms:oms@db/oms")

    settings = Settings.from_env()

    assert settings.database_url == "postgresql+asyncpg://oms:oms@db/oms"
    assert settings.redis_url is None
    assert settings.order_events_channel == "order_events"
    assert settings.db_pool_size == 10
    assert settings.init_schema is False
    assert settings.cors_origins == ["*"]


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///oms.db")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379")
    monkeypatch.setenv("INIT_SCHEMA", "true")
    monkeypatch.setenv("PLACEMENT_TIMEOUT_S", "2.5")
    monkeypatch.setenv("REDIS_TIMEOUT_S", "0.5")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:5173, http://localhost:3000")

    settings = Settings.from_env()

    assert settings.redis_url == "redis://cache:6379"
    assert settings.init_schema is True
    assert settings.placement_timeout_s == 2.5
    assert settings.redis_timeout_s == 0.5
    assert settings.cors_origins == ["http://localhost:5173", "http://localhost:3000"]


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(KeyError):
        Settings.from_env()
