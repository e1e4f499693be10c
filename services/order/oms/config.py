"""
Order Management Service — 設定

環境変数から設定を読み込む。
プロセス起動時に一度だけ読み、以降は Settings をアプリに注入して使う。
"""

import logging
import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    redis_url: str | None = None
    order_events_channel: str = "order_events"
    db_pool_size: int = 10
    db_echo: bool = False
    init_schema: bool = False
    placement_timeout_s: float = 10.0
    redis_timeout_s: float = 2.0
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.environ.get("CORS_ORIGINS", "*")
        return cls(
            database_url=os.environ["DATABASE_URL"],
            redis_url=os.environ.get("REDIS_URL") or None,
            order_events_channel=os.environ.get("ORDER_EVENTS_CHANNEL", "order_events"),
            db_pool_size=int(os.environ.get("DB_POOL_SIZE", "10")),
            db_echo=_env_bool("DB_ECHO", False),
            init_schema=_env_bool("INIT_SCHEMA", False),
            placement_timeout_s=float(os.environ.get("PLACEMENT_TIMEOUT_S", "10")),
            redis_timeout_s=float(os.environ.get("REDIS_TIMEOUT_S", "2")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
