from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    database_url: str = "sqlite+pysqlite:///./stock_movements.db"
    sql_echo: bool = False
    default_account_id: int = Field(default=1, ge=1)
    default_user_id: int = Field(default=1, ge=1)
    api_prefix: str = "/api/v1/internal"
    log_level: str = "INFO"


_cached_config: Optional[AppConfig] = None


def _env(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    return value or default


def load_config() -> AppConfig:
    """Lee la configuración desde variables de entorno (cacheada por proceso)."""
    global _cached_config

    if _cached_config is not None:
        return _cached_config

    prefix = _env("API_PREFIX", "/api/v1/internal").rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = f"/{prefix}"

    _cached_config = AppConfig(
        database_url=_env("DATABASE_URL", "sqlite+pysqlite:///./stock_movements.db"),
        sql_echo=_env("SQL_ECHO", "0") == "1",
        default_account_id=int(_env("DEFAULT_ACCOUNT_ID", "1")),
        default_user_id=int(_env("DEFAULT_USER_ID", "1")),
        api_prefix=prefix,
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )
    return _cached_config


def reset_config() -> None:
    global _cached_config
    _cached_config = None
