from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stock_movements.config import load_config

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker[Session]] = None


class Base(DeclarativeBase):
    pass


def init_engine(database_url: str, echo: bool = False) -> Engine:
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()

    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        _engine = create_engine(database_url, echo=echo, **kwargs)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
        )

    _SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False)
    logger.info("database engine initialized (dialect=%s)", _engine.dialect.name)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        cfg = load_config()
        init_engine(cfg.database_url, echo=cfg.sql_echo)
    assert _engine is not None
    return _engine


def get_session() -> Session:
    if _SessionLocal is None:
        get_engine()
    assert _SessionLocal is not None
    return _SessionLocal()


def dispose_engine() -> None:
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
        logger.info("database engine disposed")
    _engine = None
    _SessionLocal = None


def create_tables() -> None:
    import stock_movements.models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
