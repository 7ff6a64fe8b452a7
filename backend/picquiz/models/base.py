"""
Database base configuration for SQLAlchemy models.

The database holds exam sessions, per-question statistics and question
explanations. Accounts live in the account store, not here.
"""

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from picquiz.core.config import settings


def create_db_engine(database_url: str, timeout: float) -> Engine:
    """
    Build an engine whose connection waits are bounded by ``timeout``.

    SQLite gets its busy timeout from the driver; other backends get a
    connect timeout and a bounded pool checkout. In-memory SQLite shares a
    single connection so every session sees the same database.
    """
    kwargs: Dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["connect_args"] = {"connect_timeout": int(timeout)}
        kwargs["pool_timeout"] = timeout
        kwargs["pool_recycle"] = 3600
    return create_engine(database_url, **kwargs)


engine = create_db_engine(settings.DATABASE_URL, settings.STORE_TIMEOUT_SECONDS)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """
    SQLAlchemy 2.0 declarative base class.
    """

    pass

