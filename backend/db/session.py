"""Async engine and session factory."""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from core import settings


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create an async engine with store timeouts applied.

    SQLite connections get foreign keys switched on so ON DELETE CASCADE
    behaves the same way it does on PostgreSQL.
    """
    url = make_url(database_url or settings.database_url)
    timeout = settings.store_timeout_seconds
    connect_args: dict[str, Any] = dict(kwargs.pop("connect_args", {}))
    if url.get_backend_name() == "sqlite":
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", timeout)
    elif url.get_driver_name() == "asyncpg":
        connect_args.setdefault("timeout", timeout)
        connect_args.setdefault("command_timeout", timeout)
        kwargs.setdefault("pool_timeout", timeout)
        kwargs.setdefault("pool_pre_ping", True)

    engine = create_async_engine(
        url,
        echo=settings.database_echo,
        connect_args=connect_args,
        **kwargs,
    )
    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


async_engine = build_engine()
AsyncSessionMaker = async_sessionmaker(async_engine, expire_on_commit=False)

