"""Engine construction for the rating store."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import Engine, event
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, create_engine

import arena_rating.models  # noqa: F401  (registers tables on SQLModel.metadata)

logger = structlog.get_logger()

SQLITE_BUSY_TIMEOUT = 30.0


def _serialize_sqlite_writers(engine: Engine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, which lets two transactions
    read the same candidate row before either writes it. Taking the write
    lock at BEGIN serializes read-modify-write transactions the way
    SELECT ... FOR UPDATE does on row-locking databases.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the rating store.

    SQLite URLs must point at a file: each worker thread opens its own
    connection, so an in-memory database would not be shared.

    Args:
        database_url: SQLAlchemy database URL.
        echo: Log emitted SQL.

    Returns:
        Configured engine.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=NullPool,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        )
        _serialize_sqlite_writers(engine)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    logger.debug("store_engine_created", dialect=engine.dialect.name)
    return engine


def init_schema(engine: Engine) -> None:
    """Create all rating store tables that do not exist yet."""
    SQLModel.metadata.create_all(engine)
    logger.info("store_schema_ready", tables=sorted(SQLModel.metadata.tables))
