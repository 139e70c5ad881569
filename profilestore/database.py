"""Database engine management for the profile store.

The store's database lives entirely in memory: one SQLite connection,
driven through aiosqlite and an async SQLAlchemy engine. Its content (the
"image") can be seeded from bytes when the engine is created and exported
back to bytes at any time; durability is the caller's job via the blob
store.

SQLite's Python driver manages transactions on its own, which breaks
SAVEPOINT support. The engine created here disables that and emits BEGIN
itself, following SQLAlchemy's documented recipe for pysqlite/aiosqlite.
"""

from __future__ import annotations

import sqlite3
from typing import Any

import aiosqlite
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

# Rows fetched per round trip to the aiosqlite worker thread.
ITER_CHUNK_SIZE = 64


def _image_connector(image: bytes | None):
    """Build a sqlite3 connector that opens an in-memory database.

    The connector runs inside aiosqlite's worker thread, which then owns
    the connection.
    """

    def connector() -> sqlite3.Connection:
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        if image is not None:
            conn.deserialize(image)
        return conn

    return connector


def create_engine_from_image(
    image: bytes | None = None,
    echo: bool = False,
) -> AsyncEngine:
    """Create an async engine over an in-memory SQLite image.

    Args:
        image: A serialized SQLite database to start from, or None for an
            empty database.
        echo: Whether to echo SQL statements (for debugging).

    Returns:
        An AsyncEngine whose single pooled connection holds the image.
    """

    async def async_creator() -> aiosqlite.Connection:
        return await aiosqlite.Connection(
            _image_connector(image), ITER_CHUNK_SIZE
        )

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=echo,
        async_creator=async_creator,
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, connection_record: Any) -> None:
        # Hand transaction control to SQLAlchemy (see "begin" below).
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


async def export_image(conn: AsyncConnection) -> bytes:
    """Serialize the live database behind ``conn`` to bytes.

    The database is copied with SQLite's online backup into a scratch
    in-memory connection, which is then serialized.

    Args:
        conn: A connection checked out from an engine built by
            :func:`create_engine_from_image`.

    Returns:
        The SQLite image bytes.
    """
    raw = await conn.get_raw_connection()
    driver_conn: aiosqlite.Connection = raw.driver_connection  # type: ignore[assignment]
    scratch = sqlite3.connect(":memory:", check_same_thread=False)
    try:
        await driver_conn.backup(scratch)
        return scratch.serialize()
    finally:
        scratch.close()
