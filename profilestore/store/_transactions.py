"""Transaction coordination and statement execution."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

import sqlalchemy as sa

from profilestore.errors import StoreOperationError, classify_exception

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class QueryResult:
    """Outcome of one statement.

    Reads fill ``columns`` and ``rows``; writes fill ``rowcount`` and,
    for inserts, ``lastrowid``.
    """

    columns: list[str] = field(default_factory=list)
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    rowcount: int = 0
    lastrowid: int | None = None

    def scalar(self, default: Any = None) -> Any:
        """First column of the first row, or ``default``."""
        if not self.rows or self.rows[0][0] is None:
            return default
        return self.rows[0][0]

    def first(self) -> tuple[Any, ...] | None:
        return self.rows[0] if self.rows else None


class TransactionCoordinator:
    """Scoped, reentrant transactions over the store's single connection.

    The outermost ``transaction()`` opens a connection and BEGINs; nested
    calls open a SAVEPOINT on that same connection. A failure inside a
    nested block rolls back to its savepoint and propagates; left
    uncaught, it rolls back the outer transaction as well.

    One coordinator exists per engine. It assumes a single logical writer:
    concurrent callers must serialize outside the store.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._conn: AsyncConnection | None = None
        self._depth = 0
        self._lock = asyncio.Lock()

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def active(self) -> bool:
        """Whether a transaction is currently open."""
        return self._depth > 0

    @property
    def depth(self) -> int:
        """Nesting depth: 0 outside, 1 in the outer transaction, +1 per savepoint."""
        return self._depth

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Open a transaction, or a savepoint inside the open one.

        Commits (or releases the savepoint) on normal exit; rolls back and
        re-raises on error.

        Yields:
            The connection to run statements on.
        """
        if self._conn is not None:
            conn = self._conn
            self._depth += 1
            try:
                async with conn.begin_nested():
                    yield conn
            finally:
                self._depth -= 1
            return

        async with self._engine.connect() as conn:
            self._conn = conn
            self._depth = 1
            try:
                async with conn.begin():
                    yield conn
            finally:
                self._conn = None
                self._depth = 0

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Connection for reads.

        Inside an open transaction this is the transaction's connection, so
        reads see its uncommitted writes. Otherwise a fresh connection is
        checked out and rolled back on exit.
        """
        if self._conn is not None:
            yield self._conn
            return
        async with self._engine.connect() as conn:
            yield conn

    async def run_in_transaction(
        self, body: Callable[[AsyncConnection], Awaitable[R]]
    ) -> R:
        """Run ``body(connection)`` inside ``transaction()``.

        Args:
            body: Coroutine function receiving the transaction's connection.

        Returns:
            Whatever ``body`` returns.
        """
        async with self.transaction() as conn:
            return await body(conn)

    async def execute(
        self,
        conn: AsyncConnection,
        sql: str,
        params: Sequence[Any] = (),
    ) -> QueryResult:
        """Execute one statement with positional ``?`` parameters.

        Args:
            conn: Connection from ``transaction()`` or ``connection()``.
            sql: Statement text.
            params: Values for the placeholders, in order.

        Returns:
            QueryResult with rows for reads, counts for writes.

        Raises:
            StoreOperationError: If the engine rejects the statement.
        """
        params = tuple(params)
        logger.debug(
            "Executing SQL (%d params, %d placeholders): %s",
            len(params),
            sql.count("?"),
            " ".join(sql.split()),
        )
        async with self._lock:
            try:
                result = await conn.exec_driver_sql(sql, params)
            except sa.exc.DBAPIError as exc:
                raise StoreOperationError(
                    classify_exception(exc, sql, params)
                ) from exc

            if result.returns_rows:
                return QueryResult(
                    columns=list(result.keys()),
                    rows=[tuple(row) for row in result.all()],
                )
            return QueryResult(
                rowcount=result.rowcount,
                lastrowid=result.lastrowid,
            )
