"""Schema management for ProfileStore."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from profilestore.errors import (
    ProfileStoreError,
    StoreOperationError,
    classify_exception,
)
from profilestore.models import TABLE_NAME, User

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from profilestore.blobstore import BlobStore
    from profilestore.config import StoreConfig
    from profilestore.store._transactions import TransactionCoordinator

logger = logging.getLogger(__name__)


def _create_table_and_indexes(sync_conn: Connection) -> None:
    table = User.__table__  # type: ignore[attr-defined]
    table.create(sync_conn, checkfirst=True)
    # A table loaded from an older image may lack some indexes.
    for index in table.indexes:
        index.create(sync_conn, checkfirst=True)


class SchemaMixin:
    """Table and index lifecycle."""

    _config: StoreConfig
    _blob_store: BlobStore
    _tx: TransactionCoordinator

    async def ensure_schema(self) -> None:
        """Create the users table and its indexes if they do not exist.

        Safe to call on a fresh or an already-initialized image. Columns
        listed in ``StoreConfig.unique_columns`` also get a UNIQUE index.

        Raises:
            StoreOperationError: If the engine rejects the DDL.
        """
        async with self._tx.transaction() as conn:
            try:
                await conn.run_sync(_create_table_and_indexes)
            except sa.exc.DBAPIError as exc:
                raise StoreOperationError(
                    classify_exception(exc, exc.statement or "", exc.params)
                ) from exc
            for column in self._config.unique_columns:
                # Column names are validated against the table by StoreConfig.
                await self._tx.execute(
                    conn,
                    f"CREATE UNIQUE INDEX IF NOT EXISTS "
                    f"uq_{TABLE_NAME}_{column} ON {TABLE_NAME} ({column})",
                )

    async def drop_schema(self) -> bool:
        """Drop the users table, delete the snapshot and start a blank image.

        Permanently removes all profile data. Failures are logged and
        reported as False rather than raised. The snapshot is deleted
        first: if that fails, the live table is left untouched. If the drop
        itself fails, the snapshot is gone but the live image still holds
        the table, and the next save writes it back.

        Returns:
            True if everything succeeded, False otherwise.

        Raises:
            NotInitializedError: If the store is not initialized.
        """
        tx = self._tx
        try:
            if tx.active:
                raise ProfileStoreError("cannot drop the table inside an open transaction")
            await self._blob_store.delete(self._config.blob_store_name, self._config.name)
            async with tx.transaction() as conn:
                await tx.execute(conn, f"DROP TABLE IF EXISTS {TABLE_NAME}")
            await self._release_engine()  # type: ignore[attr-defined]
            self._open_engine()  # type: ignore[attr-defined]
        except Exception:
            logger.exception("Failed to drop table '%s'", TABLE_NAME)
            return False
        logger.info("Dropped table '%s' and deleted snapshot", TABLE_NAME)
        return True

    async def verify_table_exists(self) -> bool:
        """Check whether the users table exists in the current image."""
        async with self._tx.connection() as conn:
            result = await self._tx.execute(
                conn,
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
                (TABLE_NAME,),
            )
        return bool(result.rows)

    async def table_info(self) -> dict[str, Any]:
        """Describe the users table for debugging.

        Returns:
            Dict with ``columns`` (name, type, notnull, default, pk) and
            ``indexes`` (name, unique) lists.
        """
        async with self._tx.connection() as conn:
            columns = await self._tx.execute(conn, f"PRAGMA table_info({TABLE_NAME})")
            indexes = await self._tx.execute(conn, f"PRAGMA index_list({TABLE_NAME})")
        return {
            "columns": [
                {
                    "name": row[1],
                    "type": row[2],
                    "notnull": bool(row[3]),
                    "default": row[4],
                    "pk": bool(row[5]),
                }
                for row in columns.rows
            ],
            "indexes": [
                {"name": row[1], "unique": bool(row[2])} for row in indexes.rows
            ],
        }
