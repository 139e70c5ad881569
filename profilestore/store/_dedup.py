"""Duplicate removal for ProfileStore."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from profilestore.models import TABLE_NAME
from profilestore.store._query import validate_group_fields

if TYPE_CHECKING:
    from profilestore.store._transactions import TransactionCoordinator

logger = logging.getLogger(__name__)


def build_dedup_sql(fields: list[str], keep_oldest: bool) -> str:
    """DELETE statement removing all but one row per group.

    Rows are ranked within each group by creation time (then id, to break
    ties) or by id alone; every row ranked after the first is deleted.
    NULLs group together, as with GROUP BY.
    """
    order = "created_at ASC, id ASC" if keep_oldest else "id ASC"
    partition = ", ".join(fields)
    return (
        f"DELETE FROM {TABLE_NAME} WHERE id IN ("
        f"SELECT id FROM ("
        f"SELECT id, ROW_NUMBER() OVER (PARTITION BY {partition} ORDER BY {order}) AS rn "
        f"FROM {TABLE_NAME}"
        f") WHERE rn > 1)"
    )


class DeduplicationMixin:
    """Group-wise duplicate removal."""

    _tx: TransactionCoordinator

    async def remove_duplicates(
        self,
        fields: str | list[str] | tuple[str, ...],
        keep_oldest: bool = True,
    ) -> int:
        """Delete duplicate profiles, keeping one row per distinct key.

        Args:
            fields: Column name or names that define a duplicate.
            keep_oldest: Keep the row with the earliest ``created_at``;
                otherwise keep the row with the lowest id.

        Returns:
            Number of rows deleted.

        Raises:
            ValueError: If a field is not a known column.
            StoreOperationError: If the delete fails; nothing is deleted.
        """
        names = validate_group_fields(fields)
        sql = build_dedup_sql(names, keep_oldest)
        async with self._tx.transaction() as conn:
            result = await self._tx.execute(conn, sql)
        if result.rowcount:
            logger.info(
                "Removed %d duplicate profiles grouped by %s",
                result.rowcount,
                ", ".join(names),
            )
        return result.rowcount
