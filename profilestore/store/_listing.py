"""Listing and paginated query operations for ProfileStore."""

from __future__ import annotations

from typing import TYPE_CHECKING

from profilestore.models import COLUMNS, TABLE_NAME
from profilestore.store._query import (
    build_where,
    validate_sort_field,
    validate_sort_order,
)
from profilestore.store._types import FilterLike, Page, Profile, profile_from_row

if TYPE_CHECKING:
    from profilestore.store._transactions import TransactionCoordinator


class ListingMixin:
    """Read-only multi-row retrieval."""

    _tx: TransactionCoordinator

    async def list_all(self) -> list[Profile]:
        """All profiles ordered by user name."""
        async with self._tx.connection() as conn:
            result = await self._tx.execute(
                conn,
                f"SELECT {', '.join(COLUMNS)} FROM {TABLE_NAME} "
                f"ORDER BY user_name ASC, id ASC",
            )
        return [profile_from_row(result.columns, row) for row in result.rows]

    async def query(
        self,
        filters: FilterLike = None,
        page: int = 1,
        page_size: int = 10,
        sort_field: str = "user_name",
        sort_order: str = "ASC",
    ) -> Page[Profile]:
        """Query profiles with filters, sorting and pagination.

        The total is counted with the same WHERE clause as the page data,
        so it covers every page, not just this one.

        Args:
            filters: Predicate set (ProfileFilter or mapping).
            page: 1-indexed page number.
            page_size: Maximum number of records per page.
            sort_field: Column to sort by. Unknown names fall back to
                ``user_name``.
            sort_order: "ASC" or "DESC" (anything else means ASC).

        Returns:
            Page of Profile instances.

        Raises:
            ValueError: If page or page_size is less than 1.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        where = build_where(filters)
        field = validate_sort_field(sort_field)
        order = validate_sort_order(sort_order)
        offset = (page - 1) * page_size

        async with self._tx.connection() as conn:
            count = await self._tx.execute(
                conn,
                f"SELECT COUNT(*) FROM {TABLE_NAME} {where.sql}",
                where.params,
            )
            data = await self._tx.execute(
                conn,
                f"SELECT {', '.join(COLUMNS)} FROM {TABLE_NAME} {where.sql} "
                f"ORDER BY {field} {order}, id ASC LIMIT ? OFFSET ?",
                (*where.params, page_size, offset),
            )

        return Page(
            items=[profile_from_row(data.columns, row) for row in data.rows],
            total=count.scalar(0),
            page=page,
            page_size=page_size,
        )
