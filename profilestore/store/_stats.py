"""Aggregate statistics for ProfileStore."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from profilestore._dates import encode_timestamp, utc_now
from profilestore.errors import ProfileStoreError
from profilestore.models import TABLE_NAME
from profilestore.store._query import WhereClause, build_where
from profilestore.store._types import FilterLike, ProfileStatistics

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncConnection

    from profilestore.store._transactions import QueryResult, TransactionCoordinator

logger = logging.getLogger(__name__)


class StatisticsMixin:
    """Filtered aggregate counts."""

    _tx: TransactionCoordinator

    async def _aggregate(
        self, conn: AsyncConnection, select: str, where: WhereClause
    ) -> QueryResult:
        return await self._tx.execute(
            conn, f"SELECT {select} FROM {TABLE_NAME} {where.sql}", where.params
        )

    async def statistics(self, filters: FilterLike = None) -> ProfileStatistics:
        """Compute statistics over the profiles matching ``filters``.

        The sub-queries share one base WHERE clause and are issued
        together; each adds at most one condition of its own.

        Args:
            filters: Predicate set (ProfileFilter or mapping).

        Returns:
            ProfileStatistics for the matching profiles.

        Raises:
            ProfileStoreError: If a write transaction is open.
        """
        if self._tx.active:
            raise ProfileStoreError(
                "statistics cannot run inside an open write transaction"
            )

        base = build_where(filters)
        now = utc_now()
        start_of_day = now.replace(hour=0, minute=0, second=0)
        week_ago = now - timedelta(days=7)

        async with self._tx.connection() as conn:
            try:
                (
                    total,
                    verified,
                    business,
                    followers,
                    active_today,
                    new_this_week,
                ) = await asyncio.gather(
                    self._aggregate(conn, "COUNT(*)", base),
                    self._aggregate(conn, "COUNT(*)", base.and_("is_verified = ?", 1)),
                    self._aggregate(conn, "COUNT(*)", base.and_("is_business = ?", 1)),
                    self._aggregate(
                        conn,
                        "AVG(followers), MAX(followers), MIN(followers)",
                        base,
                    ),
                    self._aggregate(
                        conn,
                        "COUNT(*)",
                        base.and_("last_login_at >= ?", encode_timestamp(start_of_day)),
                    ),
                    self._aggregate(
                        conn,
                        "COUNT(*)",
                        base.and_("created_at >= ?", encode_timestamp(week_ago)),
                    ),
                )
            except Exception:
                logger.exception(
                    "Profile statistics query failed (where=%r, params=%r)",
                    base.sql,
                    base.params,
                )
                raise

        avg, high, low = followers.first() or (None, None, None)
        return ProfileStatistics(
            total=total.scalar(0),
            verified_count=verified.scalar(0),
            business_count=business.scalar(0),
            avg_followers=float(avg or 0),
            max_followers=_int(high),
            min_followers=_int(low),
            active_today=active_today.scalar(0),
            new_this_week=new_this_week.scalar(0),
        )


def _int(value: Any) -> int:
    return int(value) if value is not None else 0
