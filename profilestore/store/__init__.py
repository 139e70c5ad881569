"""ProfileStore - Embedded user profile store.

This package provides a standalone class for all profile database
operations over an in-memory SQLite image that is persisted to a blob
store on demand.

The ProfileStore handles:
- Schema creation and teardown
- Profile create/read/update/delete and atomic batch inserts
- Filtered, sorted, paginated queries
- Filtered aggregate statistics
- Duplicate removal
- Image export and snapshot persistence
"""

from profilestore.store._base import ProfileStoreBase
from profilestore.store._dedup import DeduplicationMixin
from profilestore.store._listing import ListingMixin
from profilestore.store._query import (
    SORTABLE_FIELDS,
    WhereClause,
    build_where,
    validate_sort_field,
)
from profilestore.store._records import RecordMixin
from profilestore.store._schema import SchemaMixin
from profilestore.store._stats import StatisticsMixin
from profilestore.store._transactions import QueryResult, TransactionCoordinator
from profilestore.store._types import (
    Page,
    Profile,
    ProfileFilter,
    ProfileStatistics,
    ProfileUpdate,
)


class ProfileStore(
    RecordMixin,
    ListingMixin,
    StatisticsMixin,
    DeduplicationMixin,
    SchemaMixin,
    ProfileStoreBase,
):
    """Embedded store for user profile records.

    Example::

        async with ProfileStore.open(StoreConfig(name="crm")) as store:
            new_id = await store.create(Profile(user_name="alice"))
            page = await store.query({"is_verified": True}, page=1)
            stats = await store.statistics()

    Operations on one instance must not run concurrently; use one store
    per worker or serialize callers externally.
    """

    async def run_in_transaction(self, body):
        """Run ``body(connection)`` atomically; see TransactionCoordinator."""
        return await self._tx.run_in_transaction(body)

    def transaction(self):
        """Async context manager opening a transaction (or savepoint)."""
        return self._tx.transaction()


__all__ = [
    "Page",
    "Profile",
    "ProfileFilter",
    "ProfileStatistics",
    "ProfileStore",
    "ProfileUpdate",
    "QueryResult",
    "SORTABLE_FIELDS",
    "TransactionCoordinator",
    "WhereClause",
    "build_where",
    "validate_sort_field",
]
