"""Single-record and batch write operations for ProfileStore."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from profilestore._dates import utc_now
from profilestore.errors import (
    ClassifiedError,
    ErrorKind,
    StoreOperationError,
    normalize_params,
)
from profilestore.models import COLUMNS, INSERT_COLUMNS, TABLE_NAME
from profilestore.store._types import (
    Profile,
    ProfileUpdate,
    profile_from_row,
    profile_to_row,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncConnection

    from profilestore.store._transactions import TransactionCoordinator

logger = logging.getLogger(__name__)

_INSERT_SQL = (
    f"INSERT INTO {TABLE_NAME} ({', '.join(INSERT_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in INSERT_COLUMNS)})"
)
_SELECT_SQL = f"SELECT {', '.join(COLUMNS)} FROM {TABLE_NAME}"


def _prepare_for_insert(profile: Profile | Mapping[str, Any]) -> Profile:
    """Validate a new record and fill in its timestamps.

    A missing creation or update time defaults to now; an update time
    earlier than the creation time is raised to the creation time.
    """
    if not isinstance(profile, Profile):
        profile = Profile.model_validate(dict(profile))
    now = utc_now()
    created_at = profile.created_at or now
    updated_at = profile.updated_at or now
    if updated_at < created_at:
        updated_at = created_at
    return profile.model_copy(
        update={"id": None, "created_at": created_at, "updated_at": updated_at}
    )


class RecordMixin:
    """Profile create, read, update and delete operations."""

    _tx: TransactionCoordinator

    async def _insert(self, conn: AsyncConnection, profile: Profile) -> int | None:
        params = profile_to_row(profile, INSERT_COLUMNS)
        result = await self._tx.execute(conn, _INSERT_SQL, params)
        return result.lastrowid or None

    # --- Create ---

    async def create(
        self, profile: Profile | Mapping[str, Any]
    ) -> int | ClassifiedError:
        """Insert one profile.

        Engine failures are returned, not raised, so batch callers can
        inspect a bad record and keep going.

        Args:
            profile: The record to insert. Its ``id`` is ignored.

        Returns:
            The new profile id, or a ClassifiedError describing why the
            insert failed.

        Raises:
            NotInitializedError: If the store is not initialized.
        """
        record = _prepare_for_insert(profile)
        tx = self._tx
        try:
            async with tx.transaction() as conn:
                new_id = await self._insert(conn, record)
        except StoreOperationError as exc:
            exc.error.details["record"] = record.model_dump(mode="json")
            return exc.error

        if new_id is None:
            logger.warning("Insert into %s returned no row id", TABLE_NAME)
            params = profile_to_row(record, INSERT_COLUMNS)
            return ClassifiedError(
                kind=ErrorKind.INSERTION_WITHOUT_ID,
                message="Insert operation completed but no row ID was returned",
                details={
                    "sql": _INSERT_SQL,
                    "params": normalize_params(params),
                    "record": record.model_dump(mode="json"),
                },
            )
        return new_id

    async def create_many(
        self, profiles: Iterable[Profile | Mapping[str, Any]]
    ) -> int:
        """Insert many profiles atomically.

        Args:
            profiles: Records to insert.

        Returns:
            Number of rows written.

        Raises:
            StoreOperationError: If any insert fails; nothing is written.
        """
        records = [_prepare_for_insert(p) for p in profiles]
        if not records:
            return 0

        written = 0
        async with self._tx.transaction() as conn:
            for record in records:
                params = profile_to_row(record, INSERT_COLUMNS)
                result = await self._tx.execute(conn, _INSERT_SQL, params)
                written += result.rowcount
        return written

    # --- Read ---

    async def _get_one(self, column: str, value: Any) -> Profile | None:
        async with self._tx.connection() as conn:
            result = await self._tx.execute(
                conn, f"{_SELECT_SQL} WHERE {column} = ? LIMIT 1", (value,)
            )
        row = result.first()
        if row is None:
            return None
        return profile_from_row(result.columns, row)

    async def get(self, profile_id: int) -> Profile | None:
        """Get a profile by id, or None if it does not exist."""
        return await self._get_one("id", profile_id)

    async def get_by_external_id(self, original_id: int) -> Profile | None:
        """Get the first profile with the given caller-supplied id."""
        return await self._get_one("original_id", original_id)

    async def get_by_name(self, user_name: str) -> Profile | None:
        """Get the first profile with exactly this user name."""
        return await self._get_one("user_name", user_name)

    # --- Update ---

    async def update(
        self, profile_id: int, changes: ProfileUpdate | Mapping[str, Any]
    ) -> bool:
        """Apply a partial update to one profile.

        Only fields present in ``changes`` are written; the update
        timestamp is always refreshed to the engine's current time, or to
        the creation time if that lies in the future. An empty patch does
        nothing and returns False.

        Args:
            profile_id: Id of the profile to update.
            changes: ProfileUpdate, or a mapping of field names to values.

        Returns:
            True if a row was updated.

        Raises:
            StoreOperationError: If the engine rejects the update.
        """
        if not isinstance(changes, ProfileUpdate):
            changes = ProfileUpdate.model_validate(dict(changes))
        values = changes.changes()
        if not values:
            return False

        assignments = [f"{column} = ?" for column in values]
        # Both sides use the same text format, so MAX compares them in time.
        assignments.append("updated_at = MAX(created_at, CURRENT_TIMESTAMP)")
        sql = f"UPDATE {TABLE_NAME} SET {', '.join(assignments)} WHERE id = ?"
        params = [*values.values(), profile_id]

        async with self._tx.transaction() as conn:
            result = await self._tx.execute(conn, sql, params)
        return result.rowcount > 0

    # --- Delete ---

    async def delete(self, profile_id: int) -> bool:
        """Delete one profile. Its id is never reused.

        Returns:
            True if a row was deleted.
        """
        async with self._tx.transaction() as conn:
            result = await self._tx.execute(
                conn, f"DELETE FROM {TABLE_NAME} WHERE id = ?", (profile_id,)
            )
        return result.rowcount > 0
