"""Tests for profile create, read, update and delete.

Key behaviors tested:
- create returns the new id and fills in timestamps
- Engine failures from create are returned as classified errors
- Lookups by id, external id and name
- Partial updates touch only supplied fields and refresh updated_at
- An empty update is a no-op returning False
- Deleted ids are never handed out again
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from profilestore import (
    ClassifiedError,
    ErrorKind,
    MemoryBlobStore,
    NotInitializedError,
    Profile,
    ProfileStore,
    ProfileUpdate,
    StoreConfig,
)


class TestCreate:
    """Tests for create."""

    async def test_returns_id(self, store: ProfileStore) -> None:
        first = await store.create(Profile(user_name="alice"))
        second = await store.create({"user_name": "bob", "followers": 3})
        assert isinstance(first, int)
        assert second == first + 1

    async def test_round_trip(self, store: ProfileStore, now: datetime) -> None:
        profile = Profile(
            original_id=42,
            user_name="alice",
            full_name="Alice Archer",
            email="alice@example.com",
            is_verified=True,
            is_private=True,
            followers=12,
            last_login_at=now,
            date_of_birth=date(1991, 2, 3),
        )
        new_id = await store.create(profile)
        fetched = await store.get(new_id)

        assert fetched is not None
        assert fetched.id == new_id
        assert fetched.original_id == 42
        assert fetched.full_name == "Alice Archer"
        assert fetched.is_verified is True
        assert fetched.is_private is True
        assert fetched.is_business is False
        assert fetched.last_login_at == now
        assert fetched.date_of_birth == date(1991, 2, 3)
        assert fetched.created_at is not None
        assert fetched.created_at.tzinfo is not None

    async def test_supplied_id_ignored(self, store: ProfileStore) -> None:
        new_id = await store.create(Profile(id=999, user_name="x"))
        assert new_id != 999

    async def test_updated_before_created_is_clamped(
        self, store: ProfileStore, now: datetime
    ) -> None:
        new_id = await store.create(
            Profile(user_name="x", created_at=now, updated_at=now - timedelta(days=1))
        )
        fetched = await store.get(new_id)
        assert fetched.updated_at == fetched.created_at == now

    async def test_naive_timestamp_taken_as_utc(self, store: ProfileStore) -> None:
        new_id = await store.create(
            Profile(user_name="x", created_at=datetime(2024, 3, 1, 8, 30, 15, 999))
        )
        fetched = await store.get(new_id)
        assert fetched.created_at == datetime(2024, 3, 1, 8, 30, 15, tzinfo=timezone.utc)

    async def test_unique_violation_returned(self, blob_store: MemoryBlobStore) -> None:
        config = StoreConfig(name="uniq", unique_columns=("user_name",))
        async with ProfileStore.open(config, blob_store) as store:
            assert isinstance(await store.create(Profile(user_name="alice")), int)
            result = await store.create(Profile(user_name="alice", followers=7))

            assert isinstance(result, ClassifiedError)
            assert result.kind is ErrorKind.UNIQUE_CONSTRAINT
            assert result.column == "user_name"
            assert result.details["value"] == "alice"
            assert result.details["sql"].startswith("INSERT INTO users")
            assert result.details["record"]["followers"] == 7
            assert len(await store.list_all()) == 1

    async def test_invalid_record_rejected(self, store: ProfileStore) -> None:
        with pytest.raises(ValidationError):
            await store.create({"user_name": "x", "followers": "many"})

    async def test_not_initialized(self) -> None:
        store = ProfileStore()
        with pytest.raises(NotInitializedError):
            await store.create(Profile(user_name="x"))


class TestRead:
    """Tests for the single-record lookups."""

    async def test_get_missing(self, store: ProfileStore) -> None:
        assert await store.get(12345) is None

    async def test_get_by_external_id(self, populated_store: ProfileStore) -> None:
        profile = await populated_store.get_by_external_id(103)
        assert profile is not None
        assert profile.user_name == "carol"
        assert await populated_store.get_by_external_id(999) is None

    async def test_get_by_name_is_exact(self, populated_store: ProfileStore) -> None:
        profile = await populated_store.get_by_name("bob")
        assert profile is not None
        assert profile.original_id == 102
        assert await populated_store.get_by_name("bo") is None


class TestUpdate:
    """Tests for partial updates."""

    async def test_partial_update(self, store: ProfileStore) -> None:
        new_id = await store.create(
            Profile(
                user_name="alice",
                city="Berlin",
                followers=5,
                created_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
            )
        )
        assert await store.update(new_id, {"followers": 50, "is_verified": True})

        fetched = await store.get(new_id)
        assert fetched.followers == 50
        assert fetched.is_verified is True
        assert fetched.city == "Berlin"
        assert fetched.user_name == "alice"
        assert fetched.updated_at > fetched.created_at

    async def test_update_keeps_future_creation_order(
        self, store: ProfileStore, now: datetime
    ) -> None:
        """updated_at never falls behind a created_at that lies ahead."""
        created = now + timedelta(days=2)
        new_id = await store.create(Profile(user_name="x", created_at=created))
        assert await store.update(new_id, {"city": "Rome"})

        fetched = await store.get(new_id)
        assert fetched.city == "Rome"
        assert fetched.created_at == created
        assert fetched.updated_at >= fetched.created_at

    async def test_update_model(self, store: ProfileStore) -> None:
        new_id = await store.create(Profile(user_name="alice"))
        patch = ProfileUpdate(date_of_birth=date(2001, 9, 9))
        assert await store.update(new_id, patch)
        fetched = await store.get(new_id)
        assert fetched.date_of_birth == date(2001, 9, 9)

    async def test_empty_patch_returns_false(self, store: ProfileStore) -> None:
        new_id = await store.create(Profile(user_name="alice"))
        before = await store.get(new_id)
        assert await store.update(new_id, {}) is False
        assert await store.get(new_id) == before

    async def test_missing_id_returns_false(self, store: ProfileStore) -> None:
        assert await store.update(999, {"city": "Rome"}) is False

    async def test_non_patchable_field_rejected(self, store: ProfileStore) -> None:
        with pytest.raises(ValidationError):
            await store.update(1, {"created_at": datetime.now(timezone.utc)})


class TestDelete:
    """Tests for delete."""

    async def test_delete(self, populated_store: ProfileStore) -> None:
        profile = await populated_store.get_by_name("dave")
        assert await populated_store.delete(profile.id)
        assert await populated_store.get(profile.id) is None
        assert await populated_store.delete(profile.id) is False

    async def test_ids_not_reused(self, store: ProfileStore) -> None:
        first = await store.create(Profile(user_name="a"))
        second = await store.create(Profile(user_name="b"))
        assert await store.delete(second)
        third = await store.create(Profile(user_name="c"))
        assert third > second > first
