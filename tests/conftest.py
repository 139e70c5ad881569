"""Shared fixtures for profile store tests."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from profilestore import (
    DirectoryBlobStore,
    MemoryBlobStore,
    Profile,
    ProfileStore,
    StoreConfig,
)


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    """A fresh in-memory blob store."""
    return MemoryBlobStore()


@pytest.fixture
def blob_dir(tmp_path: Path) -> Path:
    """Directory holding on-disk snapshots for one test."""
    path = tmp_path / "blobs"
    path.mkdir()
    return path


@pytest.fixture
def directory_blob_store(blob_dir: Path) -> DirectoryBlobStore:
    return DirectoryBlobStore(blob_dir)


@pytest.fixture
def config() -> StoreConfig:
    return StoreConfig(name="test_profiles")


@pytest.fixture
async def store(
    config: StoreConfig, blob_store: MemoryBlobStore
) -> AsyncGenerator[ProfileStore, None]:
    """An initialized, empty store that is closed after the test."""
    store = ProfileStore(config, blob_store)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def sample_profiles(now: datetime) -> list[Profile]:
    """Ten profiles: three verified, two business, varied follower counts.

    ``alice`` and ``bob`` are the only verified accounts created more than
    a week ago; ``frank`` logged in today.
    """
    old = now - timedelta(days=30)
    return [
        Profile(
            original_id=101,
            user_name="alice",
            full_name="Alice Archer",
            is_verified=True,
            followers=500,
            following=10,
            city="Berlin",
            created_at=old,
            date_of_birth=datetime(1990, 5, 1).date(),
        ),
        Profile(
            original_id=102,
            user_name="bob",
            full_name="Bob Baker",
            is_verified=True,
            is_business=True,
            followers=1500,
            following=20,
            city="Paris",
            created_at=old,
        ),
        Profile(
            original_id=103,
            user_name="carol",
            full_name="Carol Cooper",
            is_verified=True,
            followers=50,
            following=300,
            city="Berlin",
        ),
        Profile(original_id=104, user_name="dave", full_name="Dave Dyer", followers=10),
        Profile(original_id=105, user_name="erin", full_name="Erin Evans", followers=20),
        Profile(
            original_id=106,
            user_name="frank",
            full_name="Frank Fisher",
            followers=30,
            last_login_at=now,
        ),
        Profile(
            original_id=107,
            user_name="grace",
            full_name="Grace Green",
            is_business=True,
            followers=40,
        ),
        Profile(original_id=108, user_name="heidi", full_name="Heidi Hall", followers=60),
        Profile(original_id=109, user_name="ivan", full_name="Ivan Irwin", followers=70),
        Profile(original_id=110, user_name="judy", full_name="Judy Jones", followers=80),
    ]


@pytest.fixture
async def populated_store(
    store: ProfileStore, sample_profiles: list[Profile]
) -> ProfileStore:
    """The ``store`` fixture with ``sample_profiles`` inserted."""
    written = await store.create_many(sample_profiles)
    assert written == len(sample_profiles)
    return store
