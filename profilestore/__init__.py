"""
Embedded user profile store.

This package keeps user profile records in an in-memory SQLite database
and persists the whole database image to a pluggable blob store.

Typical use::

    from profilestore import Profile, ProfileStore, StoreConfig

    async with ProfileStore.open(StoreConfig(name="crm")) as store:
        await store.create(Profile(user_name="alice"))
"""

from profilestore.blobstore import BlobStore, DirectoryBlobStore, MemoryBlobStore
from profilestore.config import StoreConfig
from profilestore.errors import (
    ClassifiedError,
    ErrorKind,
    NotInitializedError,
    ProfileStoreError,
    StoreOperationError,
    classify_engine_error,
)
from profilestore.store import (
    Page,
    Profile,
    ProfileFilter,
    ProfileStatistics,
    ProfileStore,
    ProfileUpdate,
)

__all__ = [
    "BlobStore",
    "ClassifiedError",
    "DirectoryBlobStore",
    "ErrorKind",
    "MemoryBlobStore",
    "NotInitializedError",
    "Page",
    "Profile",
    "ProfileFilter",
    "ProfileStatistics",
    "ProfileStore",
    "ProfileStoreError",
    "ProfileUpdate",
    "StoreConfig",
    "StoreOperationError",
    "classify_engine_error",
]
