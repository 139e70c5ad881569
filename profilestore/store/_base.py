"""ProfileStoreBase - Lifecycle, persistence and engine ownership."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from typing_extensions import Self

from profilestore.blobstore import BlobStore, MemoryBlobStore
from profilestore.compression import pack_snapshot, unpack_snapshot
from profilestore.config import StoreConfig
from profilestore.database import create_engine_from_image, export_image
from profilestore.errors import NotInitializedError, ProfileStoreError
from profilestore.store._transactions import TransactionCoordinator

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class ProfileStoreBase:
    """Core engine ownership and persistence for ProfileStore.

    The store owns one in-memory database image at a time. ``initialize()``
    loads the image from the blob store (or starts empty), ``save()``
    snapshots it back, and ``close()`` saves and releases the engine.

    Example::

        async with ProfileStore.open(config, blob_store) as store:
            user_id = await store.create(Profile(user_name="alice"))
            page = await store.query({"search_text": "ali"})

        store = ProfileStore(config, blob_store)
        await store.initialize()
        try:
            ...
        finally:
            await store.close()
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        blob_store: BlobStore | None = None,
    ) -> None:
        """Initialize with a configuration and a blob store.

        Args:
            config: Store settings; defaults to ``StoreConfig()``.
            blob_store: Where snapshots live; defaults to a fresh
                MemoryBlobStore.
        """
        self._config = config or StoreConfig()
        self._blob_store: BlobStore = (
            blob_store if blob_store is not None else MemoryBlobStore()
        )
        self._engine: AsyncEngine | None = None
        self._tx_coordinator: TransactionCoordinator | None = None

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        config: StoreConfig | None = None,
        blob_store: BlobStore | None = None,
    ) -> AsyncIterator[Self]:
        """Initialize a store and close it (persisting) on every exit path.

        Args:
            config: Store settings.
            blob_store: Where snapshots live.

        Yields:
            An initialized store.
        """
        store = cls(config, blob_store)
        await store.initialize()
        try:
            yield store
        finally:
            await store.close()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def blob_store(self) -> BlobStore:
        return self._blob_store

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def _tx(self) -> TransactionCoordinator:
        """The live transaction coordinator.

        Raises:
            NotInitializedError: If there is no open engine.
        """
        if self._tx_coordinator is None:
            raise NotInitializedError(self.name)
        return self._tx_coordinator

    # --- Lifecycle ---

    async def initialize(self, image: bytes | None = None) -> None:
        """Open the database and make sure the schema exists.

        Args:
            image: A SQLite image (raw or zstd-packed) to load instead of
                the blob store's snapshot.
        """
        if self._engine is not None:
            return

        if image is None:
            blob = await self._blob_store.get(
                self._config.blob_store_name, self.name
            )
            if blob is not None:
                image = unpack_snapshot(blob)
                logger.info("Loaded existing database '%s' from blob store", self.name)
            else:
                logger.info("Created new database '%s'", self.name)
        else:
            image = unpack_snapshot(image)
            logger.info("Loaded database '%s' from supplied image", self.name)

        self._open_engine(image)
        try:
            await self.ensure_schema()  # type: ignore[attr-defined]
        except BaseException:
            await self._release_engine()
            raise

    async def save(self) -> None:
        """Snapshot the current image to the blob store."""
        image = await self.export_image()
        blob = pack_snapshot(image, level=self._config.compression_level)
        await self._blob_store.put(self._config.blob_store_name, self.name, blob)
        logger.info(
            "Saved database '%s' (%d bytes, %d packed)",
            self.name,
            len(image),
            len(blob),
        )

    async def close(self) -> None:
        """Save the image and release the engine.

        The engine is released even if saving fails. Closing a store that is
        not initialized does nothing.

        Raises:
            ProfileStoreError: If a transaction is open; the store stays
                usable so the transaction can finish.
        """
        if self._engine is None:
            return
        self._check_no_transaction("close")
        try:
            await self.save()
        finally:
            await self._release_engine()

    async def export_image(self) -> bytes:
        """Return the full database image as bytes.

        Raises:
            ProfileStoreError: If a transaction is open.
        """
        self._check_no_transaction("export")
        async with self._tx.connection() as conn:
            return await export_image(conn)

    def _check_no_transaction(self, operation: str) -> None:
        # The online backup never completes while the connection holds an
        # open transaction.
        if self._tx.active:
            raise ProfileStoreError(
                f"cannot {operation} database '{self.name}' inside an open transaction"
            )

    # --- Engine management ---

    def _open_engine(self, image: bytes | None = None) -> None:
        self._engine = create_engine_from_image(image, echo=self._config.echo)
        self._tx_coordinator = TransactionCoordinator(self._engine)

    async def _release_engine(self) -> None:
        engine = self._engine
        self._engine = None
        self._tx_coordinator = None
        if engine is not None:
            await engine.dispose()
