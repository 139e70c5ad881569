"""Durable blob storage for database snapshots.

A blob store keeps opaque byte strings addressed by a logical store name
and a key. The profile store uses one fixed store name and its own
instance name as the key.

Two implementations are provided:
- MemoryBlobStore: process-local dict, for tests and ephemeral use
- DirectoryBlobStore: one file per key under ``<root>/<store_name>/``
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


@runtime_checkable
class BlobStore(Protocol):
    """Async key/value byte storage."""

    async def get(self, store_name: str, key: str) -> bytes | None:
        """Return the blob stored under ``key``, or None if absent."""
        ...

    async def put(self, store_name: str, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``, replacing any previous blob."""
        ...

    async def delete(self, store_name: str, key: str) -> None:
        """Remove the blob under ``key``. Deleting a missing key is a no-op."""
        ...


class MemoryBlobStore:
    """Blob store backed by a dict."""

    def __init__(self) -> None:
        self._blobs: dict[tuple[str, str], bytes] = {}

    async def get(self, store_name: str, key: str) -> bytes | None:
        return self._blobs.get((store_name, key))

    async def put(self, store_name: str, key: str, data: bytes) -> None:
        self._blobs[(store_name, key)] = bytes(data)

    async def delete(self, store_name: str, key: str) -> None:
        self._blobs.pop((store_name, key), None)

    def keys(self, store_name: str) -> list[str]:
        return sorted(k for s, k in self._blobs if s == store_name)


class DirectoryBlobStore:
    """Blob store keeping one file per key on local disk.

    Writes go to a temporary sibling file which is then renamed over the
    target, so a crash mid-write never leaves a truncated snapshot behind.

    Example::

        blobs = DirectoryBlobStore(Path("~/.profiles").expanduser())
        await blobs.put("SQLiteDatabases", "user_database", data)
    """

    suffix = ".blob"

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, store_name: str, key: str) -> Path:
        """Get the file path for a blob.

        Raises:
            ValueError: If the store name or key is not a plain file name.
        """
        for part in (store_name, key):
            if not _SAFE_NAME_RE.match(part) or part in (".", ".."):
                raise ValueError(f"Invalid blob name: {part!r}")
        return self._root / store_name / f"{key}{self.suffix}"

    async def get(self, store_name: str, key: str) -> bytes | None:
        path = self.path_for(store_name, key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None

    async def put(self, store_name: str, key: str, data: bytes) -> None:
        path = self.path_for(store_name, key)
        await asyncio.to_thread(self._write_atomic, path, bytes(data))
        logger.debug("Wrote %d bytes to %s", len(data), path)

    async def delete(self, store_name: str, key: str) -> None:
        path = self.path_for(store_name, key)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
