"""Zstd packing for database snapshots.

Snapshots handed to the blob store are zstd-compressed SQLite images.
SQLite pages compress well (free space and repeated keys in indexes), and
zstd keeps both directions fast enough to snapshot on every close.

Loading accepts either a zstd frame or a raw SQLite image, so bytes
produced by ``export_image()`` can be fed straight back in.
"""

from __future__ import annotations

import zstandard as zstd

# Default compression level (3 is a good balance of speed/ratio)
DEFAULT_COMPRESSION_LEVEL = 3

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
SQLITE_MAGIC = b"SQLite format 3\x00"


def compress(data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress data using zstd.

    Args:
        data: The data to compress.
        level: Compression level (1-22, default 3).

    Returns:
        Compressed data bytes.
    """
    return zstd.ZstdCompressor(level=level).compress(data)


def decompress(data: bytes) -> bytes:
    """Decompress a zstd frame produced by :func:`compress`."""
    return zstd.ZstdDecompressor().decompress(data)


def pack_snapshot(image: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    return compress(image, level=level)


def unpack_snapshot(blob: bytes) -> bytes:
    """Turn a stored blob back into a SQLite image.

    Args:
        blob: Either a zstd-compressed image or a raw image.

    Returns:
        The raw SQLite image bytes.

    Raises:
        ValueError: If the blob is neither.
    """
    if blob.startswith(ZSTD_MAGIC):
        return decompress(blob)
    if blob.startswith(SQLITE_MAGIC):
        return blob
    raise ValueError("Snapshot is neither a zstd frame nor a SQLite image")
