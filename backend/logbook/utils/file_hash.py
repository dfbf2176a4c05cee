"""Content hashing for import deduplication.

Provides stream-based SHA-256 hash computation to avoid loading entire
flight logs into memory. The digest matches the one the import backend
stores for each flight.
"""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

from logbook.core.config import settings
from logbook.schemas.importer import FileHandle, UploadedLog
from logbook.services.exceptions import HashComputationError


def compute_file_hash_sync(
    file_path: Path,
    chunk_size: int | None = None,
) -> str:
    """Compute SHA-256 hash of a file synchronously (stream-based).

    Args:
        file_path: Path to the file to hash.
        chunk_size: Size of chunks to read at a time (default
            settings.hash_chunk_size).

    Returns:
        64-character lowercase hex string of the SHA-256 hash.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        PermissionError: If the file can't be read.
    """
    chunk_size = chunk_size or settings.hash_chunk_size
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


async def compute_file_hash(
    file_path: Path,
    chunk_size: int | None = None,
) -> str:
    """Compute SHA-256 hash of a file asynchronously (stream-based).

    Runs the hash computation in a thread pool executor to avoid blocking
    the event loop during I/O.

    Args:
        file_path: Path to the file to hash.
        chunk_size: Size of chunks to read at a time (default
            settings.hash_chunk_size).

    Returns:
        64-character lowercase hex string of the SHA-256 hash.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        PermissionError: If the file can't be read.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        compute_file_hash_sync,
        file_path,
        chunk_size,
    )


def handle_name(handle: FileHandle) -> str:
    """Return the file name of a path or in-memory upload."""
    if isinstance(handle, UploadedLog):
        return handle.name
    return Path(handle).name


async def hash_file_or_raise(
    handle: FileHandle,
    chunk_size: int | None = None,
) -> str:
    """Hash a path or in-memory upload.

    Raises:
        HashComputationError: If the file can't be read.
    """
    if isinstance(handle, UploadedLog):
        return hashlib.sha256(handle.content).hexdigest()
    try:
        return await compute_file_hash(Path(handle), chunk_size)
    except (OSError, ValueError) as e:
        raise HashComputationError(handle_name(handle), str(e)) from e
