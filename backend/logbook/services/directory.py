"""Sync folder listing and supported-extension filtering."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import aiofiles.os

from logbook.core.logging import get_logger
from logbook.schemas.importer import FileHandle
from logbook.services.exceptions import DirectoryReadError
from logbook.utils.file_hash import handle_name

logger = get_logger(__name__)

# Display names longer than this are truncated in progress output
SHORT_NAME_LENGTH = 50


def normalize_extensions(extensions: Iterable[str]) -> frozenset[str]:
    """Lowercase extensions and make sure each starts with a dot."""
    normalized = set()
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.add(ext if ext.startswith(".") else f".{ext}")
    return frozenset(normalized)


def is_supported(handle: FileHandle, extensions: Iterable[str]) -> bool:
    """Check a path or upload name against an extension allowlist (case-insensitive)."""
    suffix = Path(handle_name(handle)).suffix.lower()
    return bool(suffix) and suffix in normalize_extensions(extensions)


def filter_supported(
    handles: Iterable[FileHandle],
    extensions: Sequence[str],
) -> list[FileHandle]:
    """Keep only handles with a supported extension, preserving order."""
    allowed = normalize_extensions(extensions)
    return [h for h in handles if Path(handle_name(h)).suffix.lower() in allowed]


def short_name(handle: FileHandle) -> str:
    """File name for progress display, truncated with an ellipsis."""
    name = handle_name(handle)
    if len(name) > SHORT_NAME_LENGTH:
        return name[:SHORT_NAME_LENGTH] + "…"
    return name


async def list_directory(path: Path | str) -> list[Path]:
    """List regular files directly inside a directory (non-recursive).

    Returns:
        File paths sorted by name.

    Raises:
        DirectoryReadError: If the directory can't be read.
    """
    folder = Path(path)
    try:
        names = await aiofiles.os.listdir(folder)
        files = []
        for name in sorted(names):
            candidate = folder / name
            if await aiofiles.os.path.isfile(candidate):
                files.append(candidate)
    except OSError as e:
        logger.warning("directory_read_failed", path=str(folder), error=str(e))
        raise DirectoryReadError(str(folder), str(e)) from e

    logger.debug("directory_listed", path=str(folder), file_count=len(files))
    return files


async def list_supported_files(path: Path | str, extensions: Sequence[str]) -> list[Path]:
    """List files in a folder that match an extension allowlist.

    Raises:
        DirectoryReadError: If the directory can't be read.
    """
    files = await list_directory(path)
    return [f for f in files if is_supported(f, extensions)]
