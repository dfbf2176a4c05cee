"""Persisted set of content hashes the user deliberately deleted.

Sync runs skip any file whose hash is listed here; a manual import of the
same file removes it again.
"""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from logbook.core.logging import get_logger
from logbook.services.settings import BLACKLIST_KEY, KeyValueStore

logger = get_logger(__name__)


class BlacklistStore:
    """Set of blacklisted content hashes backed by the key/value store.

    The set is stored as a JSON array. Missing, corrupt or non-list data
    reads as an empty set, and failed writes are logged; callers never see
    a persistence error.
    """

    def __init__(self, store: KeyValueStore, key: str = BLACKLIST_KEY):
        self.store = store
        self.key = key
        self._lock = asyncio.Lock()

    async def _load(self) -> set[str]:
        raw: Any = await self.store.get(self.key)
        if raw is None:
            return set()
        if not isinstance(raw, list):
            logger.warning("blacklist_corrupt", value_type=type(raw).__name__)
            return set()
        return {item for item in raw if isinstance(item, str) and item}

    async def _save(self, hashes: set[str]) -> bool:
        try:
            await self.store.set(self.key, sorted(hashes))
        except SQLAlchemyError as e:
            logger.error("blacklist_save_failed", size=len(hashes), error=str(e))
            return False
        return True

    async def snapshot(self) -> frozenset[str]:
        """Return the current set of hashes."""
        return frozenset(await self._load())

    async def has(self, file_hash: str | None) -> bool:
        """Check whether a hash is blacklisted."""
        if not file_hash:
            return False
        return file_hash in await self._load()

    async def add(self, file_hash: str | None) -> None:
        """Blacklist a hash (called when a flight is deleted)."""
        if not file_hash:
            return
        async with self._lock:
            hashes = await self._load()
            if file_hash in hashes:
                return
            hashes.add(file_hash)
            if not await self._save(hashes):
                return
        logger.info("blacklist_added", file_hash=file_hash[:12], size=len(hashes))

    async def remove(self, file_hash: str | None) -> None:
        """Un-blacklist a hash (called after a manual import)."""
        if not file_hash:
            return
        async with self._lock:
            hashes = await self._load()
            if file_hash not in hashes:
                return
            hashes.discard(file_hash)
            if not await self._save(hashes):
                return
        logger.info("blacklist_removed", file_hash=file_hash[:12], size=len(hashes))

    async def clear(self) -> None:
        """Drop every entry."""
        async with self._lock:
            try:
                await self.store.delete(self.key)
            except SQLAlchemyError as e:
                logger.error("blacklist_clear_failed", error=str(e))
                return
        logger.info("blacklist_cleared")

    async def size(self) -> int:
        """Number of blacklisted hashes."""
        return len(await self._load())
