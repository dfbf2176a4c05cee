"""Key/value preference storage for the import pipeline."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from logbook.core.logging import get_logger
from logbook.db.models import AppSetting

logger = get_logger(__name__)

T = TypeVar("T")

# Persisted keys
SYNC_FOLDER_KEY = "syncFolderPath"
BLACKLIST_KEY = "importBlacklist"
AUTOSCAN_KEY = "autoscanEnabled"


class KeyValueStore:
    """JSON values stored in the app_settings table.

    Every call runs in its own committed transaction, so each write is
    atomic on its own. Missing or malformed values read as the default.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None):
        """Initialize the store.

        Args:
            session_maker: Session factory (defaults to the app database).
        """
        if session_maker is None:
            from logbook.db.session import async_session_maker

            session_maker = async_session_maker
        self._session_maker = session_maker

    async def get(self, key: str, default: T | None = None) -> Any | T | None:
        """Get a decoded value, or default when missing or corrupt."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(AppSetting.value).where(AppSetting.key == key)
                )
                raw = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("setting_read_failed", key=key, error=str(e))
            return default

        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("invalid_setting_json", key=key)
            return default

    async def set(self, key: str, value: Any) -> None:
        """JSON-encode and upsert a value."""
        json_value = json.dumps(value)
        async with self._session_maker() as db:
            setting = await db.get(AppSetting, key)
            if setting is not None:
                setting.value = json_value
            else:
                db.add(AppSetting(key=key, value=json_value))
            await db.commit()

        logger.debug("setting_updated", key=key, value_type=type(value).__name__)

    async def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if the key existed.
        """
        async with self._session_maker() as db:
            result = await db.execute(delete(AppSetting).where(AppSetting.key == key))
            await db.commit()
        deleted = bool(result.rowcount)
        if deleted:
            logger.debug("setting_deleted", key=key)
        return deleted


class ImportPreferences:
    """Sync folder and autoscan preferences."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_sync_folder(self) -> Path | None:
        """Get the configured sync folder, if any."""
        value = await self.store.get(SYNC_FOLDER_KEY)
        if not isinstance(value, str) or not value.strip():
            return None
        return Path(value)

    async def set_sync_folder(self, path: Path | str | None) -> None:
        """Set the sync folder; None clears it."""
        if path:
            await self.store.set(SYNC_FOLDER_KEY, str(path))
            logger.info("sync_folder_set", path=str(path))
        else:
            await self.store.delete(SYNC_FOLDER_KEY)
            logger.info("sync_folder_cleared")

    async def get_autoscan_enabled(self) -> bool:
        """Whether startup autoscan is enabled (default True)."""
        value = await self.store.get(AUTOSCAN_KEY)
        if value is False:
            return False
        if isinstance(value, str) and value.strip().lower() == "false":
            return False
        return True

    async def set_autoscan_enabled(self, enabled: bool) -> None:
        """Enable or disable startup autoscan."""
        await self.store.set(AUTOSCAN_KEY, bool(enabled))
