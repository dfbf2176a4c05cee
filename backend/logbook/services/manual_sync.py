"""On-demand sync of the configured sync folder."""

from __future__ import annotations

from typing import Sequence

from logbook.core.config import settings
from logbook.core.logging import get_logger
from logbook.schemas.batch import BatchSummary, ImportMode
from logbook.services.background_sync import BackgroundSyncController, Lister
from logbook.services.directory import list_supported_files
from logbook.services.events import EventBroadcaster, EventType
from logbook.services.exceptions import (
    DirectoryReadError,
    SyncFolderNotConfiguredError,
    SyncUnavailableError,
)
from logbook.services.orchestrator import BatchImportOrchestrator
from logbook.services.settings import ImportPreferences

logger = get_logger(__name__)


def no_files_message(extensions: Sequence[str]) -> str:
    """Message set when the sync folder has nothing to import."""
    return f"No {'/'.join(extensions)} files found in sync folder."


class ManualSyncController:
    """Imports every supported file in the sync folder when the user asks.

    Unlike the background scan, nothing is pre-filtered by "already
    imported": the whole listing goes to the orchestrator, which checks the
    blacklist, and the backend rejects duplicates itself. Scan failures are
    raised to the caller.
    """

    def __init__(
        self,
        orchestrator: BatchImportOrchestrator,
        preferences: ImportPreferences,
        background: BackgroundSyncController,
        *,
        lister: Lister | None = None,
        events: EventBroadcaster | None = None,
        filesystem_access: bool | None = None,
        extensions: Sequence[str] | None = None,
    ):
        self.orchestrator = orchestrator
        self.preferences = preferences
        self.background = background
        self._lister = lister or list_supported_files
        self._events = events
        self.filesystem_access = (
            settings.filesystem_access if filesystem_access is None else filesystem_access
        )
        self.extensions = list(extensions or settings.sync_extensions)

        self.is_scanning = False
        self.last_message: str | None = None

    async def sync(self) -> BatchSummary | None:
        """List the sync folder and import its files.

        Returns:
            The batch summary, or None if the folder had no supported files.

        Raises:
            SyncUnavailableError: Without filesystem access.
            SyncFolderNotConfiguredError: If no sync folder is set.
            DirectoryReadError: If the folder can't be listed.
            BatchInProgressError: If another batch is running.
        """
        if not self.filesystem_access:
            raise SyncUnavailableError()

        # User intent wins over the startup scan
        self.background.cancel()

        folder = await self.preferences.get_sync_folder()
        if folder is None:
            raise SyncFolderNotConfiguredError()

        self.is_scanning = True
        self.last_message = None
        try:
            files = await self._lister(folder, self.extensions)
        except DirectoryReadError as e:
            logger.error("manual_sync_scan_failed", folder=str(folder), error=e.message)
            self.last_message = f"Sync failed: {e.message}"
            if self._events is not None:
                await self._events.broadcast(
                    EventType.SYNC_FAILED, {"folder": str(folder), "error": e.message}
                )
            raise
        finally:
            self.is_scanning = False

        if not files:
            self.last_message = no_files_message(self.extensions)
            logger.info("manual_sync_no_files", folder=str(folder))
            return None

        logger.info("manual_sync_started", folder=str(folder), file_count=len(files))
        summary = await self.orchestrator.process_batch(files, ImportMode.SYNC)
        self.last_message = summary.message
        return summary
