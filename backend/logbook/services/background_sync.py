"""Startup background sync of the sync folder.

Runs at most once per process: after a short delay it lists the sync
folder, hashes each candidate, and hands any file that is neither
already imported nor blacklisted to the orchestrator as a sync batch.

Any user action (Browse, Sync, drag-and-drop) cancels it. Cancellation
is cooperative and is only noticed between steps; a hash or import that
has already started runs to completion.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from logbook.core.config import settings
from logbook.core.logging import get_logger
from logbook.remote.base import ImportBackend
from logbook.schemas.batch import (
    BackgroundSyncOutcome,
    BackgroundSyncPhase,
    BackgroundSyncState,
    ImportMode,
)
from logbook.services.blacklist import BlacklistStore
from logbook.services.cancellation import CancellationToken
from logbook.services.directory import list_supported_files
from logbook.services.events import EventBroadcaster, EventType
from logbook.services.exceptions import HashComputationError
from logbook.services.orchestrator import BatchImportOrchestrator, Hasher
from logbook.services.settings import ImportPreferences
from logbook.utils.file_hash import hash_file_or_raise

logger = get_logger(__name__)

Lister = Callable[[Path, Sequence[str]], Awaitable[list[Path]]]


def found_files_message(count: int) -> str:
    """Transient notice shown before new files are imported."""
    noun = "file" if count == 1 else "files"
    return f"Found {count} new {noun}. Importing..."


class BackgroundSyncController:
    """Owns the one-shot startup scan and its cancellation flag."""

    def __init__(
        self,
        orchestrator: BatchImportOrchestrator,
        backend: ImportBackend,
        blacklist: BlacklistStore,
        preferences: ImportPreferences,
        *,
        is_busy: Callable[[], bool] | None = None,
        events: EventBroadcaster | None = None,
        hasher: Hasher | None = None,
        lister: Lister | None = None,
        delay: float | None = None,
        notice_seconds: float | None = None,
        filesystem_access: bool | None = None,
        extensions: Sequence[str] | None = None,
    ):
        """Initialize the controller.

        Args:
            orchestrator: Receives the new files as a sync batch.
            backend: Source of the already-imported hashes.
            blacklist: Hashes the user deleted on purpose.
            preferences: Sync folder and autoscan preferences.
            is_busy: Reports whether a user-initiated import is running
                (defaults to the orchestrator's batch slot).
            events: Optional status broadcaster.
            hasher: Content hasher.
            lister: Folder lister filtered by extension.
            delay: Seconds to wait before scanning.
            notice_seconds: How long the "found N files" notice shows.
            filesystem_access: Whether the folder can be scanned at all.
            extensions: Extension allowlist for the sync folder.
        """
        self.orchestrator = orchestrator
        self.backend = backend
        self.blacklist = blacklist
        self.preferences = preferences
        self._is_busy = is_busy or (lambda: orchestrator.is_busy)
        self._events = events
        self._hasher = hasher or hash_file_or_raise
        self._lister = lister or list_supported_files
        self.delay = settings.background_sync_delay if delay is None else delay
        self.notice_seconds = (
            settings.background_sync_notice_seconds if notice_seconds is None else notice_seconds
        )
        self.filesystem_access = (
            settings.filesystem_access if filesystem_access is None else filesystem_access
        )
        self.extensions = list(extensions or settings.sync_extensions)

        self.state = BackgroundSyncState()
        self._token = CancellationToken("background_sync")
        self._task: asyncio.Task | None = None
        self._delay_elapsed = False
        self._trigger_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """Whether a scheduled run hasn't finished yet."""
        return self._task is not None and not self._task.done()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def trigger(self) -> bool:
        """Schedule the startup scan if it hasn't run and is allowed to.

        Returns:
            True if a run was scheduled.
        """
        async with self._trigger_lock:
            if self.state.has_triggered:
                logger.debug("background_sync_already_triggered")
                return False

            if not self.filesystem_access:
                logger.debug("background_sync_unavailable")
                return False

            folder = await self.preferences.get_sync_folder()
            if folder is None:
                logger.debug("background_sync_no_folder")
                return False

            if not await self.preferences.get_autoscan_enabled():
                logger.debug("background_sync_autoscan_disabled")
                return False

            self.state.has_triggered = True
            self.state.abort_requested = False
            self._token.reset()
            self._task = asyncio.create_task(self._run(folder))

        logger.info("background_sync_scheduled", folder=str(folder), delay=self.delay)
        return True

    def cancel(self) -> None:
        """Ask a running scan to stop and clear its status message."""
        self._token.cancel("user_action")
        self.state.abort_requested = True
        self.state.result_message = None

        if not self.is_running:
            return

        # Still in the start delay: drop the scheduled run outright
        if not self._delay_elapsed:
            self._task.cancel()
        self.state.phase = BackgroundSyncPhase.IDLE
        self.state.outcome = BackgroundSyncOutcome.ABORTED

    def reset(self) -> None:
        """Clear run state so the controller reads as fresh.

        has_triggered survives: the scan still runs once per process.
        """
        self._token.reset()
        self.state.abort_requested = False
        self.state.result_message = None
        self.state.phase = BackgroundSyncPhase.IDLE
        self.state.outcome = BackgroundSyncOutcome.NOT_RUN
        self.state.new_files = []
        self.state.summary = None

    async def wait(self) -> None:
        """Wait for the scheduled run, if any, to finish."""
        if self._task is not None:
            await asyncio.wait({self._task})

    # =========================================================================
    # Run
    # =========================================================================

    async def _run(self, folder: Path) -> None:
        try:
            await self._execute(folder)
        except asyncio.CancelledError:
            logger.info("background_sync_cancelled_while_waiting")
            self.state.outcome = BackgroundSyncOutcome.ABORTED
            raise
        except Exception as e:
            # Background runs degrade silently
            logger.error("background_sync_failed", folder=str(folder), error=str(e), exc_info=True)
            self.state.outcome = BackgroundSyncOutcome.FAILED
            self.state.result_message = None
        finally:
            self.state.phase = BackgroundSyncPhase.IDLE
            await self._emit_status()

    async def _execute(self, folder: Path) -> None:
        await self._enter(BackgroundSyncPhase.WAITING)
        await asyncio.sleep(self.delay)
        self._delay_elapsed = True

        if self._is_busy():
            logger.info("background_sync_skipped_busy")
            self.state.outcome = BackgroundSyncOutcome.SKIPPED_BUSY
            return
        if self._aborted():
            return

        await self._enter(BackgroundSyncPhase.SCANNING)
        candidates = await self._lister(folder, self.extensions)
        if self._aborted():
            return
        if not candidates:
            self.state.outcome = BackgroundSyncOutcome.NO_NEW_FILES
            logger.info("background_sync_no_candidates", folder=str(folder))
            return

        await self._enter(BackgroundSyncPhase.DIFFING)
        new_files = await self._diff(candidates)
        if new_files is None:
            return
        self.state.new_files = new_files
        if not new_files:
            self.state.outcome = BackgroundSyncOutcome.NO_NEW_FILES
            logger.info("background_sync_no_new_files", candidates=len(candidates))
            return

        await self._enter(BackgroundSyncPhase.HANDOFF)
        self.state.result_message = found_files_message(len(new_files))
        await self._emit_status()
        await asyncio.sleep(self.notice_seconds)
        if self._aborted():
            return

        lease = self.orchestrator.try_acquire()
        if lease is None:
            logger.info("background_sync_skipped_busy", new_files=len(new_files))
            self.state.outcome = BackgroundSyncOutcome.SKIPPED_BUSY
            self.state.result_message = None
            return

        self.state.result_message = None
        logger.info("background_sync_handoff", new_files=len(new_files))
        summary = await self.orchestrator.process_batch(new_files, ImportMode.SYNC, lease=lease)
        self.state.summary = summary
        self.state.outcome = BackgroundSyncOutcome.IMPORTED

    async def _diff(self, candidates: list[Path]) -> list[Path] | None:
        """Keep candidates that are neither imported nor blacklisted.

        Returns:
            The new files, or None if the run was aborted.
        """
        flights = await self.backend.list_flights()
        imported = {f.file_hash for f in flights if f.file_hash}
        blacklisted = await self.blacklist.snapshot()

        new_files: list[Path] = []
        for path in candidates:
            try:
                file_hash = await self._hasher(path)
            except (HashComputationError, OSError) as e:
                logger.debug("background_sync_hash_failed", path=str(path), error=str(e))
                file_hash = None
            if self._aborted():
                return None
            if not file_hash or file_hash in imported or file_hash in blacklisted:
                continue
            new_files.append(path)
        return new_files

    def _aborted(self) -> bool:
        if not self._token.cancelled:
            return False
        logger.info("background_sync_aborted", phase=self.state.phase.value)
        self.state.phase = BackgroundSyncPhase.ABORTED
        self.state.outcome = BackgroundSyncOutcome.ABORTED
        self.state.result_message = None
        return True

    async def _enter(self, phase: BackgroundSyncPhase) -> None:
        self.state.phase = phase
        await self._emit_status()

    async def _emit_status(self) -> None:
        if self._events is None:
            return
        await self._events.broadcast(
            EventType.BACKGROUND_SYNC_STATUS,
            {
                "phase": self.state.phase.value,
                "outcome": self.state.outcome.value,
                "message": self.state.result_message,
            },
        )
