"""Batch import orchestration.

Feeds files one at a time to the import backend, tallies each outcome,
honours the blacklist on sync runs, spaces imports on the shared
credential and keeps the flight list fresh while the batch runs.

Only one batch may run at a time. Callers either let process_batch()
acquire the batch lease itself or acquire it up front with try_acquire()
and hand it in (the background sync does this so a manual action can't
slip in between its decision to import and the import itself).
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable

from logbook.core.logging import batch_log_context, get_logger
from logbook.remote.base import ImportBackend
from logbook.schemas.batch import (
    BatchCounts,
    BatchState,
    BatchSummary,
    ImportMode,
    ItemResult,
)
from logbook.schemas.importer import CredentialTier, FileHandle, ImportOutcome, ImportStatus
from logbook.services.blacklist import BlacklistStore
from logbook.services.cooldown import CooldownPolicy
from logbook.services.directory import short_name
from logbook.services.events import EventBroadcaster, EventType
from logbook.services.exceptions import (
    BatchInProgressError,
    BatchLeaseError,
    BlacklistedFileError,
    DuplicateImportError,
    HashComputationError,
    ImportPipelineError,
    InvalidLogFileError,
)
from logbook.utils.file_hash import hash_file_or_raise

logger = get_logger(__name__)

RefreshCallback = Callable[[], Awaitable[Any]]
Hasher = Callable[[FileHandle], Awaitable[str]]
CooldownFactory = Callable[[CredentialTier], CooldownPolicy]

REFRESHING_LABEL = "Refreshing flight list..."


class BatchLease:
    """Token proving its holder owns the single batch slot.

    Releasing is idempotent; a released lease can't be reused.
    """

    def __init__(self, owner: BatchImportOrchestrator):
        self._owner = owner
        self._released = False

    @property
    def active(self) -> bool:
        return not self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._owner._release(self)


class BatchImportOrchestrator:
    """Runs import batches against an ImportBackend."""

    def __init__(
        self,
        backend: ImportBackend,
        blacklist: BlacklistStore,
        *,
        refresh: RefreshCallback | None = None,
        events: EventBroadcaster | None = None,
        hasher: Hasher | None = None,
        cooldown_factory: CooldownFactory | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            backend: Import backend collaborator.
            blacklist: Blacklist consulted on sync runs.
            refresh: Reloads the imported-flight list.
            events: Optional progress broadcaster.
            hasher: Content hasher (default SHA-256 of the file bytes).
            cooldown_factory: Builds the cooldown policy for a credential tier.
        """
        self.backend = backend
        self.blacklist = blacklist
        self._refresh = refresh
        self._events = events
        self._hasher = hasher or hash_file_or_raise
        self._cooldown_factory = cooldown_factory or CooldownPolicy

        self._lease: BatchLease | None = None
        self._state: BatchState | None = None
        self._refresh_tasks: set[asyncio.Task] = set()
        self.last_summary: BatchSummary | None = None

    # =========================================================================
    # Batch slot
    # =========================================================================

    def try_acquire(self) -> BatchLease | None:
        """Take the batch slot, or return None if a batch is running."""
        if self._lease is not None:
            return None
        self._lease = BatchLease(self)
        return self._lease

    def _release(self, lease: BatchLease) -> None:
        if self._lease is lease:
            self._lease = None

    @property
    def is_busy(self) -> bool:
        """Whether a batch holds the slot."""
        return self._lease is not None

    @property
    def state(self) -> BatchState | None:
        """Live progress of the running batch (None when idle)."""
        return self._state

    # =========================================================================
    # Processing
    # =========================================================================

    async def process_batch(
        self,
        items: Iterable[FileHandle],
        mode: ImportMode,
        *,
        lease: BatchLease | None = None,
    ) -> BatchSummary:
        """Import files in order and return the aggregated summary.

        Args:
            items: Files to import, processed strictly in order.
            mode: MANUAL for user-picked files, SYNC for sync folder files.
            lease: Lease previously taken with try_acquire(). It is
                released when the batch ends.

        Returns:
            Summary with the four counters and a completion message.

        Raises:
            BatchInProgressError: If another batch is running.
            BatchLeaseError: If the supplied lease isn't the active one.
        """
        items = list(items)
        if not items:
            if lease is not None:
                lease.release()
            return BatchSummary.from_counts(mode, CredentialTier.NONE, 0, BatchCounts())

        if lease is None:
            lease = self.try_acquire()
            if lease is None:
                logger.info("batch_rejected_busy", mode=mode.value, item_count=len(items))
                raise BatchInProgressError()
        elif not lease.active or lease is not self._lease:
            raise BatchLeaseError()

        try:
            with batch_log_context(mode.value):
                summary = await self._run(items, mode)
        finally:
            self._state = None
            lease.release()

        self.last_summary = summary
        await self._emit(EventType.BATCH_COMPLETED, summary.model_dump(mode="json"))
        return summary

    async def _run(self, items: list[FileHandle], mode: ImportMode) -> BatchSummary:
        tier = await self._fetch_tier()
        policy = self._cooldown_factory(tier)

        # Snapshot once; only sync runs consult it
        blacklisted: frozenset[str] = frozenset()
        if mode == ImportMode.SYNC:
            blacklisted = await self.blacklist.snapshot()

        state = BatchState(mode=mode, total=len(items))
        self._state = state

        logger.info(
            "batch_started",
            mode=mode.value,
            item_count=len(items),
            tier=tier.value,
            cooldown_seconds=policy.seconds,
        )
        await self._emit(
            EventType.BATCH_STARTED,
            {"mode": mode.value, "total": len(items), "tier": tier.value},
        )

        last_index = len(items) - 1
        for index, item in enumerate(items):
            state.index = index + 1
            state.current_name = short_name(item)
            state.cooldown_remaining_seconds = 0
            await self._emit(
                EventType.BATCH_PROGRESS,
                {"index": state.index, "total": state.total, "current_name": state.current_name},
            )

            result = await self._process_item(item, mode, blacklisted)
            state.counts.record(result)
            if result != ItemResult.IMPORTED:
                continue

            if policy.should_refresh_after(state.counts.processed):
                self._schedule_refresh()
            if policy.blocks_between_items and index < last_index:
                await policy.wait(on_tick=self._on_cooldown_tick)
                state.cooldown_remaining_seconds = 0

        if state.counts.processed > 0:
            state.current_name = REFRESHING_LABEL
            await self._final_refresh()

        summary = BatchSummary.from_counts(mode, tier, len(items), state.counts)
        logger.info(
            "batch_completed",
            mode=mode.value,
            processed=summary.processed,
            duplicate=summary.duplicate,
            blacklisted=summary.blacklisted,
            invalid=summary.invalid,
        )
        return summary

    async def _process_item(
        self,
        item: FileHandle,
        mode: ImportMode,
        blacklisted: frozenset[str],
    ) -> ItemResult:
        name = short_name(item)
        try:
            await self._import_one(item, mode, blacklisted)
        except BlacklistedFileError:
            logger.debug("import_skipped_blacklisted", file_name=name)
            return ItemResult.BLACKLISTED
        except DuplicateImportError:
            logger.debug("import_skipped_duplicate", file_name=name)
            return ItemResult.DUPLICATE
        except Exception as e:
            # A failure stays with its item; automated runs stay quiet
            expected = isinstance(e, (ImportPipelineError, OSError))
            if mode == ImportMode.MANUAL:
                logger.warning(
                    "manual_import_failed",
                    file_name=name,
                    error=str(e),
                    exc_info=not expected,
                )
            else:
                logger.debug("sync_import_failed", file_name=name, error=str(e))
            return ItemResult.INVALID
        return ItemResult.IMPORTED

    async def _import_one(
        self,
        item: FileHandle,
        mode: ImportMode,
        blacklisted: frozenset[str],
    ) -> ImportOutcome:
        """Import a single item.

        Raises:
            BlacklistedFileError: Sync item whose hash is blacklisted.
            DuplicateImportError: The backend already has this file.
            InvalidLogFileError: The backend couldn't parse the file.
            BackendUnavailableError: The backend couldn't be reached.
        """
        if mode == ImportMode.SYNC and blacklisted:
            try:
                file_hash = await self._hasher(item)
            except (HashComputationError, OSError) as e:
                # Unknown hash is treated as not blacklisted
                logger.debug("blacklist_check_hash_failed", error=str(e))
                file_hash = None
            if file_hash and file_hash in blacklisted:
                raise BlacklistedFileError(file_hash)

        outcome = await self.backend.import_log(item, skip_refresh=True)
        if outcome.status == ImportStatus.ALREADY_IMPORTED:
            raise DuplicateImportError(outcome.message or "File has already been imported")
        if outcome.status != ImportStatus.IMPORTED:
            raise InvalidLogFileError(outcome.message or "Unsupported or corrupt flight log")

        if mode == ImportMode.MANUAL and outcome.file_hash:
            await self.blacklist.remove(outcome.file_hash)
        logger.debug("import_succeeded", flight_id=outcome.flight_id, point_count=outcome.point_count)
        return outcome

    async def _fetch_tier(self) -> CredentialTier:
        try:
            return await self.backend.get_credential_tier()
        except ImportPipelineError as e:
            logger.warning("credential_tier_unavailable", error=e.message)
            return CredentialTier.NONE

    async def _on_cooldown_tick(self, remaining: int) -> None:
        if self._state is not None:
            self._state.cooldown_remaining_seconds = remaining
        await self._emit(EventType.COOLDOWN_TICK, {"remaining_seconds": remaining})

    # =========================================================================
    # Flight list refresh
    # =========================================================================

    def _schedule_refresh(self) -> None:
        """Refresh in the background without holding up the batch."""
        if self._refresh is None:
            return
        task = asyncio.create_task(self._safe_refresh(final=False))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _final_refresh(self) -> None:
        if self._refresh is None:
            return
        # An earlier refresh finishing late would overwrite the final list
        await self.wait_for_refreshes()
        await self._safe_refresh(final=True)

    async def _safe_refresh(self, *, final: bool) -> None:
        try:
            await self._refresh()
        except Exception as e:
            logger.warning("flight_refresh_failed", final=final, error=str(e))
            return
        await self._emit(EventType.BATCH_REFRESH, {"final": final})

    async def wait_for_refreshes(self) -> None:
        """Wait for outstanding background refreshes."""
        if self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)

    async def _emit(self, event_type: EventType, payload: dict[str, Any]) -> None:
        if self._events is not None:
            await self._events.broadcast(event_type, payload)
