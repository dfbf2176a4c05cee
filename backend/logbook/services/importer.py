"""User-facing import surface.

Wires the orchestrator, both sync controllers and the blacklist together
and exposes the three import triggers (Browse, Sync, startup autoscan)
plus flight deletion, which feeds the blacklist.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from logbook.core.config import settings
from logbook.core.logging import get_logger
from logbook.remote.base import ImportBackend
from logbook.schemas.batch import BatchSummary, ImportMode
from logbook.schemas.importer import FileHandle, FlightSummary
from logbook.services.background_sync import BackgroundSyncController, Lister
from logbook.services.blacklist import BlacklistStore
from logbook.services.directory import filter_supported
from logbook.services.events import EventBroadcaster, EventType
from logbook.services.manual_sync import ManualSyncController
from logbook.services.orchestrator import BatchImportOrchestrator, CooldownFactory, Hasher
from logbook.services.settings import ImportPreferences, KeyValueStore

logger = get_logger(__name__)


class FlightImporter:
    """Facade over the import pipeline.

    Usage:
        importer = FlightImporter(LogbookApiClient(), KeyValueStore())
        await importer.start_autoscan()
        summary = await importer.browse([Path("DJIFlightRecord.txt")])
    """

    def __init__(
        self,
        backend: ImportBackend,
        store: KeyValueStore,
        *,
        events: EventBroadcaster | None = None,
        hasher: Hasher | None = None,
        lister: Lister | None = None,
        cooldown_factory: CooldownFactory | None = None,
        background_delay: float | None = None,
        notice_seconds: float | None = None,
        filesystem_access: bool | None = None,
        manual_extensions: Sequence[str] | None = None,
        sync_extensions: Sequence[str] | None = None,
    ):
        """Initialize the importer.

        Args:
            backend: Import backend collaborator.
            store: Key/value store for the blacklist and preferences.
            events: Progress broadcaster (a private one is created if omitted).
            hasher: Content hasher override.
            lister: Sync folder lister override.
            cooldown_factory: Cooldown policy override.
            background_delay: Delay before the startup scan.
            notice_seconds: How long the "found N files" notice shows.
            filesystem_access: Whether sync folder features are available.
            manual_extensions: Allowlist for Browse and drag-and-drop.
            sync_extensions: Allowlist for sync folder scans.
        """
        self.backend = backend
        self.events = events or EventBroadcaster()
        self.blacklist = BlacklistStore(store)
        self.preferences = ImportPreferences(store)
        self.manual_extensions = list(manual_extensions or settings.manual_extensions)
        self.flights: list[FlightSummary] = []

        self.orchestrator = BatchImportOrchestrator(
            backend,
            self.blacklist,
            refresh=self.refresh_flights,
            events=self.events,
            hasher=hasher,
            cooldown_factory=cooldown_factory,
        )
        self.background = BackgroundSyncController(
            self.orchestrator,
            backend,
            self.blacklist,
            self.preferences,
            is_busy=lambda: self.is_busy,
            events=self.events,
            hasher=hasher,
            lister=lister,
            delay=background_delay,
            notice_seconds=notice_seconds,
            filesystem_access=filesystem_access,
            extensions=sync_extensions,
        )
        self.manual_sync = ManualSyncController(
            self.orchestrator,
            self.preferences,
            self.background,
            lister=lister,
            events=self.events,
            filesystem_access=filesystem_access,
            extensions=sync_extensions,
        )

    @property
    def is_busy(self) -> bool:
        """Whether a batch or a manual folder scan is running."""
        return self.orchestrator.is_busy or self.manual_sync.is_scanning

    # =========================================================================
    # Triggers
    # =========================================================================

    async def browse(self, files: Iterable[FileHandle]) -> BatchSummary | None:
        """Import user-selected files (Browse or drag-and-drop).

        Unsupported extensions are dropped before the batch starts.

        Returns:
            The batch summary, or None if nothing supported was selected.

        Raises:
            BatchInProgressError: If another batch is running.
        """
        self.background.cancel()

        selected = list(files)
        supported = filter_supported(selected, self.manual_extensions)
        if not supported:
            logger.info("browse_nothing_supported", selected=len(selected))
            return None
        if len(supported) < len(selected):
            logger.debug("browse_filtered", selected=len(selected), supported=len(supported))

        return await self.orchestrator.process_batch(supported, ImportMode.MANUAL)

    async def sync(self) -> BatchSummary | None:
        """Import the sync folder now."""
        return await self.manual_sync.sync()

    async def start_autoscan(self) -> bool:
        """Schedule the one-shot startup scan."""
        return await self.background.trigger()

    # =========================================================================
    # Library
    # =========================================================================

    async def refresh_flights(self) -> list[FlightSummary]:
        """Reload the imported-flight list from the backend."""
        self.flights = await self.backend.list_flights()
        logger.debug("flights_refreshed", count=len(self.flights))
        return self.flights

    async def delete_flight(self, flight: FlightSummary) -> bool:
        """Delete a flight and blacklist its source file.

        The hash is blacklisted first so a sync that runs while the delete
        is in flight can't bring the file back.
        """
        if flight.file_hash:
            await self.blacklist.add(flight.file_hash)

        deleted = await self.backend.delete_flight(flight.id)
        logger.info("flight_deleted", flight_id=flight.id, deleted=deleted)

        await self.refresh_flights()
        await self.events.broadcast(
            EventType.FLIGHT_DELETED,
            {"flight_id": flight.id, "file_hash": flight.file_hash},
        )
        return deleted

    async def clear_blacklist(self) -> None:
        """Allow every previously deleted file to be synced again."""
        await self.blacklist.clear()

    async def blacklist_size(self) -> int:
        return await self.blacklist.size()

    async def aclose(self) -> None:
        """Stop the startup scan and wait for pending refreshes."""
        self.background.cancel()
        await self.background.wait()
        await self.orchestrator.wait_for_refreshes()
