"""Tests for ManualSyncController."""

from __future__ import annotations

import hashlib

import pytest

from logbook.schemas.batch import BackgroundSyncOutcome, ImportMode
from logbook.services.background_sync import BackgroundSyncController
from logbook.services.events import EventBroadcaster, EventType
from logbook.services.exceptions import (
    DirectoryReadError,
    SyncFolderNotConfiguredError,
    SyncUnavailableError,
)
from logbook.services.manual_sync import ManualSyncController, no_files_message
from logbook.services.orchestrator import BatchImportOrchestrator


@pytest.fixture
def orchestrator(backend, blacklist):
    return BatchImportOrchestrator(backend, blacklist)


@pytest.fixture
def background(orchestrator, backend, blacklist, preferences):
    return BackgroundSyncController(
        orchestrator,
        backend,
        blacklist,
        preferences,
        delay=30,
        notice_seconds=0,
        filesystem_access=True,
    )


@pytest.fixture
def events():
    return EventBroadcaster()


@pytest.fixture
def manual_sync(orchestrator, preferences, background, events):
    return ManualSyncController(
        orchestrator, preferences, background, events=events, filesystem_access=True
    )


class TestManualSync:
    """Tests for the on-demand folder sync."""

    @pytest.mark.asyncio
    async def test_imports_full_listing(self, manual_sync, preferences, backend, logs_dir, make_log):
        """Test that every .txt file goes to the orchestrator undiffed."""
        make_log("a.txt")
        make_log("b.txt")
        make_log("skip.dat")
        await preferences.set_sync_folder(logs_dir)

        summary = await manual_sync.sync()

        assert summary.mode == ImportMode.SYNC
        assert summary.processed == 2
        assert backend.import_calls == ["a.txt", "b.txt"]
        assert manual_sync.last_message == "Import finished. 2 files processed."
        assert manual_sync.is_scanning is False

    @pytest.mark.asyncio
    async def test_already_imported_files_reach_backend(
        self, manual_sync, preferences, backend, logs_dir, make_log
    ):
        """Test that duplicates are left to the backend rather than pre-filtered."""
        make_log("a.txt")
        await preferences.set_sync_folder(logs_dir)
        await manual_sync.sync()

        summary = await manual_sync.sync()

        assert backend.import_calls == ["a.txt", "a.txt"]
        assert summary.duplicate == 1

    @pytest.mark.asyncio
    async def test_blacklisted_files_skipped(
        self, manual_sync, preferences, backend, blacklist, logs_dir, make_log
    ):
        """Test that the orchestrator's blacklist pre-check applies."""
        deleted = make_log("deleted.txt")
        await blacklist.add(hashlib.sha256(deleted.read_bytes()).hexdigest())
        await preferences.set_sync_folder(logs_dir)

        summary = await manual_sync.sync()

        assert summary.blacklisted == 1
        assert backend.import_calls == []

    @pytest.mark.asyncio
    async def test_no_files(self, manual_sync, preferences, backend, logs_dir):
        """Test an empty sync folder."""
        await preferences.set_sync_folder(logs_dir)

        assert await manual_sync.sync() is None
        assert manual_sync.last_message == "No .txt files found in sync folder."
        assert backend.tier_calls == 0

    def test_no_files_message(self):
        assert no_files_message([".txt"]) == "No .txt files found in sync folder."

    @pytest.mark.asyncio
    async def test_no_sync_folder(self, manual_sync):
        """Test that a missing sync folder is reported."""
        with pytest.raises(SyncFolderNotConfiguredError) as exc_info:
            await manual_sync.sync()

        assert exc_info.value.code == "NO_SYNC_FOLDER"

    @pytest.mark.asyncio
    async def test_unavailable_without_filesystem(self, orchestrator, preferences, background):
        """Test that web mode refuses to sync."""
        controller = ManualSyncController(
            orchestrator, preferences, background, filesystem_access=False
        )

        with pytest.raises(SyncUnavailableError):
            await controller.sync()

    @pytest.mark.asyncio
    async def test_scan_failure_surfaced(self, manual_sync, preferences, events, tmp_path):
        """Test that an unreadable folder is raised and broadcast."""
        await preferences.set_sync_folder(tmp_path / "gone")

        async with events.subscribe() as queue:
            with pytest.raises(DirectoryReadError):
                await manual_sync.sync()
            event = queue.get_nowait()

        assert event.type == EventType.SYNC_FAILED
        assert manual_sync.last_message.startswith("Sync failed:")
        assert manual_sync.is_scanning is False

    @pytest.mark.asyncio
    async def test_cancels_background_sync(
        self, manual_sync, background, preferences, backend, logs_dir, make_log
    ):
        """Test that a manual sync preempts the startup scan."""
        make_log("a.txt")
        await preferences.set_sync_folder(logs_dir)
        assert await background.trigger() is True

        await manual_sync.sync()
        await background.wait()

        assert background.state.abort_requested is True
        assert background.state.outcome == BackgroundSyncOutcome.ABORTED
        assert backend.import_calls == ["a.txt"]
