"""Tests for BackgroundSyncController."""

from __future__ import annotations

import hashlib

import pytest

from logbook.schemas.batch import BackgroundSyncOutcome, BackgroundSyncPhase
from logbook.schemas.importer import FlightSummary
from logbook.services.background_sync import BackgroundSyncController, found_files_message
from logbook.services.directory import list_supported_files
from logbook.services.events import EventBroadcaster, EventType
from logbook.services.exceptions import DirectoryReadError, HashComputationError
from logbook.services.orchestrator import BatchImportOrchestrator
from logbook.utils.file_hash import hash_file_or_raise


# =============================================================================
# Fixtures
# =============================================================================


class CountingLister:
    """Lister that records calls and can run a hook after listing."""

    def __init__(self):
        self.calls = 0
        self.after_list = None

    async def __call__(self, folder, extensions):
        self.calls += 1
        files = await list_supported_files(folder, extensions)
        if self.after_list is not None:
            self.after_list()
        return files


@pytest.fixture
def lister():
    return CountingLister()


@pytest.fixture
def orchestrator(backend, blacklist):
    return BatchImportOrchestrator(backend, blacklist)


@pytest.fixture
async def configured(preferences, logs_dir):
    """Preferences with the sync folder set and autoscan on."""
    await preferences.set_sync_folder(logs_dir)
    return preferences


@pytest.fixture
def make_controller(orchestrator, backend, blacklist, preferences, lister):
    def _make(**overrides) -> BackgroundSyncController:
        options = {
            "lister": lister,
            "delay": 0,
            "notice_seconds": 0,
            "filesystem_access": True,
        }
        options.update(overrides)
        return BackgroundSyncController(orchestrator, backend, blacklist, preferences, **options)

    return _make


def sha256_of(path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


# =============================================================================
# Trigger guard
# =============================================================================


class TestTrigger:
    """Tests for the once-per-process trigger and its preconditions."""

    @pytest.mark.asyncio
    async def test_trigger_twice_scans_once(self, configured, make_controller, lister, make_log):
        """Test that a second trigger does nothing."""
        make_log("a.txt")
        controller = make_controller()

        assert await controller.trigger() is True
        assert await controller.trigger() is False
        await controller.wait()
        assert await controller.trigger() is False

        assert lister.calls == 1
        assert controller.state.has_triggered is True

    @pytest.mark.asyncio
    async def test_no_sync_folder(self, preferences, make_controller, lister):
        """Test that a missing sync folder keeps the controller idle."""
        controller = make_controller()

        assert await controller.trigger() is False
        assert controller.state.phase == BackgroundSyncPhase.IDLE
        assert controller.state.has_triggered is False
        assert lister.calls == 0

    @pytest.mark.asyncio
    async def test_autoscan_disabled(self, configured, make_controller):
        """Test that disabled autoscan prevents the run."""
        await configured.set_autoscan_enabled(False)
        controller = make_controller()

        assert await controller.trigger() is False
        assert controller.state.has_triggered is False

    @pytest.mark.asyncio
    async def test_no_filesystem_access(self, configured, make_controller):
        """Test that web mode never scans."""
        controller = make_controller(filesystem_access=False)

        assert await controller.trigger() is False

    @pytest.mark.asyncio
    async def test_enabling_autoscan_later_allows_the_run(self, configured, make_controller, lister):
        """Test that a refused trigger doesn't use up the one permitted run."""
        await configured.set_autoscan_enabled(False)
        controller = make_controller()
        assert await controller.trigger() is False

        await configured.set_autoscan_enabled(True)
        assert await controller.trigger() is True
        await controller.wait()

        assert lister.calls == 1


# =============================================================================
# Run
# =============================================================================


class TestRun:
    """Tests for the scan -> diff -> handoff pipeline."""

    @pytest.mark.asyncio
    async def test_imports_only_new_files(
        self, configured, make_controller, backend, blacklist, make_log
    ):
        """Test that imported and blacklisted files are left out."""
        new_a = make_log("a.txt")
        new_b = make_log("b.txt")
        imported = make_log("imported.txt")
        deleted = make_log("deleted.txt")
        make_log("notes.csv")
        backend.flights.append(FlightSummary(id=99, file_name="imported.txt", file_hash=sha256_of(imported)))
        await blacklist.add(sha256_of(deleted))
        controller = make_controller()

        await controller.trigger()
        await controller.wait()

        assert backend.import_calls == ["a.txt", "b.txt"]
        assert controller.state.new_files == [new_a, new_b]
        assert controller.state.outcome == BackgroundSyncOutcome.IMPORTED
        assert controller.state.summary.processed == 2
        assert controller.state.phase == BackgroundSyncPhase.IDLE
        assert controller.state.result_message is None

    @pytest.mark.asyncio
    async def test_no_new_files(self, configured, make_controller, backend, make_log):
        """Test a run where everything is already imported."""
        path = make_log("a.txt")
        backend.flights.append(FlightSummary(id=1, file_name="a.txt", file_hash=sha256_of(path)))
        controller = make_controller()

        await controller.trigger()
        await controller.wait()

        assert backend.import_calls == []
        assert controller.state.outcome == BackgroundSyncOutcome.NO_NEW_FILES

    @pytest.mark.asyncio
    async def test_empty_folder(self, configured, make_controller, backend):
        """Test a run with nothing to scan."""
        controller = make_controller()

        await controller.trigger()
        await controller.wait()

        assert controller.state.outcome == BackgroundSyncOutcome.NO_NEW_FILES
        assert backend.list_calls == 0

    @pytest.mark.asyncio
    async def test_found_notice_broadcast(self, configured, make_controller, make_log):
        """Test that the transient notice is published before handoff."""
        make_log("a.txt")
        make_log("b.txt")
        events = EventBroadcaster()
        controller = make_controller(events=events)

        async with events.subscribe() as queue:
            await controller.trigger()
            await controller.wait()
            messages = []
            while not queue.empty():
                event = queue.get_nowait()
                if event.type == EventType.BACKGROUND_SYNC_STATUS and event.payload["message"]:
                    messages.append(event.payload["message"])

        assert messages == ["Found 2 new files. Importing..."]

    def test_found_files_message_singular(self):
        assert found_files_message(1) == "Found 1 new file. Importing..."

    @pytest.mark.asyncio
    async def test_hash_failure_skips_file(self, configured, make_controller, backend, make_log):
        """Test that an unhashable file is silently left out."""
        make_log("broken.txt")
        make_log("good.txt")

        async def flaky_hasher(handle):
            if handle.name == "broken.txt":
                raise HashComputationError(handle.name, "locked")
            return await hash_file_or_raise(handle)

        controller = make_controller(hasher=flaky_hasher)

        await controller.trigger()
        await controller.wait()

        assert backend.import_calls == ["good.txt"]

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, configured, make_controller, backend, logs_dir):
        """Test that scan errors end the run quietly."""

        async def failing_lister(folder, extensions):
            raise DirectoryReadError(folder, "permission denied")

        controller = make_controller(lister=failing_lister)

        await controller.trigger()
        await controller.wait()

        assert controller.state.outcome == BackgroundSyncOutcome.FAILED
        assert controller.state.phase == BackgroundSyncPhase.IDLE
        assert backend.import_calls == []

    @pytest.mark.asyncio
    async def test_skips_when_busy(self, configured, make_controller, orchestrator, backend, lister, make_log):
        """Test that a batch already running when the delay ends wins."""
        make_log("a.txt")
        lease = orchestrator.try_acquire()
        controller = make_controller()

        await controller.trigger()
        await controller.wait()
        lease.release()

        assert controller.state.outcome == BackgroundSyncOutcome.SKIPPED_BUSY
        assert lister.calls == 0
        assert backend.import_calls == []


# =============================================================================
# Cancellation
# =============================================================================


class TestCancellation:
    """Tests for cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_while_waiting(self, configured, make_controller, lister, make_log):
        """Test that the delayed start is cancelled outright."""
        make_log("a.txt")
        controller = make_controller(delay=30)

        await controller.trigger()
        assert controller.state.phase == BackgroundSyncPhase.WAITING or controller.is_running

        controller.cancel()
        await controller.wait()

        assert controller.state.phase == BackgroundSyncPhase.IDLE
        assert controller.state.outcome == BackgroundSyncOutcome.ABORTED
        assert controller.state.abort_requested is True
        assert lister.calls == 0

    @pytest.mark.asyncio
    async def test_abort_during_scan_imports_nothing(
        self, configured, make_controller, backend, lister, make_log
    ):
        """Test that aborting before the scan completes yields no imports."""
        make_log("a.txt")
        controller = make_controller()
        lister.after_list = controller.cancel

        await controller.trigger()
        await controller.wait()

        assert backend.import_calls == []
        assert backend.list_calls == 0
        assert controller.state.outcome == BackgroundSyncOutcome.ABORTED
        assert controller.state.phase == BackgroundSyncPhase.IDLE

    @pytest.mark.asyncio
    async def test_cancel_mid_diff(self, configured, make_controller, backend, make_log):
        """Test that a user action during diffing stops the run."""
        make_log("a.txt")
        make_log("b.txt")
        make_log("c.txt")
        hashed = []
        holder = {}

        async def cancelling_hasher(handle):
            hashed.append(handle.name)
            if len(hashed) == 1:
                holder["controller"].cancel()
            return await hash_file_or_raise(handle)

        controller = make_controller(hasher=cancelling_hasher)
        holder["controller"] = controller

        await controller.trigger()
        await controller.wait()

        assert hashed == ["a.txt"]
        assert backend.import_calls == []
        assert controller.state.phase == BackgroundSyncPhase.IDLE
        assert controller.state.result_message is None

    @pytest.mark.asyncio
    async def test_reset_keeps_trigger_guard(self, configured, make_controller, make_log):
        """Test that reset clears run state but not has_triggered."""
        make_log("a.txt")
        controller = make_controller(delay=30)
        await controller.trigger()
        controller.cancel()
        await controller.wait()

        controller.reset()

        assert controller.state.abort_requested is False
        assert controller.state.outcome == BackgroundSyncOutcome.NOT_RUN
        assert controller.state.phase == BackgroundSyncPhase.IDLE
        assert controller.state.has_triggered is True
        assert await controller.trigger() is False

    @pytest.mark.asyncio
    async def test_cancel_without_run_sets_flag(self, make_controller):
        """Test that cancelling an idle controller only records the request."""
        controller = make_controller()

        controller.cancel()

        assert controller.state.abort_requested is True
        assert controller.state.outcome == BackgroundSyncOutcome.NOT_RUN
