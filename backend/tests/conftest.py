"""Pytest configuration and fixtures."""

import hashlib
import os
import tempfile
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Create a temporary directory for the default preferences database
_test_tmp_dir = tempfile.mkdtemp(prefix="logbook_test_")

# Set config paths BEFORE importing logbook modules
os.environ["LOGBOOK_CONFIG_PATH"] = _test_tmp_dir

from logbook.db.session import init_db
from logbook.schemas.importer import (
    CredentialTier,
    FlightSummary,
    ImportOutcome,
    ImportStatus,
    UploadedLog,
)
from logbook.services.blacklist import BlacklistStore
from logbook.services.settings import ImportPreferences, KeyValueStore
from logbook.utils.file_hash import handle_name


def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class FakeBackend:
    """In-memory import backend that records every call.

    Files import successfully unless an outcome is registered for their
    name in ``outcomes``.
    """

    def __init__(self, tier: CredentialTier = CredentialTier.PERSONAL):
        self.tier = tier
        self.tier_error: Exception | None = None
        self.outcomes: dict[str, ImportOutcome] = {}
        self.errors: dict[str, Exception] = {}
        self.flights: list[FlightSummary] = []
        self.import_calls: list[str] = []
        self.skip_refresh_flags: list[bool] = []
        self.tier_calls = 0
        self.list_calls = 0
        self.deleted: list[int] = []
        self._next_id = 1

    async def import_log(self, file, *, skip_refresh=True):
        name = handle_name(file)
        self.import_calls.append(name)
        self.skip_refresh_flags.append(skip_refresh)

        if name in self.errors:
            raise self.errors[name]
        if name in self.outcomes:
            return self.outcomes[name]

        content = file.content if isinstance(file, UploadedLog) else Path(file).read_bytes()
        file_hash = sha256_hex(content)
        if any(f.file_hash == file_hash for f in self.flights):
            return ImportOutcome(
                status=ImportStatus.ALREADY_IMPORTED,
                message="This flight log has already been imported",
                file_hash=file_hash,
            )

        flight = FlightSummary(id=self._next_id, file_name=name, file_hash=file_hash)
        self._next_id += 1
        self.flights.append(flight)
        return ImportOutcome(
            status=ImportStatus.IMPORTED,
            message="Imported",
            file_hash=file_hash,
            flight_id=flight.id,
            point_count=100,
        )

    async def get_credential_tier(self):
        self.tier_calls += 1
        if self.tier_error is not None:
            raise self.tier_error
        return self.tier

    async def list_flights(self):
        self.list_calls += 1
        return list(self.flights)

    async def delete_flight(self, flight_id):
        self.deleted.append(flight_id)
        before = len(self.flights)
        self.flights = [f for f in self.flights if f.id != flight_id]
        return len(self.flights) < before


class RecordingSleep:
    """Stand-in for asyncio.sleep that returns immediately."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
async def db_engine(tmp_path):
    """Create a file-backed test database with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test_logbook.db'}", echo=False, future=True
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Create a session factory bound to the test database."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def kv_store(session_maker):
    return KeyValueStore(session_maker)


@pytest.fixture
def blacklist(kv_store):
    return BlacklistStore(kv_store)


@pytest.fixture
def preferences(kv_store):
    return ImportPreferences(kv_store)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def logs_dir(tmp_path):
    """Folder used as the sync folder in tests."""
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture
def make_log(logs_dir):
    """Write a log file with the given content and return its path."""

    def _make(name: str, content: bytes | None = None) -> Path:
        path = logs_dir / name
        path.write_bytes(content if content is not None else f"log:{name}".encode())
        return path

    return _make
