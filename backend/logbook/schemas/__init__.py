"""Pydantic schemas for the import pipeline."""

from logbook.schemas.batch import (
    BackgroundSyncOutcome,
    BackgroundSyncPhase,
    BackgroundSyncState,
    BatchCounts,
    BatchState,
    BatchSummary,
    ImportMode,
    ItemResult,
)
from logbook.schemas.importer import (
    CredentialTier,
    FileHandle,
    FlightSummary,
    ImportOutcome,
    ImportStatus,
    UploadedLog,
)

__all__ = [
    "BackgroundSyncOutcome",
    "BackgroundSyncPhase",
    "BackgroundSyncState",
    "BatchCounts",
    "BatchState",
    "BatchSummary",
    "CredentialTier",
    "FileHandle",
    "FlightSummary",
    "ImportMode",
    "ImportOutcome",
    "ImportStatus",
    "ItemResult",
    "UploadedLog",
]
