"""Batch progress and background sync state schemas."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from logbook.schemas.importer import CredentialTier


class ImportMode(str, Enum):
    """Why a batch is being imported."""

    MANUAL = "manual"  # user picked the files (Browse / drop)
    SYNC = "sync"  # files came from the sync folder


class ItemResult(str, Enum):
    """How a single batch item was tallied."""

    IMPORTED = "imported"
    DUPLICATE = "duplicate"
    BLACKLISTED = "blacklisted"
    INVALID = "invalid"


class BatchCounts(BaseModel):
    """Per-category tallies for a batch."""

    processed: int = 0
    duplicate: int = 0
    blacklisted: int = 0
    invalid: int = 0

    def record(self, result: ItemResult) -> None:
        """Increment the counter for an item result."""
        if result == ItemResult.IMPORTED:
            self.processed += 1
        elif result == ItemResult.DUPLICATE:
            self.duplicate += 1
        elif result == ItemResult.BLACKLISTED:
            self.blacklisted += 1
        else:
            self.invalid += 1


class BatchState(BaseModel):
    """Live progress of the active batch. Never persisted."""

    mode: ImportMode
    total: int
    index: int = 0
    current_name: str | None = None
    cooldown_remaining_seconds: int = 0
    counts: BatchCounts = Field(default_factory=BatchCounts)


class BatchSummary(BaseModel):
    """Aggregated result returned when a batch finishes."""

    mode: ImportMode
    tier: CredentialTier = CredentialTier.NONE
    total: int = 0
    processed: int = 0
    duplicate: int = 0
    blacklisted: int = 0
    invalid: int = 0
    message: str = ""

    @classmethod
    def from_counts(
        cls,
        mode: ImportMode,
        tier: CredentialTier,
        total: int,
        counts: BatchCounts,
    ) -> BatchSummary:
        """Build a summary and its completion message."""
        return cls(
            mode=mode,
            tier=tier,
            total=total,
            processed=counts.processed,
            duplicate=counts.duplicate,
            blacklisted=counts.blacklisted,
            invalid=counts.invalid,
            message=completion_message(counts),
        )


def completion_message(counts: BatchCounts) -> str:
    """Human-readable completion text built from the non-zero counters."""
    parts: list[str] = []
    if counts.processed > 0:
        noun = "file" if counts.processed == 1 else "files"
        parts.append(f"{counts.processed} {noun} processed")
    if counts.duplicate > 0:
        parts.append(f"{counts.duplicate} skipped (already imported)")
    if counts.blacklisted > 0:
        parts.append(f"{counts.blacklisted} skipped (blacklisted)")
    if counts.invalid > 0:
        parts.append(f"{counts.invalid} skipped (non-DJI files)")
    if not parts:
        return "Import finished. Nothing to import."
    return f"Import finished. {', '.join(parts)}."


class BackgroundSyncPhase(str, Enum):
    """States of the startup background sync."""

    IDLE = "idle"
    WAITING = "waiting"
    SCANNING = "scanning"
    DIFFING = "diffing"
    HANDOFF = "handoff"
    ABORTED = "aborted"


class BackgroundSyncOutcome(str, Enum):
    """How the last background sync run ended."""

    NOT_RUN = "not_run"
    NO_NEW_FILES = "no_new_files"
    IMPORTED = "imported"
    ABORTED = "aborted"
    SKIPPED_BUSY = "skipped_busy"
    FAILED = "failed"


class BackgroundSyncState(BaseModel):
    """Process-lifetime state of the background sync controller."""

    has_triggered: bool = False
    abort_requested: bool = False
    result_message: str | None = None
    phase: BackgroundSyncPhase = BackgroundSyncPhase.IDLE
    outcome: BackgroundSyncOutcome = BackgroundSyncOutcome.NOT_RUN
    new_files: list[Path] = Field(default_factory=list)
    summary: BatchSummary | None = None
