"""Contract for the flight log import backend."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from logbook.schemas.importer import CredentialTier, FileHandle, FlightSummary, ImportOutcome


@runtime_checkable
class ImportBackend(Protocol):
    """Decodes and stores flight logs.

    Implementations must tolerate strictly sequential use only; the
    orchestrator never issues concurrent import calls.
    """

    async def import_log(self, file: FileHandle, *, skip_refresh: bool = True) -> ImportOutcome:
        """Import one log and report a tagged outcome."""
        ...

    async def get_credential_tier(self) -> CredentialTier:
        """Report which kind of decoding credential is configured."""
        ...

    async def list_flights(self) -> list[FlightSummary]:
        """List imported flights (used for content-hash diffing)."""
        ...

    async def delete_flight(self, flight_id: int) -> bool:
        """Delete an imported flight."""
        ...
