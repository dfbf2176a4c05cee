"""Schemas exchanged with the flight log import backend."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

# Wire marker the backend uses for content-hash duplicates
ALREADY_IMPORTED_MARKER = "already been imported"
PARSE_FAILURE_PREFIX = "failed to parse"


class CredentialTier(str, Enum):
    """Kind of decoding credential configured on the backend."""

    NONE = "none"
    DEFAULT = "default"
    PERSONAL = "personal"

    @classmethod
    def parse(cls, value: Any) -> CredentialTier:
        """Parse a backend value, treating anything unknown as NONE."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.NONE


class ImportStatus(str, Enum):
    """Tagged result of a single backend import."""

    IMPORTED = "imported"
    ALREADY_IMPORTED = "already_imported"
    INVALID_FORMAT = "invalid_format"
    OTHER = "other"


class UploadedLog(BaseModel):
    """In-memory log file (browser upload or drag-and-drop blob)."""

    model_config = ConfigDict(frozen=True)

    name: str
    content: bytes = Field(repr=False)


# A candidate source: a filesystem path or an in-memory blob
FileHandle = Union[Path, str, UploadedLog]


class ImportOutcome(BaseModel):
    """Result of one import call."""

    status: ImportStatus
    message: str = ""
    file_hash: str | None = None
    flight_id: int | None = None
    point_count: int = 0

    @property
    def success(self) -> bool:
        """Whether the log was imported."""
        return self.status == ImportStatus.IMPORTED

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ImportOutcome:
        """Build a tagged outcome from the backend's JSON payload.

        The backend reports duplicates only through its message text, so
        this is the one place that inspects it.
        """
        message = str(payload.get("message") or "")
        lowered = message.lower()
        if payload.get("success"):
            status = ImportStatus.IMPORTED
        elif ALREADY_IMPORTED_MARKER in lowered:
            status = ImportStatus.ALREADY_IMPORTED
        elif lowered.startswith(PARSE_FAILURE_PREFIX):
            status = ImportStatus.INVALID_FORMAT
        else:
            status = ImportStatus.OTHER

        return cls(
            status=status,
            message=message,
            file_hash=payload.get("fileHash") or None,
            flight_id=payload.get("flightId"),
            point_count=payload.get("pointCount") or 0,
        )


class FlightSummary(BaseModel):
    """Imported flight as listed by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    file_name: str = Field(default="", alias="fileName")
    display_name: str | None = Field(default=None, alias="displayName")
    file_hash: str | None = Field(default=None, alias="fileHash")
