"""Exceptions for the import pipeline.

Duplicate, blacklisted and invalid files are tallied rather than raised;
their classes exist so every failure category has a stable code.
"""

from __future__ import annotations

from pathlib import Path


class ImportPipelineError(Exception):
    """Base exception for import pipeline errors."""

    def __init__(self, message: str, code: str = "IMPORT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class DuplicateImportError(ImportPipelineError):
    """The backend already holds a log with the same content."""

    def __init__(self, message: str = "File has already been imported"):
        super().__init__(message, "DUPLICATE_IMPORT")


class BlacklistedFileError(ImportPipelineError):
    """The file's content hash was deliberately removed by the user."""

    def __init__(self, file_hash: str):
        self.file_hash = file_hash
        super().__init__(f"File {file_hash[:12]} is blacklisted", "BLACKLISTED")


class InvalidLogFileError(ImportPipelineError):
    """The backend could not decode the file."""

    def __init__(self, message: str = "Unsupported or corrupt flight log"):
        super().__init__(message, "INVALID_FILE")


class HashComputationError(ImportPipelineError):
    """A content hash could not be computed."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Could not hash {name}: {reason}", "HASH_FAILED")


class DirectoryReadError(ImportPipelineError):
    """A folder could not be listed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not read folder {path}: {reason}", "DIRECTORY_READ_FAILED")


class BackendUnavailableError(ImportPipelineError):
    """The import backend could not be reached or answered with an error."""

    def __init__(self, message: str = "Import backend is unavailable", status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, "BACKEND_UNAVAILABLE")


class BatchInProgressError(ImportPipelineError):
    """Another batch already holds the import lease."""

    def __init__(self, message: str = "An import batch is already running"):
        super().__init__(message, "BATCH_IN_PROGRESS")


class BatchLeaseError(ImportPipelineError):
    """A lease passed to process_batch is released or not the active one."""

    def __init__(self, message: str = "Batch lease is not active"):
        super().__init__(message, "INVALID_LEASE")


class SyncFolderNotConfiguredError(ImportPipelineError):
    """Sync was requested but no sync folder is set."""

    def __init__(self, message: str = "No sync folder configured"):
        super().__init__(message, "NO_SYNC_FOLDER")


class SyncUnavailableError(ImportPipelineError):
    """Sync needs direct filesystem access (desktop mode)."""

    def __init__(self, message: str = "Sync feature is only available in the desktop app"):
        super().__init__(message, "SYNC_UNAVAILABLE")
