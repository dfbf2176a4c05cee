"""Import pipeline services.

Only leaf modules are re-exported here; import the orchestrator, the sync
controllers and the importer facade from their own modules.
"""

from logbook.services.blacklist import BlacklistStore
from logbook.services.cancellation import CancellationToken
from logbook.services.cooldown import CooldownPolicy
from logbook.services.events import Event, EventBroadcaster, EventType
from logbook.services.exceptions import (
    BackendUnavailableError,
    BatchInProgressError,
    BatchLeaseError,
    BlacklistedFileError,
    DirectoryReadError,
    DuplicateImportError,
    HashComputationError,
    ImportPipelineError,
    InvalidLogFileError,
    SyncFolderNotConfiguredError,
    SyncUnavailableError,
)
from logbook.services.settings import ImportPreferences, KeyValueStore

__all__ = [
    "BackendUnavailableError",
    "BatchInProgressError",
    "BatchLeaseError",
    "BlacklistStore",
    "BlacklistedFileError",
    "CancellationToken",
    "CooldownPolicy",
    "DirectoryReadError",
    "DuplicateImportError",
    "Event",
    "EventBroadcaster",
    "EventType",
    "HashComputationError",
    "ImportPipelineError",
    "ImportPreferences",
    "InvalidLogFileError",
    "KeyValueStore",
    "SyncFolderNotConfiguredError",
    "SyncUnavailableError",
]
