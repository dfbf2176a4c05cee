"""Import backend integration."""

from logbook.remote.base import ImportBackend
from logbook.remote.client import LogbookApiClient

__all__ = [
    "ImportBackend",
    "LogbookApiClient",
]
