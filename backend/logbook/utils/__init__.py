"""Utility functions for the import pipeline."""

from logbook.utils.file_hash import (
    compute_file_hash,
    compute_file_hash_sync,
    handle_name,
    hash_file_or_raise,
)

__all__ = [
    "compute_file_hash",
    "compute_file_hash_sync",
    "handle_name",
    "hash_file_or_raise",
]
