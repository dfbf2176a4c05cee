"""Database package for the preferences store."""

from logbook.db.base import Base
from logbook.db.session import async_session_maker, engine, init_db

__all__ = [
    "Base",
    "async_session_maker",
    "engine",
    "init_db",
]
