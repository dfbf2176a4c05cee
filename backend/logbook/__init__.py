"""Flight log import orchestration."""

__version__ = "0.3.0"
