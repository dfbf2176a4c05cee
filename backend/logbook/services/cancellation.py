"""Cooperative cancellation flag."""

from __future__ import annotations

from logbook.core.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Flag checked by long-running work at its own safe points.

    Setting it never interrupts work already in flight (a hash being
    computed or an import call); the owner notices at its next check.
    """

    def __init__(self, name: str = "task"):
        self.name = name
        self._cancelled = False
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        logger.info("cancellation_requested", token=self.name, reason=reason)

    def reset(self) -> None:
        """Clear the flag for a new run."""
        self._cancelled = False
        self._reason = None
