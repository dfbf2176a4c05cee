"""Cooldown between backend imports.

The shared (default) decoding credential is rate limited by the remote
service, so imports on it are spaced by a fixed countdown. Personal
credentials carry their own quota and never wait.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable

from logbook.core.config import settings
from logbook.core.logging import get_logger
from logbook.schemas.importer import CredentialTier

logger = get_logger(__name__)

TickCallback = Callable[[int], Awaitable[None] | None]
SleepFunc = Callable[[float], Awaitable[None]]


class CooldownPolicy:
    """Decides whether and how long to pause between imports.

    Usage:
        policy = CooldownPolicy(CredentialTier.DEFAULT)
        if policy.applies:
            await policy.wait(on_tick=lambda remaining: ...)
    """

    def __init__(
        self,
        tier: CredentialTier,
        seconds: int | None = None,
        tick_seconds: float | None = None,
        refresh_interval: int | None = None,
        sleep: SleepFunc | None = None,
    ):
        """Initialize the policy.

        Args:
            tier: Credential tier reported by the backend.
            seconds: Countdown length in ticks (default from settings).
            tick_seconds: Wall-clock length of one tick (default from settings).
            refresh_interval: Personal tier refresh cadence (default from settings).
            sleep: Awaitable sleep, replaceable in tests.
        """
        self.tier = tier
        self._seconds = settings.cooldown_seconds if seconds is None else seconds
        self.tick_seconds = (
            settings.cooldown_tick_seconds if tick_seconds is None else tick_seconds
        )
        self.refresh_interval = max(
            1,
            settings.personal_refresh_interval if refresh_interval is None else refresh_interval,
        )
        self._sleep = sleep or asyncio.sleep

    @property
    def applies(self) -> bool:
        """Only the shared default credential is rate limited."""
        return self.tier == CredentialTier.DEFAULT and self._seconds > 0

    @property
    def seconds(self) -> int:
        """Required pause between items (0 when the policy doesn't apply)."""
        return self._seconds if self.applies else 0

    @property
    def blocks_between_items(self) -> bool:
        return self.applies

    def should_refresh_after(self, processed: int) -> bool:
        """Whether to refresh the flight list after this many successes.

        Personal credentials import back to back, so the list is refreshed
        every few files; otherwise it refreshes after every success while
        the cooldown runs.
        """
        if processed <= 0:
            return False
        if self.tier == CredentialTier.PERSONAL:
            return processed % self.refresh_interval == 0
        return True

    async def wait(self, on_tick: TickCallback | None = None) -> int:
        """Run the countdown.

        Reports the remaining seconds before the first tick and after each
        one, ending at 0. The wait is not interruptible.

        Returns:
            Number of ticks waited.
        """
        total = self.seconds
        if total <= 0:
            return 0

        logger.debug("cooldown_started", seconds=total, tier=self.tier.value)
        await _notify(on_tick, total)
        for remaining in range(total, 0, -1):
            await self._sleep(self.tick_seconds)
            await _notify(on_tick, remaining - 1)
        return total


async def _notify(on_tick: TickCallback | None, remaining: int) -> None:
    if on_tick is None:
        return
    result = on_tick(remaining)
    if inspect.isawaitable(result):
        await result
