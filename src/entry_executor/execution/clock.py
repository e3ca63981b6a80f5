"""
Time source for deadline-bounded loops.

Components that wait (fill polling, retry delays) read time and sleep only
through a clock, so tests can substitute virtual time.
"""

import asyncio
import time


class MonotonicClock:
    """Real clock: ``time.monotonic`` and ``asyncio.sleep``."""

    def monotonic(self) -> float:
        """Current monotonic time in seconds."""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


DEFAULT_CLOCK = MonotonicClock()
