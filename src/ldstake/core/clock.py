"""
Time sources for the chain.

Contracts never read wall time. The chain asks its clock once at the start
of each transaction and every contract call inside it sees that value.
"""

from __future__ import annotations

import time


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Synthetic clock for tests and simulations.

    Mirrors the usual test-network helpers: ``increase`` moves time forward
    and ``set_next`` pins the timestamp the next transaction will see.
    Time never moves backwards.
    """

    def __init__(self, start: int = 1_700_000_000) -> None:
        if start < 0:
            raise ValueError("clock start must be non-negative")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def increase(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self._now += int(seconds)
        return self._now

    def set_next(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(
                f"timestamp {timestamp} is earlier than current time {self._now}"
            )
        self._now = int(timestamp)
        return self._now
