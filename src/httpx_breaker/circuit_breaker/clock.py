"""Time source used by circuit breakers."""

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current wall-clock time in epoch milliseconds."""

    def now_ms(self) -> int:
        """Return the current time in milliseconds since the epoch."""


class SystemClock:
    """Production clock reading real wall-clock time."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000
