"""Clock abstraction for todo-store.

The repository never reads the system time directly; it asks a Clock. All
times are whole seconds since the Unix epoch (UTC).
"""

import time
from abc import ABC, abstractmethod

SECONDS_PER_DAY = 86400


class Clock(ABC):
    """Abstract base class for wall-clock sources."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in seconds since the epoch."""
        pass


class SystemClock(Clock):
    """Clock backed by the host's wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class FixedClock(Clock):
    """Clock that returns a fixed, manually advanced time.

    Attributes:
        current: The time returned by now(), in seconds since the epoch
    """

    def __init__(self, current: int = 0):
        self.current = current

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds


def start_of_day(timestamp: int) -> int:
    """Return the first second of the UTC calendar day containing timestamp."""
    return timestamp - timestamp % SECONDS_PER_DAY
