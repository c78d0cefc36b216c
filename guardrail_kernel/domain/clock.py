"""
Clock -- Deterministic time abstraction and request deadlines.

Responsibility:
    Provides an injectable clock so that domain and service code never call
    ``datetime.now()`` directly, and a ``Deadline`` value object that bounds
    how long the period lookup may take for one request.

Invariants enforced:
    - Deadlines are measured on the monotonic clock, so a wall-clock step
      (NTP correction, manual change) never shortens or extends a budget.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    - ``Deadline.after`` raises ValueError for a negative timeout.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``monotonic()`` never goes backwards; only differences between
          two readings are meaningful.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds on a clock unaffected by wall-clock changes."""
        ...


class SystemClock(Clock):
    """Production clock that returns actual system time (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``
    or ``set_time()`` is called.  ``monotonic()`` moves only with
    ``advance()``; ``set_time()`` models a wall-clock step.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0.0
        self._elapsed = 0.0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def monotonic(self) -> float:
        return self._elapsed

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._advance_seconds = 0.0

    def advance(self, seconds: float = 1) -> None:
        self._advance_seconds += seconds
        self._elapsed += seconds


@dataclass(frozen=True)
class Deadline:
    """
    Point on the monotonic clock by which a request must finish its I/O.

    Contract:
        Created by the caller (usually from a request timeout) and passed
        down with the request.  Consumers ask ``remaining()`` against the
        same clock that created it.
    """

    expires_at: float

    @classmethod
    def after(cls, seconds: float, clock: Clock | None = None) -> Deadline:
        if seconds < 0:
            raise ValueError(f"Deadline timeout must be >= 0, got {seconds}")
        return cls(expires_at=(clock or SystemClock()).monotonic() + seconds)

    def remaining(self, clock: Clock | None = None) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self.expires_at - (clock or SystemClock()).monotonic())

    def expired(self, clock: Clock | None = None) -> bool:
        return self.remaining(clock) <= 0.0
