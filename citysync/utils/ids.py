"""Clock and identifier helpers shared by the local stores."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(UTC)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class TimestampIdGenerator:
    """Issue decimal millisecond identifiers that never repeat within a process.

    Two calls inside the same millisecond (or a clock that moves backwards)
    would otherwise collide, so the generator bumps past the last issued value.
    Uniqueness only holds for a single writer.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        millis = epoch_millis(self._clock())
        if millis <= self._last:
            millis = self._last + 1
        self._last = millis
        return str(millis)


__all__ = ["Clock", "TimestampIdGenerator", "epoch_millis", "utc_now"]
