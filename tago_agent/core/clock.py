"""Monotonic tick provider for the publish scheduler."""

import time
from typing import Callable, Protocol


class ClockSource(Protocol):
    """Anything that returns a monotonic millisecond timestamp."""

    def now_ms(self) -> int: ...


class MonotonicClock:
    """Milliseconds elapsed since the clock was created."""

    __slots__ = ("_origin", "_monotonic")

    def __init__(self, monotonic: Callable[[], float] = time.monotonic) -> None:
        self._monotonic = monotonic
        self._origin = monotonic()

    def now_ms(self) -> int:
        return int((self._monotonic() - self._origin) * 1000)
