"""Connectivity and schedule state models."""

from dataclasses import dataclass
from enum import Enum


class LinkState(Enum):
    """Network link state, owned by the link manager."""

    DOWN = "down"
    CONNECTING = "connecting"
    UP = "up"


class SessionState(Enum):
    """MQTT session state, owned by the session manager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class ScheduleState:
    """Publish schedule, mutated only by the publish scheduler.

    Attributes:
        interval: Publish interval in milliseconds (fixed)
        last_fire: Monotonic timestamp (ms) of the last publish attempt
    """

    interval: int
    last_fire: int = 0

    def is_due(self, now: int) -> bool:
        return now - self.last_fire >= self.interval
