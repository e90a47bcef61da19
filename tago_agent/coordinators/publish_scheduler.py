"""Publish scheduler for the TAGO.io telemetry agent."""

import asyncio
import logging
from typing import Optional, Tuple

from ..core.clock import ClockSource
from ..core.exceptions import (
    AssociationTimeout,
    EncodingException,
    LinkException,
    SessionException,
)
from ..core.link import LinkManager
from ..core.mqtt_client import SessionManager
from ..models.state import ScheduleState
from ..services.encoder import TelemetryEncoder

_LOGGER = logging.getLogger(__name__)


class PublishScheduler:
    """Drives the pump on every tick and a publish cycle per interval."""

    __slots__ = (
        "_clock",
        "_link",
        "_session",
        "_encoder",
        "_channels",
        "_fan_out",
        "_tick_interval",
        "_schedule",
        "_cycles",
        "_published",
    )

    def __init__(
        self,
        clock: ClockSource,
        link: LinkManager,
        session: SessionManager,
        encoder: TelemetryEncoder,
        channels: Tuple[str, ...],
        interval_ms: int,
        tick_interval: float,
        fan_out: bool = False,
    ) -> None:
        """Initialize the scheduler.

        Args:
            clock: Monotonic millisecond clock
            link: Link manager
            session: Session manager
            encoder: Telemetry encoder
            channels: Publish channels, the first one is primary
            interval_ms: Publish interval in milliseconds
            tick_interval: Seconds between loop ticks
            fan_out: Publish to every channel instead of the primary only
        """
        self._clock = clock
        self._link = link
        self._session = session
        self._encoder = encoder
        self._channels = channels
        self._fan_out = fan_out
        self._tick_interval = tick_interval
        self._schedule = ScheduleState(interval=interval_ms)
        self._cycles = 0
        self._published = 0

    @property
    def schedule(self) -> ScheduleState:
        return self._schedule

    @property
    def cycles(self) -> int:
        """Publish cycles attempted."""
        return self._cycles

    @property
    def published(self) -> int:
        """Publish cycles that reached the broker."""
        return self._published

    @property
    def targets(self) -> Tuple[str, ...]:
        return self._channels if self._fan_out else self._channels[:1]

    async def async_start(self) -> None:
        """Bring the link up and try a first session connect."""
        await self._link.ensure_up()
        try:
            await self._session.ensure_connected()
        except SessionException as exc:
            _LOGGER.warning(f"Initial MQTT connect failed, retrying on next cycle: {exc}")

    async def async_tick(self) -> bool:
        """Run one loop iteration.

        Returns:
            True if a payload was handed to the transport this tick

        Raises:
            AssociationTimeout: Link exhaustion, fatal for the process
        """
        self._session.pump()

        now = self._clock.now_ms()
        if not self._schedule.is_due(now):
            return False

        self._schedule.last_fire = now
        self._cycles += 1
        try:
            await self._session.ensure_connected()
            record = self._encoder.build_record()
            payload = self._encoder.serialize(record)
            for channel in self.targets:
                self._session.publish(channel, payload)
        except AssociationTimeout:
            raise
        except LinkException as exc:
            _LOGGER.error(f"Publish cycle skipped, link problem: {exc}")
            return False
        except SessionException as exc:
            _LOGGER.error(f"Publish cycle skipped, session problem: {exc}")
            return False
        except EncodingException as exc:
            _LOGGER.error(f"Publish cycle skipped, encoding problem: {exc}")
            return False

        self._published += 1
        return True

    async def async_run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Tick until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        _LOGGER.info(
            f"Publish loop started, interval {self._schedule.interval} ms to {', '.join(self.targets)}"
        )
        while not stop_event.is_set():
            await self.async_tick()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._tick_interval)
            except asyncio.TimeoutError:
                pass
        _LOGGER.info("Publish loop stopped")
