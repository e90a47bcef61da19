"""TAGO.io telemetry agent."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .config import AgentConfig
from .const import DOMAIN
from .coordinators.publish_scheduler import PublishScheduler
from .core.clock import ClockSource, MonotonicClock
from .core.exceptions import AssociationTimeout
from .core.link import LinkManager
from .core.link_layer import LinkLayer, NetworkLinkLayer
from .core.mqtt_client import SessionManager
from .core.transport import PahoTransport, Transport
from .services.encoder import TelemetryEncoder

__version__ = "1.0.0"

_LOGGER = logging.getLogger(__name__)


@dataclass
class AgentRuntime:
    """Every component of one agent incarnation."""

    config: AgentConfig
    clock: ClockSource
    link: LinkManager
    session: SessionManager
    encoder: TelemetryEncoder
    scheduler: PublishScheduler
    restarts: int = 0


def build_runtime(
    config: AgentConfig,
    link_layer: Optional[LinkLayer] = None,
    transport: Optional[Transport] = None,
    clock: Optional[ClockSource] = None,
) -> AgentRuntime:
    """Wire the components from the immutable configuration."""
    if link_layer is None:
        link_layer = NetworkLinkLayer(config.network.interface)
    if transport is None:
        transport = PahoTransport(
            tls=config.broker.tls,
            tls_insecure=config.broker.tls_insecure,
            keepalive=config.broker.keepalive,
            connect_timeout=config.broker.connect_timeout,
        )
    clock = clock or MonotonicClock()

    link = LinkManager(config.network, link_layer)
    session = SessionManager(config.broker, config.identity, config.channels, link, transport)
    encoder = TelemetryEncoder(
        config.identity, link, config.measurements, config.payload_capacity
    )
    scheduler = PublishScheduler(
        clock,
        link,
        session,
        encoder,
        config.channels,
        config.publish_interval_ms,
        config.tick_interval,
        fan_out=config.fan_out,
    )
    return AgentRuntime(config, clock, link, session, encoder, scheduler)


async def async_setup_agent(runtime: AgentRuntime) -> None:
    """Start a runtime: banner, link, first session connect."""
    identity = runtime.config.identity
    _LOGGER.info(f"{identity.firmware_version} starting ({identity.display_name})")
    await runtime.scheduler.async_start()
    _LOGGER.info("Setup         : [ finished ]")


async def async_unload_agent(runtime: AgentRuntime) -> None:
    """Tear a runtime down."""
    try:
        runtime.session.disconnect()
    except OSError as exc:
        _LOGGER.warning(f"Error disconnecting MQTT during unload: {exc}")


async def async_run_agent(
    config: AgentConfig,
    stop_event: Optional[asyncio.Event] = None,
    restart_limit: Optional[int] = None,
    runtime_factory: Callable[[AgentConfig], AgentRuntime] = build_runtime,
) -> int:
    """Run the agent until stopped, rebuilding it after fatal link loss.

    Args:
        config: Immutable agent configuration
        stop_event: Set to stop the loop
        restart_limit: Rebuilds allowed before the fatal error escapes, None for unlimited
        runtime_factory: Builds a fresh set of components

    Returns:
        Number of in-process restarts performed

    Raises:
        AssociationTimeout: When ``restart_limit`` is exhausted
    """
    stop_event = stop_event or asyncio.Event()
    restarts = 0

    while not stop_event.is_set():
        runtime = runtime_factory(config)
        runtime.restarts = restarts
        try:
            await async_setup_agent(runtime)
            await runtime.scheduler.async_run(stop_event)
        except AssociationTimeout as exc:
            _LOGGER.critical(f"Fatal link failure: {exc}. Restarting {DOMAIN}")
            await async_unload_agent(runtime)
            if restart_limit is not None and restarts >= restart_limit:
                raise
            restarts += 1
            continue
        await async_unload_agent(runtime)

    return restarts


__all__ = [
    "AgentRuntime",
    "async_run_agent",
    "async_setup_agent",
    "async_unload_agent",
    "build_runtime",
]
