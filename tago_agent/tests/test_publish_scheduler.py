"""Tests for the publish scheduler."""

from __future__ import annotations

import json
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from tago_agent import build_runtime
from tago_agent.coordinators.publish_scheduler import PublishScheduler
from tago_agent.core.exceptions import (
    AssociationTimeout,
    HandshakeRejected,
    NotConnected,
)
from tago_agent.core.link import LinkManager
from tago_agent.core.mqtt_client import SessionManager
from tago_agent.models.measurement import Measurement, MeasurementRecord
from tago_agent.models.state import LinkState, SessionState
from tago_agent.services.encoder import TelemetryEncoder


@pytest.fixture
def mock_session():
    session = MagicMock(spec=SessionManager)
    session.ensure_connected = AsyncMock()
    return session


@pytest.fixture
def mock_encoder():
    encoder = MagicMock(spec=TelemetryEncoder)
    encoder.build_record.return_value = MeasurementRecord((Measurement("DeviceName", "dev"),))
    encoder.serialize.return_value = b"[]"
    return encoder


def _scheduler(clock, session, encoder, channels=("data", "info"), fan_out=False):
    link = MagicMock(spec=LinkManager)
    link.ensure_up = AsyncMock()
    return PublishScheduler(clock, link, session, encoder, channels, 10000, 0, fan_out=fan_out)


@pytest.mark.asyncio
async def test_interval_gating(fake_clock, mock_session, mock_encoder):
    """Test publish fires only once the interval has elapsed."""
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)
    fired = []

    for now in (0, 4000, 11000, 21500):
        fake_clock.now = now
        if await scheduler.async_tick():
            fired.append(now)

    assert fired == [11000, 21500]
    assert mock_session.ensure_connected.await_count == 2
    assert mock_session.publish.call_count == 2
    assert scheduler.schedule.last_fire == 21500


@pytest.mark.asyncio
async def test_pump_runs_every_tick(fake_clock, mock_session, mock_encoder):
    """Test the session is pumped regardless of publish timing."""
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)

    for now in (0, 100, 200, 10000):
        fake_clock.now = now
        await scheduler.async_tick()

    assert mock_session.pump.call_count == 4


@pytest.mark.asyncio
async def test_publishes_to_primary_channel_only(fake_clock, mock_session, mock_encoder):
    """Test only the first configured channel receives the payload."""
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)
    fake_clock.now = 10000

    await scheduler.async_tick()

    mock_session.publish.assert_called_once_with("data", b"[]")


@pytest.mark.asyncio
async def test_fan_out_publishes_to_every_channel(fake_clock, mock_session, mock_encoder):
    """Test fan-out sends the same payload to all channels."""
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder, fan_out=True)
    fake_clock.now = 10000

    await scheduler.async_tick()

    assert [c.args[0] for c in mock_session.publish.call_args_list] == ["data", "info"]


@pytest.mark.asyncio
async def test_session_failure_skips_cycle(fake_clock, mock_session, mock_encoder):
    """Test a recoverable session error skips the cycle without raising."""
    mock_session.ensure_connected.side_effect = HandshakeRejected("refused", 5)
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)
    fake_clock.now = 10000

    assert await scheduler.async_tick() is False

    mock_encoder.build_record.assert_not_called()
    assert scheduler.schedule.last_fire == 10000
    assert scheduler.cycles == 1
    assert scheduler.published == 0


@pytest.mark.asyncio
async def test_stale_session_publish_does_not_crash(fake_clock, mock_session, mock_encoder):
    """Test a publish on a dropped session is contained to the cycle."""
    mock_session.publish.side_effect = NotConnected("Session not connected")
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)
    fake_clock.now = 10000

    assert await scheduler.async_tick() is False


@pytest.mark.asyncio
async def test_fatal_link_error_propagates(fake_clock, mock_session, mock_encoder):
    """Test link exhaustion escapes the scheduler."""
    mock_session.ensure_connected.side_effect = AssociationTimeout(20)
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)
    fake_clock.now = 10000

    with pytest.raises(AssociationTimeout):
        await scheduler.async_tick()


@pytest.mark.asyncio
async def test_capacity_bound_leaves_session_untouched(agent_config, fake_clock, mock_link_layer, mock_transport):
    """Test an oversized payload skips the cycle and keeps the session."""
    config = replace(agent_config, payload_capacity=64)
    runtime = build_runtime(config, mock_link_layer, mock_transport, fake_clock)
    await runtime.scheduler.async_start()
    fake_clock.now = 10000

    assert await runtime.scheduler.async_tick() is False

    assert runtime.session.state is SessionState.CONNECTED
    mock_transport.publish.assert_not_called()


@pytest.mark.asyncio
async def test_no_publish_over_dead_link(agent_config, fake_clock, mock_link_layer, mock_transport):
    """Test a link lost while connected is re-acquired before any publish."""
    runtime = build_runtime(agent_config, mock_link_layer, mock_transport, fake_clock)
    await runtime.scheduler.async_start()
    mock_link_layer.is_associated.return_value = False
    mock_link_layer.local_address.return_value = None
    fake_clock.now = 10000

    with pytest.raises(AssociationTimeout):
        await runtime.scheduler.async_tick()

    mock_transport.publish.assert_not_called()
    assert mock_link_layer.connect.call_count == 2
    assert runtime.link.state is LinkState.DOWN
    assert runtime.session.state is SessionState.DISCONNECTED


@pytest.mark.asyncio
async def test_recovery_scenario(agent_config, fake_clock, mock_link_layer, mock_transport):
    """Test link down, transient retries, session connect and a full record."""
    mock_link_layer.is_associated.side_effect = [False, False, False] + [True] * 20
    runtime = build_runtime(agent_config, mock_link_layer, mock_transport, fake_clock)
    fake_clock.now = 10000

    assert await runtime.scheduler.async_tick() is True

    assert runtime.link.state is LinkState.UP
    assert runtime.session.state is SessionState.CONNECTED
    mock_link_layer.connect.assert_called_once()
    channel, payload = mock_transport.publish.call_args.args
    assert channel == "data"
    decoded = json.loads(payload)
    assert [item["variable"] for item in decoded] == [
        "DeviceName",
        "FirmWareVersion",
        "WiFiRSSI",
        "IP",
        "temperature",
        "pressure",
    ]


@pytest.mark.asyncio
async def test_run_stops_on_event(fake_clock, mock_session, mock_encoder):
    """Test the loop exits once the stop event is set."""
    scheduler = _scheduler(fake_clock, mock_session, mock_encoder)
    stop_event = MagicMock()
    stop_event.is_set.side_effect = [False, False, True]
    stop_event.wait = AsyncMock()

    await scheduler.async_run(stop_event)

    assert mock_session.pump.call_count == 2
