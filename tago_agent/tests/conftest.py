"""Pytest configuration and fixtures for telemetry agent tests."""

from __future__ import annotations

from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

from tago_agent.config import AgentConfig, build_config
from tago_agent.const import MQTT_CONNECTED


class FakeClock:
    """Clock whose time is set by the test."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def now_ms(self) -> int:
        return self.now


@pytest.fixture
def raw_config() -> Dict[str, Any]:
    """Raw configuration document with instant retries."""
    return {
        "network": {"ssid": "TestNet", "password": "secret-pass", "poll_interval": 0, "max_attempts": 20},
        "broker": {"host": "mqtt.example.com", "port": 8883, "reconnect_backoff": 0, "connect_timeout": 5},
        "device": {
            "device_id": "ThisIsMyDeviceID",
            "token": "test_token_12345",
            "username": "MQTTTuser",
            "display_name": "TAGOioESP8266MQTT",
            "firmware_version": "TAGOioESP8266MQTT_001",
        },
        "channels": ["data", "info"],
        "publish_interval_ms": 10000,
    }


@pytest.fixture
def agent_config(raw_config) -> AgentConfig:
    return build_config(raw_config)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_link_layer():
    """Link layer that is associated with a valid address."""
    link = MagicMock()
    link.is_associated.return_value = True
    link.local_address.return_value = "192.168.1.50"
    link.signal_strength.return_value = -61
    return link


@pytest.fixture
def mock_transport():
    """MQTT transport that accepts every connect and publish."""
    transport = MagicMock()
    transport.connect.return_value = True
    transport.is_connected.return_value = True
    transport.publish.return_value = True
    transport.last_error_code.return_value = MQTT_CONNECTED
    return transport
