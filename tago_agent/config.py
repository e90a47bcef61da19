"""Configuration loading for the TAGO.io telemetry agent."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import voluptuous as vol

from .const import (
    CONF_BROKER,
    CONF_CHANNELS,
    CONF_CONNECT_TIMEOUT,
    CONF_DEVICE,
    CONF_DEVICE_ID,
    CONF_DISPLAY_NAME,
    CONF_FAN_OUT,
    CONF_FIRMWARE_VERSION,
    CONF_HOST,
    CONF_INTERFACE,
    CONF_KEEPALIVE,
    CONF_MAX_ATTEMPTS,
    CONF_MAXIMUM,
    CONF_MEASUREMENTS,
    CONF_NETWORK,
    CONF_PASSWORD,
    CONF_PAYLOAD_CAPACITY,
    CONF_POLL_INTERVAL,
    CONF_PORT,
    CONF_PUBLISH_INTERVAL_MS,
    CONF_RECEIVE_BUFFER_SIZE,
    CONF_RECONNECT_BACKOFF,
    CONF_SOURCE,
    CONF_SSID,
    CONF_TICK_INTERVAL,
    CONF_TLS,
    CONF_TLS_INSECURE,
    CONF_TOKEN,
    CONF_UNIT,
    CONF_USERNAME,
    CONF_VARIABLE,
    DEFAULT_BROKER_HOST,
    DEFAULT_BROKER_PORT,
    DEFAULT_CHANNELS,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_LINK_MAX_ATTEMPTS,
    DEFAULT_LINK_POLL_INTERVAL,
    DEFAULT_MEASUREMENTS,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_MQTT_USERNAME,
    DEFAULT_PAYLOAD_CAPACITY,
    DEFAULT_PUBLISH_INTERVAL_MS,
    DEFAULT_RECEIVE_BUFFER_SIZE,
    DEFAULT_RECONNECT_BACKOFF,
    DEFAULT_TICK_INTERVAL,
    MEASUREMENT_SOURCES,
    SOURCE_RANDOM,
)
from .core.exceptions import ConfigException
from .models.device_info import DeviceIdentity

_LOGGER = logging.getLogger(__name__)

_positive_float = vol.All(vol.Coerce(float), vol.Range(min=0))
_non_empty_str = vol.All(str, vol.Strip, vol.Length(min=1))
# MQTT publish topics must not carry wildcards
_topic = vol.All(_non_empty_str, vol.Match(r"^[^+#]+$", msg="publish channel cannot contain + or #"))

NETWORK_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_SSID, default=None): vol.Any(None, str),
        vol.Optional(CONF_PASSWORD, default=""): str,
        vol.Optional(CONF_INTERFACE, default=None): vol.Any(None, _non_empty_str),
        vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_LINK_POLL_INTERVAL): _positive_float,
        vol.Optional(CONF_MAX_ATTEMPTS, default=DEFAULT_LINK_MAX_ATTEMPTS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)

BROKER_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_HOST, default=DEFAULT_BROKER_HOST): _non_empty_str,
        vol.Optional(CONF_PORT, default=DEFAULT_BROKER_PORT): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=65535)
        ),
        vol.Optional(CONF_TLS, default=True): bool,
        vol.Optional(CONF_TLS_INSECURE, default=True): bool,
        vol.Optional(CONF_KEEPALIVE, default=DEFAULT_MQTT_KEEPALIVE): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_RECEIVE_BUFFER_SIZE, default=DEFAULT_RECEIVE_BUFFER_SIZE): vol.All(
            vol.Coerce(int), vol.Range(min=64)
        ),
        vol.Optional(CONF_CONNECT_TIMEOUT, default=DEFAULT_CONNECT_TIMEOUT): _positive_float,
        vol.Optional(CONF_RECONNECT_BACKOFF, default=DEFAULT_RECONNECT_BACKOFF): _positive_float,
    }
)

DEVICE_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_DEVICE_ID): _non_empty_str,
        vol.Required(CONF_TOKEN): _non_empty_str,
        vol.Optional(CONF_USERNAME, default=DEFAULT_MQTT_USERNAME): _non_empty_str,
        vol.Optional(CONF_DISPLAY_NAME, default=None): vol.Any(None, _non_empty_str),
        vol.Optional(CONF_FIRMWARE_VERSION, default="0.0.0"): _non_empty_str,
    }
)

MEASUREMENT_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_VARIABLE): _non_empty_str,
        vol.Optional(CONF_UNIT, default=""): str,
        vol.Optional(CONF_SOURCE, default=SOURCE_RANDOM): vol.In(MEASUREMENT_SOURCES),
        vol.Optional(CONF_MAXIMUM, default=100): vol.All(vol.Coerce(int), vol.Range(min=1)),
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_NETWORK, default=dict): NETWORK_SCHEMA,
        vol.Optional(CONF_BROKER, default=dict): BROKER_SCHEMA,
        vol.Required(CONF_DEVICE): DEVICE_SCHEMA,
        vol.Optional(CONF_CHANNELS, default=list(DEFAULT_CHANNELS)): vol.All(
            [_topic], vol.Length(min=1)
        ),
        vol.Optional(CONF_PUBLISH_INTERVAL_MS, default=DEFAULT_PUBLISH_INTERVAL_MS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_TICK_INTERVAL, default=DEFAULT_TICK_INTERVAL): _positive_float,
        vol.Optional(CONF_PAYLOAD_CAPACITY, default=DEFAULT_PAYLOAD_CAPACITY): vol.All(
            vol.Coerce(int), vol.Range(min=2)
        ),
        vol.Optional(CONF_FAN_OUT, default=False): bool,
        vol.Optional(
            CONF_MEASUREMENTS, default=lambda: [dict(m) for m in DEFAULT_MEASUREMENTS]
        ): [MEASUREMENT_SCHEMA],
    }
)


@dataclass(frozen=True)
class NetworkConfig:
    """Link credentials and association retry policy."""

    ssid: Optional[str]
    password: str
    interface: Optional[str]
    poll_interval: float
    max_attempts: int


@dataclass(frozen=True)
class BrokerConfig:
    """MQTT broker endpoint and session policy."""

    host: str
    port: int
    tls: bool
    tls_insecure: bool
    keepalive: int
    receive_buffer_size: int
    connect_timeout: float
    reconnect_backoff: float


@dataclass(frozen=True)
class MeasurementConfig:
    """One configured domain measurement."""

    variable: str
    unit: str
    source: str
    maximum: int


@dataclass(frozen=True)
class AgentConfig:
    """Immutable agent configuration, built once at startup."""

    network: NetworkConfig
    broker: BrokerConfig
    identity: DeviceIdentity
    channels: Tuple[str, ...]
    publish_interval_ms: int
    tick_interval: float
    payload_capacity: int
    fan_out: bool
    measurements: Tuple[MeasurementConfig, ...]

    @property
    def primary_channel(self) -> str:
        return self.channels[0]


def build_config(raw: Dict[str, Any]) -> AgentConfig:
    """Validate a raw configuration mapping and freeze it.

    Args:
        raw: Parsed configuration document

    Returns:
        Immutable agent configuration

    Raises:
        ConfigException: If the document does not match the schema
    """
    try:
        data = CONFIG_SCHEMA(raw)
    except vol.Invalid as exc:
        _LOGGER.error(f"Invalid configuration: {exc}")
        raise ConfigException(f"Invalid configuration: {exc}") from exc

    net = data[CONF_NETWORK]
    broker = data[CONF_BROKER]
    device = data[CONF_DEVICE]

    identity = DeviceIdentity(
        device_id=device[CONF_DEVICE_ID],
        auth_token=device[CONF_TOKEN],
        username=device[CONF_USERNAME],
        display_name=device[CONF_DISPLAY_NAME] or device[CONF_DEVICE_ID],
        firmware_version=device[CONF_FIRMWARE_VERSION],
    )

    return AgentConfig(
        network=NetworkConfig(
            ssid=net[CONF_SSID] or None,
            password=net[CONF_PASSWORD],
            interface=net[CONF_INTERFACE],
            poll_interval=net[CONF_POLL_INTERVAL],
            max_attempts=net[CONF_MAX_ATTEMPTS],
        ),
        broker=BrokerConfig(
            host=broker[CONF_HOST],
            port=broker[CONF_PORT],
            tls=broker[CONF_TLS],
            tls_insecure=broker[CONF_TLS_INSECURE],
            keepalive=broker[CONF_KEEPALIVE],
            receive_buffer_size=broker[CONF_RECEIVE_BUFFER_SIZE],
            connect_timeout=broker[CONF_CONNECT_TIMEOUT],
            reconnect_backoff=broker[CONF_RECONNECT_BACKOFF],
        ),
        identity=identity,
        channels=tuple(data[CONF_CHANNELS]),
        publish_interval_ms=data[CONF_PUBLISH_INTERVAL_MS],
        tick_interval=data[CONF_TICK_INTERVAL],
        payload_capacity=data[CONF_PAYLOAD_CAPACITY],
        fan_out=data[CONF_FAN_OUT],
        measurements=tuple(
            MeasurementConfig(
                variable=m[CONF_VARIABLE],
                unit=m[CONF_UNIT],
                source=m[CONF_SOURCE],
                maximum=m[CONF_MAXIMUM],
            )
            for m in data[CONF_MEASUREMENTS]
        ),
    )


def load_config(path: Union[str, Path]) -> AgentConfig:
    """Load and validate the JSON configuration file."""
    path = Path(path)
    _LOGGER.info(f"Loading configuration from {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        _LOGGER.error(f"Cannot read configuration {path}: {exc}")
        raise ConfigException(f"Cannot read configuration {path}: {exc}") from exc
    except ValueError as exc:
        _LOGGER.error(f"Configuration {path} is not valid JSON: {exc}")
        raise ConfigException(f"Configuration {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigException(f"Configuration {path} must be a JSON object")
    return build_config(raw)
