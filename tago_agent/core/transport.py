"""paho-mqtt transport for the TAGO.io telemetry agent."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Protocol

import paho.mqtt.client as paho

from ..const import (
    MQTT_CONNECT_BAD_CLIENT_ID,
    MQTT_CONNECT_BAD_CREDENTIALS,
    MQTT_CONNECT_BAD_PROTOCOL,
    MQTT_CONNECT_FAILED,
    MQTT_CONNECT_UNAUTHORIZED,
    MQTT_CONNECT_UNAVAILABLE,
    MQTT_CONNECTED,
    MQTT_CONNECTION_LOST,
    MQTT_CONNECTION_TIMEOUT,
    MQTT_DISCONNECTED,
    MQTT_MAX_HEADER_SIZE,
    MQTT_TOPIC_LENGTH_PREFIX,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_RECEIVE_BUFFER_SIZE,
    TRANSPORT_STATE_NAMES,
)

_LOGGER = logging.getLogger(__name__)

CONNACK_POLL_TIMEOUT = 0.1

# MQTT 3.1.1 CONNACK return codes as reported by paho reason codes
_CONNACK_TO_STATE = {
    1: MQTT_CONNECT_BAD_PROTOCOL,
    2: MQTT_CONNECT_BAD_CLIENT_ID,
    3: MQTT_CONNECT_UNAVAILABLE,
    4: MQTT_CONNECT_BAD_CREDENTIALS,
    5: MQTT_CONNECT_UNAUTHORIZED,
    # MQTT v5 equivalents
    0x84: MQTT_CONNECT_BAD_PROTOCOL,
    0x85: MQTT_CONNECT_BAD_CLIENT_ID,
    0x88: MQTT_CONNECT_UNAVAILABLE,
    0x86: MQTT_CONNECT_BAD_CREDENTIALS,
    0x87: MQTT_CONNECT_UNAUTHORIZED,
}


class Transport(Protocol):
    """Contract of the publish/subscribe session transport."""

    def configure_endpoint(self, host: str, port: int) -> None: ...

    def set_receive_buffer_size(self, size: int) -> None: ...

    def connect(self, client_id: str, username: str, token: str) -> bool: ...

    def is_connected(self) -> bool: ...

    def publish(self, channel: str, payload: bytes) -> bool: ...

    def pump(self) -> None: ...

    def disconnect(self) -> None: ...

    def last_error_code(self) -> int: ...


def describe_error(code: int) -> str:
    return TRANSPORT_STATE_NAMES.get(code, "Unknown")


class PahoTransport:
    """Synchronous MQTT transport driven by explicit ``pump`` calls."""

    __slots__ = (
        "_host",
        "_port",
        "_tls",
        "_tls_insecure",
        "_keepalive",
        "_connect_timeout",
        "_buffer_size",
        "_mqttc",
        "_connack",
        "_connected",
        "_last_error",
        "_connect_lock",
    )

    def __init__(
        self,
        tls: bool = True,
        tls_insecure: bool = True,
        keepalive: int = DEFAULT_MQTT_KEEPALIVE,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._host: Optional[str] = None
        self._port: Optional[int] = None
        self._tls = tls
        self._tls_insecure = tls_insecure
        self._keepalive = keepalive
        self._connect_timeout = connect_timeout
        self._buffer_size = DEFAULT_RECEIVE_BUFFER_SIZE
        self._mqttc: Optional[paho.Client] = None
        self._connack: Optional[int] = None
        self._connected = False
        self._last_error = MQTT_DISCONNECTED
        self._connect_lock = threading.Lock()

    def configure_endpoint(self, host: str, port: int) -> None:
        self._host = host
        self._port = port

    def set_receive_buffer_size(self, size: int) -> None:
        self._buffer_size = size

    def _new_client(self, client_id: str, username: str, token: str) -> paho.Client:
        client = paho.Client(
            paho.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=paho.MQTTv311,
        )
        client.connect_timeout = self._connect_timeout
        client.username_pw_set(username=username, password=token)
        if self._tls:
            client.tls_set()
            client.tls_insecure_set(self._tls_insecure)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        return client

    def connect(self, client_id: str, username: str, token: str) -> bool:
        """Run one CONNECT handshake, blocking until CONNACK or timeout.

        Only one handshake runs at a time. A caller that gave up waiting on
        an earlier attempt blocks here until that attempt has finished.

        Returns:
            True if the broker accepted the session
        """
        if self._host is None or self._port is None:
            raise ValueError("Endpoint not configured")

        if not self._connect_lock.acquire(timeout=self._connect_timeout):
            _LOGGER.error("MQTT previous connect attempt still running")
            self._last_error = MQTT_CONNECTION_TIMEOUT
            return False
        try:
            return self._handshake(client_id, username, token)
        finally:
            self._connect_lock.release()

    def _handshake(self, client_id: str, username: str, token: str) -> bool:
        # Socket connect, TLS and CONNACK share one deadline
        deadline = time.monotonic() + self._connect_timeout
        self._teardown()
        self._connack = None
        client = self._new_client(client_id, username, token)
        self._mqttc = client

        try:
            client.connect(self._host, self._port, self._keepalive)
        except (OSError, ValueError) as exc:
            _LOGGER.error(f"MQTT socket connect failed {self._host}:{self._port}: {exc}")
            self._last_error = MQTT_CONNECT_FAILED
            self._mqttc = None
            return False

        while self._connack is None and time.monotonic() < deadline:
            rc = client.loop(timeout=CONNACK_POLL_TIMEOUT)
            if rc not in (paho.MQTT_ERR_SUCCESS, paho.MQTT_ERR_AGAIN) and self._connack is None:
                self._last_error = MQTT_CONNECT_FAILED
                break

        if client is not self._mqttc:
            # Torn down by disconnect() while waiting
            return False

        if self._connack is None:
            if self._last_error != MQTT_CONNECT_FAILED:
                self._last_error = MQTT_CONNECTION_TIMEOUT
            self._teardown()
            return False

        if self._connack != MQTT_CONNECTED:
            self._teardown()
            return False
        return True

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if client is not self._mqttc:
            return
        if reason_code.is_failure:
            state = _CONNACK_TO_STATE.get(reason_code.value, MQTT_CONNECT_FAILED)
            self._connack = state
            self._last_error = state
            self._connected = False
        else:
            self._connack = MQTT_CONNECTED
            self._last_error = MQTT_CONNECTED
            self._connected = True

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if client is not self._mqttc:
            return
        if self._connected:
            _LOGGER.warning(f"MQTT connection dropped ({reason_code})")
            self._last_error = MQTT_CONNECTION_LOST
        self._connected = False

    def is_connected(self) -> bool:
        client = self._mqttc
        return self._connected and client is not None and client.is_connected()

    def publish(self, channel: str, payload: bytes) -> bool:
        """Send a QoS 0 message without waiting for the broker."""
        client = self._mqttc
        if client is None or not self.is_connected():
            return False
        packet_size = MQTT_MAX_HEADER_SIZE + MQTT_TOPIC_LENGTH_PREFIX + len(channel) + len(payload)
        if packet_size > self._buffer_size:
            _LOGGER.error(f"MQTT packet of {packet_size} bytes exceeds buffer of {self._buffer_size}")
            return False
        try:
            info = client.publish(channel, payload=payload, qos=0)
        except ValueError as exc:
            _LOGGER.error(f"MQTT publish to {channel} rejected: {exc}")
            return False
        return info.rc == paho.MQTT_ERR_SUCCESS

    def pump(self) -> None:
        """Service keepalive and inbound traffic without blocking."""
        client = self._mqttc
        if client is None:
            return
        rc = client.loop(timeout=0.0)
        if rc != paho.MQTT_ERR_SUCCESS and self._connected:
            _LOGGER.warning(f"MQTT loop error rc={rc}")
            self._connected = False
            self._last_error = MQTT_CONNECTION_LOST

    def disconnect(self) -> None:
        self._teardown()
        self._last_error = MQTT_DISCONNECTED

    def _teardown(self) -> None:
        client, self._mqttc = self._mqttc, None
        self._connected = False
        if client is None:
            return
        try:
            client.disconnect()
        except (OSError, ValueError) as exc:
            _LOGGER.warning(f"Error during MQTT disconnect: {exc}")

    def last_error_code(self) -> int:
        return self._last_error
