"""MQTT session supervision for the TAGO.io telemetry agent."""

import asyncio
import logging
from functools import partial
from typing import Tuple

from ..config import BrokerConfig
from ..models.device_info import DeviceIdentity
from ..models.state import SessionState
from .exceptions import (
    HandshakeRejected,
    NotConnected,
    SessionException,
    TransportUnavailable,
)
from .link import LinkManager
from .transport import Transport, describe_error

_LOGGER = logging.getLogger(__name__)


class SessionManager:
    """Owns the MQTT session on top of a healthy link."""

    __slots__ = (
        "_config",
        "_identity",
        "_channels",
        "_link",
        "_transport",
        "_state",
        "_connect_attempts",
    )

    def __init__(
        self,
        config: BrokerConfig,
        identity: DeviceIdentity,
        channels: Tuple[str, ...],
        link: LinkManager,
        transport: Transport,
    ) -> None:
        """Initialize the session manager.

        Args:
            config: Broker endpoint and session policy
            identity: Device credentials used for the handshake
            channels: Configured publish channels
            link: Link manager consulted before every connect
            transport: Underlying MQTT transport
        """
        self._config = config
        self._identity = identity
        self._channels = channels
        self._link = link
        self._transport = transport
        self._state = SessionState.DISCONNECTED
        self._connect_attempts = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def connect_attempts(self) -> int:
        return self._connect_attempts

    @property
    def last_error_code(self) -> int:
        return self._transport.last_error_code()

    def _mark_disconnected(self, reason: str) -> None:
        if self._state is SessionState.CONNECTED:
            _LOGGER.warning(f"MQTT Client   : [ not connected ] ({reason})")
        self._state = SessionState.DISCONNECTED

    async def ensure_connected(self) -> None:
        """Connect the session if it is not already healthy.

        Raises:
            LinkException: Propagated unchanged from the link manager
            HandshakeRejected: If the broker refused the credentials
            TransportUnavailable: If the broker could not be reached
        """
        if self._state is SessionState.CONNECTED:
            if not self._link.is_healthy():
                self._mark_disconnected("link down")
            elif self._transport.is_connected():
                return
            else:
                self._mark_disconnected("transport dropped")

        self._state = SessionState.DISCONNECTED
        await self._link.ensure_up()

        self._state = SessionState.CONNECTING
        self._connect_attempts += 1
        self._transport.configure_endpoint(self._config.host, self._config.port)
        self._transport.set_receive_buffer_size(self._config.receive_buffer_size)

        _LOGGER.info(
            f"MQTT Client   : [ trying connection ] {self._config.host}:{self._config.port} "
            f"(Client: {self._identity.device_id})"
        )

        connected = False
        timed_out = False
        loop = asyncio.get_running_loop()
        connect_job = partial(
            self._transport.connect,
            self._identity.device_id,
            self._identity.username,
            self._identity.auth_token,
        )
        try:
            connected = await asyncio.wait_for(
                loop.run_in_executor(None, connect_job),
                timeout=self._config.connect_timeout,
            )
        except asyncio.TimeoutError:
            timed_out = True
            _LOGGER.error(f"MQTT connection timeout {self._identity.device_id}")

        if connected:
            self._state = SessionState.CONNECTED
            _LOGGER.info("MQTT Client   : [ broker connected ]")
            for channel in self._channels:
                _LOGGER.info(f"MQTT Client   : [ publishing to {channel} ]")
            return

        error = self._connect_error(timed_out)
        self._state = SessionState.DISCONNECTED
        _LOGGER.error(f"MQTT Client   : [ failed, rc= {error.error_code} ] {error}")

        await asyncio.sleep(self._config.reconnect_backoff)
        # The link may have dropped silently underneath the failed handshake
        await self._link.ensure_up()
        raise error

    def _connect_error(self, timed_out: bool) -> SessionException:
        code = self._transport.last_error_code()
        if timed_out:
            return TransportUnavailable("Broker handshake timed out", code)
        if code > 0:
            return HandshakeRejected(f"Broker refused connection: {describe_error(code)}", code)
        return TransportUnavailable(f"Broker unreachable: {describe_error(code)}", code)

    def publish(self, channel: str, payload: bytes) -> None:
        """Send one payload, fire-and-forget.

        Raises:
            NotConnected: If no session is established
            TransportUnavailable: If the transport refused the message
        """
        if self._state is not SessionState.CONNECTED or not self._transport.is_connected():
            self._mark_disconnected("publish on stale session")
            _LOGGER.error(f"MQTT not connected {self._identity.device_id}, cannot publish")
            raise NotConnected("Session not connected", self._transport.last_error_code())

        if self._transport.publish(channel, payload):
            _LOGGER.info(f"MQTT Client   : [ sent {len(payload)} bytes to {channel} ]")
            return

        code = self._transport.last_error_code()
        _LOGGER.error(f"MQTT publish failed {self._identity.device_id} on {channel} (rc={code})")
        raise TransportUnavailable(f"Publish to {channel} failed", code)

    def pump(self) -> None:
        """Service keepalive traffic and notice asynchronous disconnects."""
        if self._state is not SessionState.CONNECTED:
            return
        self._transport.pump()
        if not self._transport.is_connected():
            self._mark_disconnected(describe_error(self._transport.last_error_code()))

    def disconnect(self) -> None:
        _LOGGER.info(f"Disconnecting MQTT {self._identity.device_id}")
        self._transport.disconnect()
        self._state = SessionState.DISCONNECTED
