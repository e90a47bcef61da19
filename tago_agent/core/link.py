"""Network link supervision for the TAGO.io telemetry agent."""

import asyncio
import logging
from typing import Optional

from ..config import NetworkConfig
from ..const import NULL_ADDRESS
from ..models.state import LinkState
from .exceptions import AssociationTimeout
from .link_layer import LinkLayer

_LOGGER = logging.getLogger(__name__)


class LinkManager:
    """Owns link acquisition, health checks and recovery."""

    __slots__ = ("_config", "_link", "_state", "_connect_attempts")

    def __init__(self, config: NetworkConfig, link_layer: LinkLayer) -> None:
        """Initialize the link manager.

        Args:
            config: Network credentials and retry policy
            link_layer: Underlying link implementation
        """
        self._config = config
        self._link = link_layer
        self._state = LinkState.DOWN
        self._connect_attempts = 0

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def connect_attempts(self) -> int:
        """Number of association sequences started so far."""
        return self._connect_attempts

    @property
    def local_address(self) -> Optional[str]:
        return self._link.local_address()

    @property
    def signal_strength(self) -> int:
        return self._link.signal_strength()

    def is_healthy(self) -> bool:
        """Associated and holding a non-null address."""
        if not self._link.is_associated():
            return False
        address = self._link.local_address()
        return bool(address) and address != NULL_ADDRESS

    async def ensure_up(self) -> None:
        """Bring the link up, or confirm it still is.

        Raises:
            AssociationTimeout: If the attempt ceiling is exhausted (fatal)
        """
        if self._state is LinkState.UP:
            if self.is_healthy():
                return
            _LOGGER.warning("Link lost, reconnecting")

        self._state = LinkState.CONNECTING
        self._connect_attempts += 1
        _LOGGER.info(f"Connecting link (ssid={self._config.ssid or '-'})")
        self._link.connect(self._config.ssid, self._config.password)

        for attempt in range(1, self._config.max_attempts + 1):
            if self.is_healthy():
                self._state = LinkState.UP
                self._link.enable_persistent_reconnect()
                _LOGGER.info(f"Link connected, address {self._link.local_address()}")
                return
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("Link not ready (%s/%s)", attempt, self._config.max_attempts)
            await asyncio.sleep(self._config.poll_interval)

        self._state = LinkState.DOWN
        _LOGGER.critical(
            f"Link association failed after {self._config.max_attempts} attempts, restart required"
        )
        raise AssociationTimeout(self._config.max_attempts)
