"""Host network link layer backed by psutil and NetworkManager."""

from __future__ import annotations

import logging
import socket
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Protocol

import psutil

from ..const import NULL_ADDRESS

_LOGGER = logging.getLogger(__name__)

NMCLI_TIMEOUT = 30
WIRELESS_STATS_PATH = Path("/proc/net/wireless")
ROUTE_TABLE_PATH = Path("/proc/net/route")
DEFAULT_ROUTE = "00000000"


class LinkLayer(Protocol):
    """Contract of the lower-layer network association."""

    def connect(self, ssid: Optional[str], password: str) -> None: ...

    def is_associated(self) -> bool: ...

    def local_address(self) -> Optional[str]: ...

    def signal_strength(self) -> int: ...

    def enable_persistent_reconnect(self) -> None: ...


class NetworkLinkLayer:
    """Link layer for a Linux host.

    Status and address come from psutil. Association and auto-reconnect are
    delegated to ``nmcli`` when an SSID is configured; wired hosts only probe.
    """

    __slots__ = ("_interface", "_ssid", "_run")

    def __init__(
        self,
        interface: Optional[str] = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        """Initialize the link layer.

        Args:
            interface: Network interface name, auto-detected when None
            run: Subprocess runner used for nmcli calls
        """
        self._interface = interface
        self._ssid: Optional[str] = None
        self._run = run

    @property
    def interface(self) -> Optional[str]:
        if self._interface is not None:
            return self._interface
        uplink = self._default_route_interface()
        if uplink is not None:
            _LOGGER.info(f"Using uplink interface {uplink}")
            self._interface = uplink
            return uplink
        # No default route yet, retry detection on the next probe
        return self._fallback_interface()

    @staticmethod
    def _is_candidate(name: str, stats) -> bool:
        stat = stats.get(name)
        return not name.startswith("lo") and stat is not None and stat.isup

    def _default_route_interface(self) -> Optional[str]:
        """Interface carrying the IPv4 default route, if it is up."""
        try:
            lines = ROUTE_TABLE_PATH.read_text().splitlines()
        except OSError:
            return None
        stats = psutil.net_if_stats()
        # Iface  Destination  Gateway  Flags ...
        for line in lines[1:]:
            fields = line.split()
            if len(fields) > 1 and fields[1] == DEFAULT_ROUTE and self._is_candidate(fields[0], stats):
                return fields[0]
        return None

    def _fallback_interface(self) -> Optional[str]:
        """First interface that is up, preferring one holding an IPv4 address."""
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()
        candidates = [name for name in stats if self._is_candidate(name, stats)]
        for name in candidates:
            if any(addr.family == socket.AF_INET for addr in addrs.get(name, [])):
                return name
        return candidates[0] if candidates else None

    def _nmcli(self, args: List[str]) -> bool:
        cmd = ["nmcli", *args]
        try:
            result = self._run(cmd, capture_output=True, text=True, timeout=NMCLI_TIMEOUT, check=False)
        except (OSError, subprocess.TimeoutExpired) as exc:
            _LOGGER.error(f"nmcli call failed ({args[0]} {args[1] if len(args) > 1 else ''}): {exc}")
            return False
        if result.returncode != 0:
            _LOGGER.warning(f"nmcli returned {result.returncode}: {(result.stderr or '').strip()}")
            return False
        return True

    def connect(self, ssid: Optional[str], password: str) -> None:
        """Start association with the given network.

        Returns without waiting; callers poll ``is_associated``.
        """
        self._ssid = ssid
        if not ssid:
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("No SSID configured, relying on existing link of %s", self.interface)
            return

        args = ["device", "wifi", "connect", ssid]
        if password:
            args += ["password", password]
        # Without a configured or routed interface nmcli picks the wifi device
        iface = self._interface or self._default_route_interface()
        if iface:
            args += ["ifname", iface]
        _LOGGER.info(f"Connecting to {ssid}")
        self._nmcli(args)

    def is_associated(self) -> bool:
        iface = self.interface
        if iface is None:
            return False
        stat = psutil.net_if_stats().get(iface)
        return bool(stat and stat.isup)

    def local_address(self) -> Optional[str]:
        iface = self.interface
        if iface is None:
            return None
        for addr in psutil.net_if_addrs().get(iface, []):
            if addr.family == socket.AF_INET and addr.address != NULL_ADDRESS:
                return addr.address
        return None

    def signal_strength(self) -> int:
        """Return the signal level in dBm, 0 when not wireless."""
        iface = self.interface
        if iface is None:
            return 0
        try:
            lines = WIRELESS_STATS_PATH.read_text().splitlines()
        except OSError:
            return 0
        # Inter-| sta-|   Quality        |   Discarded packets ...
        #  face | tus | link level noise |  nwid  crypt ...
        for line in lines[2:]:
            name, _, rest = line.partition(":")
            if name.strip() != iface:
                continue
            fields = rest.split()
            if len(fields) < 3:
                return 0
            try:
                return int(float(fields[2].rstrip(".")))
            except ValueError:
                return 0
        return 0

    def enable_persistent_reconnect(self) -> None:
        """Let NetworkManager persist the profile and re-associate silently."""
        if not self._ssid:
            return
        self._nmcli(["connection", "modify", self._ssid, "connection.autoconnect", "yes"])
