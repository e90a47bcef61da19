"""Device identity model for the TAGO.io telemetry agent."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DeviceIdentity:
    """Device identity data class, loaded once at startup."""

    device_id: str
    auth_token: str
    username: str
    display_name: str
    firmware_version: str
