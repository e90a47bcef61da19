"""Data models for the TAGO.io telemetry agent.

This package contains the identity, measurement and state models.
"""

from .device_info import DeviceIdentity
from .measurement import Measurement, MeasurementRecord
from .state import LinkState, ScheduleState, SessionState

__all__ = [
    "DeviceIdentity",
    "LinkState",
    "Measurement",
    "MeasurementRecord",
    "ScheduleState",
    "SessionState",
]
