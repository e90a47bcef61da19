"""Telemetry record building and serialization."""

import json
import logging
from typing import Callable, Dict, Optional, Tuple

from ..config import MeasurementConfig
from ..const import (
    KEY_ADDRESS,
    KEY_DEVICE_NAME,
    KEY_FIRMWARE_VERSION,
    KEY_SIGNAL_STRENGTH,
    NULL_ADDRESS,
    UNIT_DECIBEL,
    UNIT_NONE,
)
from ..core.exceptions import BufferTooSmall
from ..core.link import LinkManager
from ..models.device_info import DeviceIdentity
from ..models.measurement import Measurement, MeasurementRecord, MeasurementValue
from .sensors import read_measurement

_LOGGER = logging.getLogger(__name__)


class TelemetryEncoder:
    """Builds the ordered measurement record and encodes it as JSON."""

    __slots__ = ("_identity", "_link", "_measurements", "_capacity", "_readers")

    def __init__(
        self,
        identity: DeviceIdentity,
        link: LinkManager,
        measurements: Tuple[MeasurementConfig, ...],
        capacity: int,
        readers: Optional[Dict[str, Callable[[MeasurementConfig], MeasurementValue]]] = None,
    ) -> None:
        self._identity = identity
        self._link = link
        self._measurements = measurements
        self._capacity = capacity
        self._readers = readers

    @property
    def field_count(self) -> int:
        return 4 + len(self._measurements)

    def build_record(self) -> MeasurementRecord:
        """Read live values: identity, then network health, then domain fields."""
        fields = [
            Measurement(KEY_DEVICE_NAME, self._identity.display_name, UNIT_NONE),
            Measurement(KEY_FIRMWARE_VERSION, self._identity.firmware_version, UNIT_NONE),
            Measurement(KEY_SIGNAL_STRENGTH, self._link.signal_strength, UNIT_DECIBEL),
            Measurement(KEY_ADDRESS, self._link.local_address or NULL_ADDRESS, UNIT_NONE),
        ]
        fields.extend(read_measurement(m, self._readers) for m in self._measurements)
        return MeasurementRecord(tuple(fields))

    def serialize(self, record: MeasurementRecord) -> bytes:
        """Encode the record as a JSON array of {variable, value, unit}.

        Raises:
            BufferTooSmall: If the encoded payload exceeds the capacity
        """
        payload = json.dumps(record.as_list(), separators=(",", ":")).encode("utf-8")
        if len(payload) > self._capacity:
            _LOGGER.error(
                f"Payload of {len(payload)} bytes exceeds capacity {self._capacity}, dropping cycle"
            )
            raise BufferTooSmall(len(payload), self._capacity)

        pretty = json.dumps(record.as_list(), indent=2)
        _LOGGER.info(f"JSON Payload:\n{pretty}")
        return payload
