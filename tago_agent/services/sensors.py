"""Domain measurement sources."""

from __future__ import annotations

import logging
import random
from typing import Callable, Dict, Optional

import psutil

from ..config import MeasurementConfig
from ..const import (
    SOURCE_CPU_PERCENT,
    SOURCE_CPU_TEMPERATURE,
    SOURCE_DISK_PERCENT,
    SOURCE_MEMORY_PERCENT,
    SOURCE_RANDOM,
)
from ..models.measurement import Measurement, MeasurementValue

_LOGGER = logging.getLogger(__name__)

# Preferred psutil sensor labels, SoC boards first
TEMPERATURE_SENSORS = ("cpu_thermal", "cpu-thermal", "coretemp", "k10temp", "soc_thermal")


def read_random(config: MeasurementConfig) -> MeasurementValue:
    return random.randrange(config.maximum)


def read_cpu_temperature(config: MeasurementConfig) -> MeasurementValue:
    try:
        temps = psutil.sensors_temperatures()
    except AttributeError:
        # not available on this platform
        return None
    for label in TEMPERATURE_SENSORS:
        entries = temps.get(label)
        if entries:
            return round(entries[0].current, 1)
    for entries in temps.values():
        if entries:
            return round(entries[0].current, 1)
    return None


def read_cpu_percent(config: MeasurementConfig) -> MeasurementValue:
    return psutil.cpu_percent(interval=None)


def read_memory_percent(config: MeasurementConfig) -> MeasurementValue:
    return psutil.virtual_memory().percent


def read_disk_percent(config: MeasurementConfig) -> MeasurementValue:
    return psutil.disk_usage("/").percent


SENSOR_READERS: Dict[str, Callable[[MeasurementConfig], MeasurementValue]] = {
    SOURCE_RANDOM: read_random,
    SOURCE_CPU_TEMPERATURE: read_cpu_temperature,
    SOURCE_CPU_PERCENT: read_cpu_percent,
    SOURCE_MEMORY_PERCENT: read_memory_percent,
    SOURCE_DISK_PERCENT: read_disk_percent,
}


def read_measurement(
    config: MeasurementConfig,
    readers: Optional[Dict[str, Callable[[MeasurementConfig], MeasurementValue]]] = None,
) -> Measurement:
    """Read one configured measurement.

    A failing reader yields a ``None`` value so the record keeps its shape.
    """
    reader = (readers or SENSOR_READERS)[config.source]
    try:
        value = reader(config)
    except (OSError, RuntimeError) as exc:
        _LOGGER.warning(f"Sensor {config.variable} ({config.source}) read failed: {exc}")
        value = None
    return Measurement(config.variable, value, config.unit)
