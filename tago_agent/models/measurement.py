"""Measurement models for the TAGO.io telemetry agent."""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple, Union

MeasurementValue = Union[str, int, float, None]


@dataclass(frozen=True)
class Measurement:
    """A single {variable, value, unit} triple."""

    name: str
    value: MeasurementValue
    unit: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {"variable": self.name, "value": self.value, "unit": self.unit}


@dataclass(frozen=True)
class MeasurementRecord:
    """Ordered measurements for one publish cycle."""

    measurements: Tuple[Measurement, ...]

    def __len__(self) -> int:
        return len(self.measurements)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.measurements)

    @property
    def names(self) -> List[str]:
        return [m.name for m in self.measurements]

    def as_list(self) -> List[Dict[str, Any]]:
        """Return the array-of-objects shape sent to the broker."""
        return [m.as_dict() for m in self.measurements]
