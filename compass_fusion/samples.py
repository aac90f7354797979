"""
Data model: raw sensor samples in, heading results out.

Units: magnetometer microtesla (uT), accelerometer m/s^2, gyroscope deg/s,
timestamps monotonic milliseconds, headings degrees in [0, 360).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from compass_fusion.angles import Vector3, cardinal_direction


class SensorQuality(Enum):
    """Coarse classification of instantaneous sensor reliability."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        """Higher is better; UNKNOWN ranks lowest."""
        return _QUALITY_RANK[self]


_QUALITY_RANK = {
    SensorQuality.EXCELLENT: 4,
    SensorQuality.GOOD: 3,
    SensorQuality.FAIR: 2,
    SensorQuality.POOR: 1,
    SensorQuality.UNKNOWN: 0,
}


class HeadingMethod(Enum):
    """Which heading strategy produced a result."""

    TILT_COMPENSATED = "tilt_compensated"
    PLANAR = "planar"
    AHRS = "ahrs"


@dataclass(frozen=True)
class RawSample:
    """One combined reading from the sensor-acquisition side."""

    magnetometer: Vector3
    accelerometer: Optional[Vector3]
    gyroscope: Optional[Vector3] = None
    timestamp_ms: int = 0


@dataclass(frozen=True)
class GeoCoordinate:
    """Latitude/longitude in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class HeadingHistoryEntry:
    heading: float
    timestamp_ms: int


@dataclass(frozen=True)
class HeadingResult:
    """Heading emitted once per accepted sample."""

    magnetic_heading: float
    true_heading: float
    declination_applied: float
    accuracy_score: float
    sensor_quality: SensorQuality
    is_calibrated: bool
    timestamp_ms: int
    heading_method: HeadingMethod = HeadingMethod.TILT_COMPENSATED
    declination_source: str = "default"
    field_strength: float = 0.0

    @property
    def cardinal(self) -> str:
        """Eight-point direction of the true heading."""
        return cardinal_direction(self.true_heading)

    def to_dict(self) -> dict:
        """Serialise to a JSON-suitable dict."""
        return {
            "magnetic_heading": round(self.magnetic_heading, 2),
            "true_heading": round(self.true_heading, 2),
            "declination": self.declination_applied,
            "declination_source": self.declination_source,
            "accuracy": round(self.accuracy_score, 3),
            "sensor_quality": self.sensor_quality.value,
            "is_calibrated": self.is_calibrated,
            "heading_method": self.heading_method.value,
            "field_strength": round(self.field_strength, 2),
            "cardinal": self.cardinal,
            "timestamp_ms": self.timestamp_ms,
        }
