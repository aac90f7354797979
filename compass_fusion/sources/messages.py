"""
JSON-lines wire format shared by the remote and replay sources.

One JSON object per line (newline-delimited):
- Sample: {"magnetometer":[x,y,z],"accelerometer":[x,y,z],
           "gyroscope":[x,y,z],"timestamp_ms":int}
  (magnetometer uT, accelerometer m/s^2, gyroscope deg/s; "mag", "accel"
  and "gyro" are accepted as short keys; gyroscope and timestamp optional)
- Location: {"lat":float,"lon":float}
- Combined: both in one object.
"""

import json
import time
from typing import Optional, Tuple

from compass_fusion.angles import Vector3
from compass_fusion.samples import GeoCoordinate, RawSample

Message = Tuple[Optional[RawSample], Optional[GeoCoordinate]]

_EMPTY: Message = (None, None)


def _to_triple(value: object) -> Optional[Vector3]:
    """Convert list of 3 numbers to tuple; else None."""
    if isinstance(value, (list, tuple)) and len(value) >= 3:
        try:
            return (float(value[0]), float(value[1]), float(value[2]))
        except (OverflowError, TypeError, ValueError):
            return None
    return None


def _first(data: dict, *keys: str) -> object:
    for key in keys:
        if key in data:
            return data[key]
    return None


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def parse_sample(data: dict) -> Optional[RawSample]:
    """RawSample from a decoded message, or None if it carries no usable sample."""
    mag = _to_triple(_first(data, "magnetometer", "mag"))
    if mag is None:
        return None
    accel = _to_triple(_first(data, "accelerometer", "accel"))
    gyro = _to_triple(_first(data, "gyroscope", "gyro"))
    ts = data.get("timestamp_ms")
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        timestamp_ms = monotonic_ms()
    else:
        try:
            timestamp_ms = int(ts)
        except (OverflowError, ValueError):
            timestamp_ms = monotonic_ms()
    return RawSample(
        magnetometer=mag,
        accelerometer=accel,
        gyroscope=gyro,
        timestamp_ms=timestamp_ms,
    )


def parse_location(data: dict) -> Optional[GeoCoordinate]:
    """GeoCoordinate from a decoded message, or None."""
    if "lat" not in data or "lon" not in data:
        return None
    try:
        return GeoCoordinate(latitude=float(data["lat"]), longitude=float(data["lon"]))
    except (OverflowError, TypeError, ValueError):
        return None


def parse_line(line: str) -> Message:
    """Decode one wire line; malformed input yields (None, None)."""
    line = line.strip()
    if not line:
        return _EMPTY
    try:
        data = json.loads(line)
    except (ValueError, RecursionError):
        # JSONDecodeError, or an integer literal past the digit limit
        return _EMPTY
    if not isinstance(data, dict):
        return _EMPTY
    return (parse_sample(data), parse_location(data))
