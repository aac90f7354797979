"""
Sample validation: reject malformed or implausible readings before they
reach any stateful stage, and grade the ones that pass.
"""

import math
from dataclasses import dataclass
from typing import Optional

from compass_fusion.angles import Vector3, magnitude
from compass_fusion.samples import RawSample

MAGNETOMETER_SATURATION_UT = 200.0
ACCELEROMETER_SATURATION_MS2 = 16.0 * 9.80665
FIELD_NOISE_FLOOR_UT = 5.0

# Earth field is roughly 25-65 uT at the surface.
_TYPICAL_FIELD_UT = (15.0, 80.0)
_BEST_FIELD_UT = (20.0, 60.0)
_DEAD_AXIS_UT = 0.5
_NEAR_SATURATION_UT = 150.0


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: str
    quality_hint: float = 0.0
    field_strength: float = 0.0


def _all_finite(v: Optional[Vector3]) -> bool:
    if v is None:
        return True
    return all(math.isfinite(c) for c in v)


def _reject(reason: str) -> ValidationResult:
    return ValidationResult(ok=False, reason=reason)


def magnetometer_quality(magnetometer: Vector3, field_strength: float) -> float:
    """Quality hint in [0, 1] from field strength and per-axis plausibility."""
    x, y, z = magnetometer
    quality = 1.0
    if not _TYPICAL_FIELD_UT[0] <= field_strength <= _TYPICAL_FIELD_UT[1]:
        quality *= 0.3
    elif not _BEST_FIELD_UT[0] <= field_strength <= _BEST_FIELD_UT[1]:
        quality *= 0.6
    if abs(x) < _DEAD_AXIS_UT or abs(y) < _DEAD_AXIS_UT:
        quality *= 0.4
    if max(abs(x), abs(y), abs(z)) > _NEAR_SATURATION_UT:
        quality *= 0.5
    return max(0.0, min(1.0, quality))


def validate(sample: RawSample) -> ValidationResult:
    """
    Check one raw sample.

    Rejects non-finite axes, saturated magnetometer (> 200 uT per axis) or
    accelerometer (> 16 g per axis) readings, and a magnetic field below the
    5 uT noise floor. Accepted samples carry a quality hint and the field
    strength in uT.
    """
    mag = sample.magnetometer
    if mag is None or len(mag) < 3:
        return _reject("missing magnetometer")
    if not _all_finite(mag):
        return _reject("non-finite magnetometer")
    if not _all_finite(sample.accelerometer):
        return _reject("non-finite accelerometer")
    if not _all_finite(sample.gyroscope):
        return _reject("non-finite gyroscope")

    if any(abs(c) > MAGNETOMETER_SATURATION_UT for c in mag):
        return _reject("magnetometer saturated")
    accel = sample.accelerometer
    if accel is not None and any(abs(c) > ACCELEROMETER_SATURATION_MS2 for c in accel):
        return _reject("accelerometer saturated")

    field_strength = magnitude(mag)
    if field_strength < FIELD_NOISE_FLOOR_UT:
        return _reject("field strength below noise floor")

    return ValidationResult(
        ok=True,
        reason="valid",
        quality_hint=magnetometer_quality(mag, field_strength),
        field_strength=field_strength,
    )
