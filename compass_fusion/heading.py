"""
Magnetic heading from a bias-corrected magnetometer reading.

Primary strategy is tilt compensation: the magnetic vector is projected onto
the plane orthogonal to gravity before taking atan2. When the accelerometer
is missing or any vector is too short to normalise, the planar atan2(y, x)
strategy is used instead. Neither raises for finite input.
"""

import math
from dataclasses import dataclass
from typing import Optional

from compass_fusion.angles import Vector3, magnitude, normalize_heading
from compass_fusion.samples import HeadingMethod

_MIN_NORM = 1e-6


@dataclass(frozen=True)
class HeadingEstimate:
    heading: float
    method: HeadingMethod


def _unit(v: Vector3) -> Optional[Vector3]:
    n = magnitude(v)
    if not math.isfinite(n) or n < _MIN_NORM:
        return None
    return (v[0] / n, v[1] / n, v[2] / n)


def planar_heading(magnetometer: Vector3) -> float:
    """Heading from the x/y magnetometer components only (device assumed flat)."""
    return normalize_heading(math.degrees(math.atan2(magnetometer[1], magnetometer[0])))


def tilt_compensated_heading(
    magnetometer: Vector3, accelerometer: Vector3
) -> Optional[float]:
    """
    Heading with the magnetic vector projected onto the horizontal plane.

    Returns None when either vector (or the horizontal projection) is too
    short to normalise.
    """
    a = _unit(accelerometer)
    m = _unit(magnetometer)
    if a is None or m is None:
        return None
    dot = m[0] * a[0] + m[1] * a[1] + m[2] * a[2]
    hx = m[0] - a[0] * dot
    hy = m[1] - a[1] * dot
    hz = m[2] - a[2] * dot
    if magnitude((hx, hy, hz)) < _MIN_NORM:
        return None
    return normalize_heading(math.degrees(math.atan2(-hy, hx)))


def estimate_heading(
    magnetometer: Vector3, accelerometer: Optional[Vector3] = None
) -> HeadingEstimate:
    """Pick the best strategy the data allows and compute the heading."""
    if accelerometer is not None:
        heading = tilt_compensated_heading(magnetometer, accelerometer)
        if heading is not None:
            return HeadingEstimate(heading, HeadingMethod.TILT_COMPENSATED)
    return HeadingEstimate(planar_heading(magnetometer), HeadingMethod.PLANAR)


def compute_magnetic_heading(
    magnetometer: Vector3, accelerometer: Optional[Vector3] = None
) -> float:
    """Magnetic heading in degrees [0, 360)."""
    return estimate_heading(magnetometer, accelerometer).heading
