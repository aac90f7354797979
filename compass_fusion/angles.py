"""
Angle helpers shared by every stage that compares or blends headings.
"""

import math
from typing import Tuple

Vector3 = Tuple[float, float, float]

_CARDINALS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def normalize_heading(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    h = degrees % 360.0
    # -1e-15 % 360.0 rounds to 360.0
    if h >= 360.0:
        h = 0.0
    return h


def shortest_angular_delta(from_deg: float, to_deg: float) -> float:
    """
    Signed shortest rotation from from_deg to to_deg, in (-180, 180].

    shortest_angular_delta(359, 1) == 2, shortest_angular_delta(1, 359) == -2.
    """
    diff = (to_deg - from_deg) % 360.0
    if diff > 180.0:
        diff -= 360.0
    return diff


def cardinal_direction(heading_deg: float) -> str:
    """Eight-point compass name for a heading (N, NE, E, ...)."""
    idx = int((normalize_heading(heading_deg) + 22.5) // 45.0) % 8
    return _CARDINALS[idx]


def magnitude(v: Vector3) -> float:
    """Euclidean length of a 3-vector."""
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def distance(a: Vector3, b: Vector3) -> float:
    """Euclidean distance between two 3-vectors."""
    return magnitude((a[0] - b[0], a[1] - b[1], a[2] - b[2]))
