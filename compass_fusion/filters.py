"""
Noise filters: exponential low-pass and scalar Kalman on the magnetometer
vector, and wraparound-safe smoothing of the heading angle.

All filters are pure: (measurement, previous state) -> (value, new state).
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from compass_fusion.angles import Vector3, normalize_heading, shortest_angular_delta

LOW_PASS_ALPHA = 0.8
KALMAN_Q = 0.1
KALMAN_R = 0.1
KALMAN_INITIAL_COVARIANCE = 1.0
HEADING_SMOOTHING = 0.15
VELOCITY_GAIN = 0.01
MAX_SMOOTHING = 0.9


@dataclass(frozen=True)
class KalmanState:
    """Scalar estimate and its error covariance."""

    estimate: float
    covariance: float


KalmanVectorState = Tuple[KalmanState, KalmanState, KalmanState]


def low_pass(
    new: Vector3, previous: Optional[Vector3], alpha: float = LOW_PASS_ALPHA
) -> Vector3:
    """
    Exponential low-pass: alpha * new + (1 - alpha) * previous, per axis.

    The first sample (no previous) passes through unchanged. Alpha outside
    [0, 1] falls back to the default.
    """
    if previous is None:
        return (new[0], new[1], new[2])
    if not math.isfinite(alpha) or alpha < 0.0 or alpha > 1.0:
        alpha = LOW_PASS_ALPHA
    beta = 1.0 - alpha
    return (
        alpha * new[0] + beta * previous[0],
        alpha * new[1] + beta * previous[1],
        alpha * new[2] + beta * previous[2],
    )


def kalman_update(
    measurement: float,
    state: Optional[KalmanState],
    q: float = KALMAN_Q,
    r: float = KALMAN_R,
) -> Tuple[float, KalmanState]:
    """
    One predict/update step of a constant-value Kalman filter.

    Returns (filtered value, new state). The first measurement initialises
    the estimate with covariance 1.0.
    """
    if state is None:
        return measurement, KalmanState(measurement, KALMAN_INITIAL_COVARIANCE)
    p_pred = state.covariance + q
    gain = p_pred / (p_pred + r)
    estimate = state.estimate + gain * (measurement - state.estimate)
    return estimate, KalmanState(estimate, (1.0 - gain) * p_pred)


def kalman_vector(
    measurement: Vector3,
    state: Optional[KalmanVectorState],
    q: float = KALMAN_Q,
    r: float = KALMAN_R,
) -> Tuple[Vector3, KalmanVectorState]:
    """kalman_update applied independently to each axis."""
    previous = state if state is not None else (None, None, None)
    x, sx = kalman_update(measurement[0], previous[0], q, r)
    y, sy = kalman_update(measurement[1], previous[1], q, r)
    z, sz = kalman_update(measurement[2], previous[2], q, r)
    return (x, y, z), (sx, sy, sz)


def adaptive_factor(
    factor: float, velocity: float = 0.0, velocity_gain: float = VELOCITY_GAIN
) -> float:
    """Base smoothing factor raised by angular velocity, capped at 0.9."""
    return min(factor + abs(velocity) * velocity_gain, MAX_SMOOTHING)


def smooth_heading(
    new_heading: float,
    previous_heading: Optional[float],
    factor: float = HEADING_SMOOTHING,
    velocity: float = 0.0,
    velocity_gain: float = VELOCITY_GAIN,
) -> float:
    """
    Move previous_heading toward new_heading along the shorter arc.

    previous=359, new=1 moves forward through 0, never back through 180.
    velocity is the recent angular rate in deg/s.
    """
    if previous_heading is None:
        return normalize_heading(new_heading)
    diff = shortest_angular_delta(previous_heading, new_heading)
    k = adaptive_factor(factor, velocity, velocity_gain)
    return normalize_heading(previous_heading + diff * k)
