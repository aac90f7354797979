"""
Hard-iron calibration of the magnetometer.

States: idle -> collecting -> complete. While collecting, raw magnetometer
readings are buffered; once enough steady readings are held the per-axis
bias is set to the midpoint of the buffered range.

Applied as: calibrated_magnetometer = raw_magnetometer - magnetometer_bias.
The offset reported to callers is the correction vector, -magnetometer_bias.
Units: microtesla (uT). Calibration is not persisted between sessions.
"""

import logging
import math
from collections import deque
from enum import Enum
from typing import Deque, Tuple

from compass_fusion.angles import Vector3

logger = logging.getLogger(__name__)

MIN_CALIBRATION_SAMPLES = 10
DEFAULT_CALIBRATION_SAMPLES = 50
MAX_CALIBRATION_SAMPLES = 200
CALIBRATION_THRESHOLD = 0.1


class CalibrationStatus(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    COMPLETE = "complete"


def _std_dev(values: list) -> float:
    """Population standard deviation; 0 for an empty list."""
    n = len(values)
    if n == 0:
        return 0.0
    mean = sum(values) / n
    return math.sqrt(sum((v - mean) ** 2 for v in values) / n)


class CalibrationEngine:
    """
    Magnetometer hard-iron calibration state.

    Not thread-safe on its own; CompassPipeline serialises access.
    """

    __slots__ = (
        "min_samples",
        "threshold",
        "_buffer",
        "_status",
        "_bias",
        "_completed_once",
        "_std",
    )

    def __init__(
        self,
        min_samples: int = DEFAULT_CALIBRATION_SAMPLES,
        max_samples: int = MAX_CALIBRATION_SAMPLES,
        threshold: float = CALIBRATION_THRESHOLD,
    ) -> None:
        self.min_samples = max(MIN_CALIBRATION_SAMPLES, int(min_samples))
        self.threshold = threshold
        self._buffer: Deque[Vector3] = deque(
            maxlen=max(self.min_samples, int(max_samples))
        )
        self._status = CalibrationStatus.IDLE
        self._bias: Vector3 = (0.0, 0.0, 0.0)
        self._completed_once = False
        self._std: Vector3 = (0.0, 0.0, 0.0)

    @property
    def status(self) -> CalibrationStatus:
        return self._status

    @property
    def complete(self) -> bool:
        """True once any cycle has completed in this session."""
        return self._completed_once

    @property
    def magnetometer_bias(self) -> Vector3:
        return self._bias

    @property
    def offset(self) -> Vector3:
        """Correction vector to add to raw readings (negated bias)."""
        return (-self._bias[0], -self._bias[1], -self._bias[2])

    @property
    def std_dev(self) -> Vector3:
        """Per-axis standard deviation of the current buffer."""
        return self._std

    @property
    def sample_count(self) -> int:
        return len(self._buffer)

    def apply(self, magnetometer: Vector3) -> Vector3:
        """Return magnetometer minus bias (uT)."""
        bias = self._bias
        return (
            magnetometer[0] - bias[0],
            magnetometer[1] - bias[1],
            magnetometer[2] - bias[2],
        )

    def needs_calibration(self) -> bool:
        """True when no cycle has completed and none is running."""
        return not self._completed_once and self._status is CalibrationStatus.IDLE

    def start(self) -> bool:
        """
        Begin a collection cycle.

        Returns False (and leaves the buffer untouched) if a cycle is
        already collecting.
        """
        if self._status is CalibrationStatus.COLLECTING:
            return False
        self._buffer.clear()
        self._std = (0.0, 0.0, 0.0)
        self._status = CalibrationStatus.COLLECTING
        logger.info("Magnetometer calibration started (need %d samples)", self.min_samples)
        return True

    def cancel(self) -> None:
        """Abort a running cycle; a previously completed bias is kept."""
        if self._status is not CalibrationStatus.COLLECTING:
            return
        self._buffer.clear()
        self._std = (0.0, 0.0, 0.0)
        self._status = (
            CalibrationStatus.COMPLETE
            if self._completed_once
            else CalibrationStatus.IDLE
        )
        logger.info("Magnetometer calibration cancelled")

    def add_sample(self, magnetometer: Vector3) -> bool:
        """
        Add one raw magnetometer reading when collecting.

        Returns True if calibration was just completed (bias updated).
        """
        if self._status is not CalibrationStatus.COLLECTING:
            return False
        self._buffer.append(magnetometer)
        if len(self._buffer) < self.min_samples:
            return False

        xs = [s[0] for s in self._buffer]
        ys = [s[1] for s in self._buffer]
        zs = [s[2] for s in self._buffer]
        self._std = (_std_dev(xs), _std_dev(ys), _std_dev(zs))
        if any(sd >= self.threshold for sd in self._std):
            return False

        self._bias = bias_from_samples(list(self._buffer))
        self._completed_once = True
        self._status = CalibrationStatus.COMPLETE
        logger.info(
            "Magnetometer calibration done: bias=(%.3f, %.3f, %.3f) uT",
            self._bias[0],
            self._bias[1],
            self._bias[2],
        )
        return True

    def progress_percent(self) -> int:
        """0 when idle, 0-99 while collecting, 100 once complete."""
        if self._status is CalibrationStatus.COMPLETE:
            return 100
        if self._status is CalibrationStatus.IDLE:
            return 0
        return min(99, int(100 * len(self._buffer) / self.min_samples))

    def to_dict(self) -> dict:
        """Status snapshot for the control API."""
        return {
            "calibration_status": self._status.value,
            "is_calibrated": self._completed_once,
            "magnetometer_bias": list(self._bias),
            "offset": list(self.offset),
            "std_dev": list(self._std),
            "samples_collected": len(self._buffer),
            "samples_needed": self.min_samples,
            "progress": self.progress_percent(),
        }


def bias_from_samples(samples: list) -> Tuple[float, float, float]:
    """Midpoint-of-range hard-iron bias for a list of (x, y, z) readings."""
    if not samples:
        return (0.0, 0.0, 0.0)
    return tuple(  # type: ignore[return-value]
        (max(s[i] for s in samples) + min(s[i] for s in samples)) / 2.0
        for i in range(3)
    )
