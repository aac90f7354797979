"""
Gyro-aided heading using imufusion: gyro + accelerometer + magnetometer ->
orientation; yaw is used as magnetic heading.
"""

import logging
from typing import Any, Optional, Tuple

from compass_fusion.angles import normalize_heading

logger = logging.getLogger(__name__)

STANDARD_GRAVITY = 9.80665

_imufusion: Any = None
_np: Any = None
try:
    import imufusion
    import numpy

    _imufusion = imufusion
    _np = numpy
except ImportError:
    pass


def ahrs_available() -> bool:
    """True when imufusion (and numpy) can be imported."""
    return _imufusion is not None


class FusionAhrs:
    """
    Wrapper around imufusion Ahrs in the NED convention.

    Feed accelerometer (m/s^2), gyroscope (deg/s) and optionally
    magnetometer (uT) at each time step; heading_deg is the yaw in [0, 360).
    """

    def __init__(self, gain: float = 0.5, sample_rate_hz: float = 10.0) -> None:
        if _imufusion is None:
            raise RuntimeError("imufusion not installed; pip install imufusion")
        self._ahrs = _imufusion.Ahrs()
        self._ahrs.settings = _imufusion.Settings(
            _imufusion.CONVENTION_NED,
            gain,
            2000,  # gyroscope range, deg/s
            10,  # acceleration rejection, deg
            10,  # magnetic rejection, deg
            int(5 * sample_rate_hz),  # recovery trigger period, samples
        )
        self._yaw: float = 0.0
        self._pitch: float = 0.0
        self._roll: float = 0.0
        self._initialized = False

    def update(
        self,
        accel: Tuple[float, float, float],
        gyro: Tuple[float, float, float],
        sample_period_s: float,
        magnetometer: Optional[Tuple[float, float, float]] = None,
    ) -> None:
        """
        Update AHRS with one sample.

        accel: (x, y, z) in m/s^2 (converted to g for imufusion)
        gyro: (x, y, z) in deg/s
        magnetometer: (x, y, z) in uT, or None for gyro/accel only
        sample_period_s: time since previous sample in seconds
        """
        g = _np.array([c / STANDARD_GRAVITY for c in accel], dtype=float)
        w = _np.array(gyro, dtype=float)
        dt = max(0.0, float(sample_period_s))
        if magnetometer is None:
            self._ahrs.update_no_magnetometer(w, g, dt)
        else:
            m = _np.array(magnetometer, dtype=float)
            self._ahrs.update(w, g, m, dt)
        euler = self._ahrs.quaternion.to_euler()
        self._roll, self._pitch, self._yaw = (
            float(euler[0]),
            float(euler[1]),
            float(euler[2]),
        )
        self._initialized = True

    @property
    def heading_deg(self) -> float:
        """Heading (yaw) in degrees [0, 360)."""
        return normalize_heading(self._yaw)

    @property
    def pitch_deg(self) -> float:
        """Pitch in degrees."""
        return self._pitch

    @property
    def roll_deg(self) -> float:
        """Roll in degrees."""
        return self._roll

    @property
    def initialized(self) -> bool:
        """True after at least one update."""
        return self._initialized
