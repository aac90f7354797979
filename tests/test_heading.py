"""
Unit tests for the heading calculator: tilt-compensated and planar paths.
"""

import itertools
import math

import pytest

from compass_fusion.heading import (
    compute_magnetic_heading,
    estimate_heading,
    planar_heading,
    tilt_compensated_heading,
)
from compass_fusion.samples import HeadingMethod

FLAT = (0.0, 0.0, 9.8)


class TestTiltCompensatedHeading:
    """Device flat: heading follows the horizontal field."""

    def test_north(self) -> None:
        heading = compute_magnetic_heading((20.0, 0.0, 10.0), FLAT)
        assert heading == pytest.approx(0.0, abs=1e-9)

    def test_field_along_positive_y(self) -> None:
        assert compute_magnetic_heading((0.0, 20.0, -40.0), FLAT) == pytest.approx(270.0)

    def test_field_along_negative_y(self) -> None:
        assert compute_magnetic_heading((0.0, -20.0, -40.0), FLAT) == pytest.approx(90.0)

    def test_field_along_negative_x(self) -> None:
        assert compute_magnetic_heading((-20.0, 0.0, -40.0), FLAT) == pytest.approx(180.0)

    def test_method_is_tilt_compensated(self) -> None:
        estimate = estimate_heading((20.0, 5.0, 10.0), FLAT)
        assert estimate.method is HeadingMethod.TILT_COMPENSATED

    def test_vertical_component_does_not_matter_when_flat(self) -> None:
        a = compute_magnetic_heading((20.0, 10.0, -40.0), FLAT)
        b = compute_magnetic_heading((20.0, 10.0, 5.0), FLAT)
        assert a == pytest.approx(b)

    def test_gravity_scale_does_not_matter(self) -> None:
        a = compute_magnetic_heading((20.0, 10.0, -40.0), (0.0, 0.0, 9.8))
        b = compute_magnetic_heading((20.0, 10.0, -40.0), (0.0, 0.0, 1.0))
        assert a == pytest.approx(b)

    def test_field_parallel_to_gravity_returns_none(self) -> None:
        assert tilt_compensated_heading((0.0, 0.0, 40.0), FLAT) is None


class TestPlanarFallback:
    """No usable accelerometer: plain atan2(y, x)."""

    def test_no_accelerometer(self) -> None:
        estimate = estimate_heading((0.0, 20.0, 0.0), None)
        assert estimate.method is HeadingMethod.PLANAR
        assert estimate.heading == pytest.approx(90.0)

    def test_zero_accelerometer_routes_to_fallback(self) -> None:
        estimate = estimate_heading((20.0, 0.0, 10.0), (0.0, 0.0, 0.0))
        assert estimate.method is HeadingMethod.PLANAR
        assert estimate.heading == pytest.approx(0.0)

    def test_zero_magnetometer_does_not_raise(self) -> None:
        estimate = estimate_heading((0.0, 0.0, 0.0), FLAT)
        assert estimate.method is HeadingMethod.PLANAR
        assert estimate.heading == 0.0

    def test_field_parallel_to_gravity_falls_back(self) -> None:
        estimate = estimate_heading((0.0, 0.0, 40.0), FLAT)
        assert estimate.method is HeadingMethod.PLANAR

    def test_negative_angle_normalised(self) -> None:
        assert planar_heading((0.0, -20.0, 0.0)) == pytest.approx(270.0)


class TestHeadingRange:
    """Output always finite and in [0, 360)."""

    def test_grid_of_inputs(self) -> None:
        values = (-150.0, -20.0, -0.5, 0.0, 0.5, 33.0, 180.0)
        accels = [(0.0, 0.0, 9.8), (3.0, -4.0, 8.0), (9.8, 0.0, 0.0), (0.0, 0.0, 0.0), None]
        for mag in itertools.product(values, repeat=3):
            for accel in accels:
                heading = compute_magnetic_heading(mag, accel)
                assert math.isfinite(heading)
                assert 0.0 <= heading < 360.0
