"""
Unit tests for sample validation: rejection rules and quality hint.
"""

import math

import pytest

from compass_fusion.samples import RawSample
from compass_fusion.validation import magnetometer_quality, validate

FLAT = (0.0, 0.0, 9.81)


def _sample(mag, accel=FLAT, gyro=None) -> RawSample:
    return RawSample(magnetometer=mag, accelerometer=accel, gyroscope=gyro, timestamp_ms=0)


class TestValidateRejects:
    """Invalid input is rejected with a reason."""

    def test_nan_axis_rejected(self) -> None:
        result = validate(_sample((math.nan, 0.0, 0.0)))
        assert result.ok is False
        assert "non-finite" in result.reason

    def test_infinite_axis_rejected(self) -> None:
        assert validate(_sample((25.0, math.inf, 0.0))).ok is False

    def test_saturated_axis_rejected(self) -> None:
        result = validate(_sample((300.0, 0.0, 0.0)))
        assert result.ok is False
        assert "saturated" in result.reason

    def test_negative_saturation_rejected(self) -> None:
        assert validate(_sample((10.0, -250.0, 100.0))).ok is False

    def test_field_below_noise_floor_rejected(self) -> None:
        result = validate(_sample((1.0, 1.0, 1.0)))
        assert result.ok is False
        assert "noise floor" in result.reason

    def test_non_finite_accelerometer_rejected(self) -> None:
        assert validate(_sample((25.0, -12.0, 8.0), accel=(0.0, math.nan, 9.8))).ok is False

    def test_saturated_accelerometer_rejected(self) -> None:
        assert validate(_sample((25.0, -12.0, 8.0), accel=(200.0, 0.0, 9.8))).ok is False

    def test_non_finite_gyroscope_rejected(self) -> None:
        sample = _sample((25.0, -12.0, 8.0), gyro=(0.0, 0.0, math.inf))
        assert validate(sample).ok is False


class TestValidateAccepts:
    """Plausible readings pass with a quality hint."""

    def test_typical_reading_accepted(self) -> None:
        result = validate(_sample((25.5, -12.3, 8.7)))
        assert result.ok is True
        assert result.quality_hint == 1.0
        assert result.field_strength == pytest.approx(29.62, abs=0.01)

    def test_missing_accelerometer_accepted(self) -> None:
        assert validate(_sample((25.5, -12.3, 8.7), accel=None)).ok is True

    def test_boundary_200_accepted(self) -> None:
        assert validate(_sample((200.0, 1.0, 0.0))).ok is True


class TestQualityHint:
    """Quality penalties for unusual field strength, dead axes, near saturation."""

    def test_slightly_strong_field(self) -> None:
        # |B| ~ 67 uT: typical but outside the best band
        assert magnetometer_quality((60.0, 30.0, 0.0), 67.08) == pytest.approx(0.6)

    def test_very_strong_field(self) -> None:
        assert magnetometer_quality((100.0, 1.0, 0.0), 100.0) == pytest.approx(0.3)

    def test_dead_axis(self) -> None:
        assert magnetometer_quality((40.0, 0.1, 10.0), 41.2) == pytest.approx(0.4)

    def test_near_saturation(self) -> None:
        assert magnetometer_quality((160.0, 10.0, 0.0), 160.3) == pytest.approx(0.15)

    def test_hint_within_unit_interval(self) -> None:
        for mag in [(5.0, 0.0, 0.0), (25.0, 25.0, 25.0), (199.0, 199.0, 199.0)]:
            result = validate(_sample(mag))
            assert 0.0 <= result.quality_hint <= 1.0
