"""
Unit tests for FusionAhrs and the pipeline's gyro-aided mode. Skips when
imufusion is unavailable.
"""

import math

import pytest

from compass_fusion.config import Config
from compass_fusion.fusion_ahrs import FusionAhrs, ahrs_available
from compass_fusion.pipeline import CompassPipeline
from compass_fusion.samples import HeadingMethod, RawSample

IMUFUSION_AVAILABLE = ahrs_available()


@pytest.mark.skipif(not IMUFUSION_AVAILABLE, reason="imufusion not installed")
class TestFusionAhrsValid:
    """Valid updates and properties when imufusion is available."""

    def test_initialized_false_before_update(self) -> None:
        ahrs = FusionAhrs(gain=0.5)
        assert ahrs.initialized is False

    def test_one_update_sets_initialized(self) -> None:
        ahrs = FusionAhrs(gain=0.5)
        ahrs.update((0.0, 0.0, 9.81), (0.0, 0.0, 0.0), 0.1)
        assert ahrs.initialized is True

    def test_heading_in_range(self) -> None:
        ahrs = FusionAhrs(gain=0.5)
        for _ in range(20):
            ahrs.update(
                (0.0, 0.0, 9.81), (0.0, 0.0, 0.0), 0.1, magnetometer=(20.0, 5.0, 40.0)
            )
        h = ahrs.heading_deg
        assert math.isfinite(h)
        assert 0.0 <= h < 360.0

    def test_level_device_small_pitch_roll(self) -> None:
        ahrs = FusionAhrs(gain=0.5)
        for _ in range(20):
            ahrs.update((0.0, 0.0, 9.81), (0.0, 0.0, 0.0), 0.1)
        assert abs(ahrs.pitch_deg) < 5.0

    def test_zero_period(self) -> None:
        ahrs = FusionAhrs(gain=0.5)
        ahrs.update((0.0, 0.0, 9.81), (0.0, 0.0, 0.0), 0.0)
        assert ahrs.initialized is True

    def test_pipeline_uses_ahrs_with_gyro(self) -> None:
        pipeline = CompassPipeline(Config(heading_mode="ahrs"))
        result = None
        for i in range(10):
            result = pipeline.on_raw_sample(
                RawSample(
                    magnetometer=(20.0, 5.0, 40.0),
                    accelerometer=(0.0, 0.0, 9.81),
                    gyroscope=(0.0, 0.0, 0.0),
                    timestamp_ms=i * 100,
                )
            )
        assert result.heading_method is HeadingMethod.AHRS
        assert 0.0 <= result.magnetic_heading < 360.0

    def test_pipeline_without_gyro_uses_tilt(self) -> None:
        pipeline = CompassPipeline(Config(heading_mode="ahrs"))
        result = pipeline.on_raw_sample(
            RawSample(magnetometer=(20.0, 5.0, 40.0), accelerometer=(0.0, 0.0, 9.81))
        )
        assert result.heading_method is HeadingMethod.TILT_COMPENSATED


@pytest.mark.skipif(IMUFUSION_AVAILABLE, reason="imufusion installed")
class TestFusionAhrsUnavailable:
    """Without imufusion the AHRS cannot be built and the pipeline falls back."""

    def test_constructor_raises(self) -> None:
        with pytest.raises(RuntimeError, match="imufusion not installed"):
            FusionAhrs(gain=0.5)

    def test_pipeline_falls_back_to_tilt(self) -> None:
        pipeline = CompassPipeline(Config(heading_mode="ahrs"))
        result = pipeline.on_raw_sample(
            RawSample(
                magnetometer=(20.0, 0.0, 10.0),
                accelerometer=(0.0, 0.0, 9.8),
                gyroscope=(0.0, 0.0, 0.0),
            )
        )
        assert result.heading_method is HeadingMethod.TILT_COMPENSATED
        assert result.magnetic_heading == pytest.approx(0.0, abs=1e-9)
