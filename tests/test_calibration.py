"""
Unit tests for the calibration engine: state machine, convergence, bias.
"""

import pytest

from compass_fusion.calibration import (
    CalibrationEngine,
    CalibrationStatus,
    bias_from_samples,
)

FIELD = (30.0, -12.0, 45.0)


def _jittered(i: int, base=FIELD, jitter: float = 0.01) -> tuple:
    j = jitter * ((i % 3) - 1)
    return (base[0] + j, base[1] - j, base[2] + j)


class TestCalibrationStateMachine:
    """idle -> collecting -> complete, start/cancel semantics."""

    def test_initial_state(self) -> None:
        engine = CalibrationEngine()
        assert engine.status is CalibrationStatus.IDLE
        assert engine.complete is False
        assert engine.needs_calibration() is True
        assert engine.magnetometer_bias == (0.0, 0.0, 0.0)
        assert engine.progress_percent() == 0

    def test_start_enters_collecting(self) -> None:
        engine = CalibrationEngine()
        assert engine.start() is True
        assert engine.status is CalibrationStatus.COLLECTING
        assert engine.needs_calibration() is False

    def test_start_while_collecting_keeps_buffer(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        for i in range(5):
            engine.add_sample(_jittered(i))
        assert engine.start() is False
        assert engine.sample_count == 5
        assert engine.status is CalibrationStatus.COLLECTING

    def test_samples_ignored_when_idle(self) -> None:
        engine = CalibrationEngine()
        assert engine.add_sample(FIELD) is False
        assert engine.sample_count == 0

    def test_cancel_without_prior_completion_returns_to_idle(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        engine.add_sample(FIELD)
        engine.cancel()
        assert engine.status is CalibrationStatus.IDLE
        assert engine.sample_count == 0
        assert engine.needs_calibration() is True

    def test_cancel_after_completion_keeps_bias(self) -> None:
        engine = CalibrationEngine(min_samples=10)
        engine.start()
        for i in range(10):
            engine.add_sample(_jittered(i))
        bias = engine.magnetometer_bias
        engine.start()
        engine.add_sample((0.0, 0.0, 0.0))
        engine.cancel()
        assert engine.status is CalibrationStatus.COMPLETE
        assert engine.magnetometer_bias == bias
        assert engine.complete is True

    def test_cancel_when_idle_is_noop(self) -> None:
        engine = CalibrationEngine()
        engine.cancel()
        assert engine.status is CalibrationStatus.IDLE


class TestCalibrationConvergence:
    """Near-constant input completes with offset = -constant."""

    def test_fifty_steady_samples_complete(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        done = [engine.add_sample(_jittered(i)) for i in range(50)]
        assert done[-1] is True
        assert not any(done[:-1])
        assert engine.status is CalibrationStatus.COMPLETE
        assert engine.complete is True
        assert engine.progress_percent() == 100

    def test_offset_is_negated_constant(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        for i in range(60):
            engine.add_sample(_jittered(i))
        assert engine.offset == pytest.approx((-30.0, 12.0, -45.0), abs=1e-6)
        assert engine.magnetometer_bias == pytest.approx(FIELD, abs=1e-6)

    def test_apply_subtracts_bias(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        for i in range(50):
            engine.add_sample(_jittered(i))
        out = engine.apply((35.0, -10.0, 40.0))
        assert out == pytest.approx((5.0, 2.0, -5.0), abs=1e-6)

    def test_high_variance_stays_collecting(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        for i in range(150):
            engine.add_sample((10.0 * (i % 2), 0.0, 0.0))
        assert engine.status is CalibrationStatus.COLLECTING
        assert engine.complete is False
        assert engine.progress_percent() == 99
        assert engine.std_dev[0] == pytest.approx(5.0)

    def test_progress_counts_samples(self) -> None:
        engine = CalibrationEngine(min_samples=50)
        engine.start()
        for i in range(25):
            engine.add_sample(_jittered(i))
        assert engine.progress_percent() == 50

    def test_min_samples_clamped_to_ten(self) -> None:
        engine = CalibrationEngine(min_samples=3)
        assert engine.min_samples == 10

    def test_buffer_is_bounded(self) -> None:
        engine = CalibrationEngine(min_samples=10, max_samples=20)
        engine.start()
        for i in range(100):
            engine.add_sample((float(i), 0.0, 0.0))
        assert engine.sample_count == 20

    def test_recalibration_replaces_bias(self) -> None:
        engine = CalibrationEngine(min_samples=10)
        engine.start()
        for i in range(10):
            engine.add_sample(_jittered(i))
        engine.start()
        for i in range(10):
            engine.add_sample(_jittered(i, base=(1.0, 2.0, 3.0)))
        assert engine.magnetometer_bias == pytest.approx((1.0, 2.0, 3.0), abs=1e-6)


class TestCalibrationHelpers:
    """bias_from_samples and to_dict."""

    def test_bias_midpoint_of_range(self) -> None:
        samples = [(-10.0, 0.0, 5.0), (30.0, 4.0, 5.0), (0.0, 2.0, 5.0)]
        assert bias_from_samples(samples) == (10.0, 2.0, 5.0)

    def test_bias_of_empty_is_zero(self) -> None:
        assert bias_from_samples([]) == (0.0, 0.0, 0.0)

    def test_to_dict_fields(self) -> None:
        engine = CalibrationEngine()
        engine.start()
        engine.add_sample(FIELD)
        data = engine.to_dict()
        assert data["calibration_status"] == "collecting"
        assert data["is_calibrated"] is False
        assert data["samples_collected"] == 1
        assert data["samples_needed"] == 50
        assert data["progress"] == 2
        assert data["magnetometer_bias"] == [0.0, 0.0, 0.0]
