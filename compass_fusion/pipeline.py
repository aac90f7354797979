"""
Pipeline orchestrator: validate -> calibrate/offset -> filter -> heading ->
declination -> smooth -> score, once per incoming sample.

Sensor samples and location updates may arrive on different threads. All
mutable state (calibration, filter state, heading history, last sample,
declination in effect) lives on the pipeline and is guarded by one lock.
Listeners are called after the lock is released.
"""

import logging
import math
import threading
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Tuple

from compass_fusion.accuracy import classify_quality, degrade_quality, score
from compass_fusion.angles import Vector3, shortest_angular_delta
from compass_fusion.calibration import CalibrationEngine
from compass_fusion.config import Config
from compass_fusion.declination import Declination, DeclinationCorrector, true_heading
from compass_fusion.filters import kalman_vector, low_pass, smooth_heading
from compass_fusion.fusion_ahrs import FusionAhrs
from compass_fusion.heading import HeadingEstimate, estimate_heading
from compass_fusion.samples import (
    GeoCoordinate,
    HeadingHistoryEntry,
    HeadingMethod,
    HeadingResult,
    RawSample,
    SensorQuality,
)
from compass_fusion.validation import ValidationResult, validate

logger = logging.getLogger(__name__)

MIN_HISTORY_SIZE = 15

HeadingListener = Callable[[HeadingResult], None]
ProgressListener = Callable[[int], None]


def _valid_coordinate(coordinate: GeoCoordinate) -> bool:
    lat, lon = coordinate.latitude, coordinate.longitude
    if isinstance(lat, bool) or isinstance(lon, bool):
        return False
    if not (isinstance(lat, (int, float)) and isinstance(lon, (int, float))):
        return False
    return (
        math.isfinite(lat)
        and math.isfinite(lon)
        and -90.0 <= lat <= 90.0
        and -180.0 <= lon <= 180.0
    )


class CompassPipeline:
    """
    Thread-safe heading pipeline.

    Feed on_raw_sample() from the sensor side and on_location_update() from
    the location side; register listeners for results and calibration
    progress, or poll latest_result().
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        declination: Optional[DeclinationCorrector] = None,
    ) -> None:
        self._config = config or Config()
        cfg = self._config
        self._lock = threading.Lock()
        self._calibration = CalibrationEngine(
            min_samples=cfg.calibration_samples,
            max_samples=cfg.calibration_max_samples,
            threshold=cfg.calibration_threshold,
        )
        self._corrector = declination or DeclinationCorrector(
            manual_declination=cfg.declination
        )
        self._declination: Declination = self._corrector.declination_for(None)
        self._location: Optional[GeoCoordinate] = None
        # Vector3 for low_pass, per-axis KalmanState triple for kalman
        self._filter_state: Any = None
        self._history: Deque[HeadingHistoryEntry] = deque(
            maxlen=max(MIN_HISTORY_SIZE, cfg.history_size)
        )
        self._last_sample: Optional[RawSample] = None
        self._smoothed: Optional[float] = None
        self._quality = SensorQuality.UNKNOWN
        self._latest: Optional[HeadingResult] = None
        self._heading_listeners: List[HeadingListener] = []
        self._progress_listeners: List[ProgressListener] = []
        self._ahrs: Optional[FusionAhrs] = None
        if cfg.heading_mode == "ahrs":
            try:
                self._ahrs = FusionAhrs(
                    gain=cfg.fusion_gain, sample_rate_hz=cfg.sample_rate_hz
                )
            except RuntimeError as e:
                logger.warning("%s; using tilt-compensated heading", e)
        self._last_progress = self._calibration.progress_percent()
        if cfg.auto_calibrate and self._calibration.needs_calibration():
            self.start_calibration()

    # Listeners

    def add_heading_listener(self, listener: HeadingListener) -> None:
        with self._lock:
            self._heading_listeners.append(listener)

    def add_calibration_listener(self, listener: ProgressListener) -> None:
        with self._lock:
            self._progress_listeners.append(listener)

    def _emit(
        self, result: Optional[HeadingResult], progress: Optional[int]
    ) -> None:
        with self._lock:
            heading_listeners = list(self._heading_listeners)
            progress_listeners = list(self._progress_listeners)
        if progress is not None:
            for on_progress in progress_listeners:
                try:
                    on_progress(progress)
                except Exception:
                    logger.exception("Calibration progress listener failed")
        if result is not None:
            for on_result in heading_listeners:
                try:
                    on_result(result)
                except Exception:
                    logger.exception("Heading listener failed")

    def _progress_changed(self) -> Optional[int]:
        """Call with the lock held."""
        progress = self._calibration.progress_percent()
        if progress == self._last_progress:
            return None
        self._last_progress = progress
        return progress

    # Inbound

    def on_raw_sample(self, sample: RawSample) -> Optional[HeadingResult]:
        """
        Process one raw sample.

        Returns the heading result, or None when the sample was rejected or
        processing failed; in both cases pipeline state is left untouched.
        """
        try:
            check = validate(sample)
        except (TypeError, ValueError, IndexError) as e:
            logger.debug("Malformed sample dropped: %s", e)
            return None
        if not check.ok:
            logger.debug(
                "Sample at %s ms dropped: %s", sample.timestamp_ms, check.reason
            )
            return None

        with self._lock:
            try:
                result = self._process(sample, check)
            except Exception:
                logger.exception(
                    "Sample at %s ms dropped: processing failed", sample.timestamp_ms
                )
                return None
            progress = self._progress_changed()
        self._emit(result, progress)
        return result

    def on_location_update(self, coordinate: GeoCoordinate) -> Optional[Declination]:
        """Update the declination in effect; returns it, or None if rejected."""
        if not _valid_coordinate(coordinate):
            logger.warning(
                "Ignoring invalid coordinate (%s, %s)",
                coordinate.latitude,
                coordinate.longitude,
            )
            return None
        declination = self._corrector.declination_for(coordinate)
        with self._lock:
            changed = declination != self._declination
            self._location = coordinate
            self._declination = declination
        if changed:
            logger.info(
                "Declination %.2f deg (%s) at (%.4f, %.4f)",
                declination.value,
                declination.source,
                coordinate.latitude,
                coordinate.longitude,
            )
        return declination

    # Processing; called with the lock held

    def _filter(self, magnetometer: Vector3) -> Tuple[Vector3, Any]:
        cfg = self._config
        if cfg.vector_filter == "low_pass":
            filtered = low_pass(magnetometer, self._filter_state, cfg.low_pass_alpha)
            return filtered, filtered
        if cfg.vector_filter == "kalman":
            return kalman_vector(
                magnetometer, self._filter_state, cfg.kalman_q, cfg.kalman_r
            )
        return magnetometer, None

    def _sample_period_s(self, sample: RawSample) -> float:
        last = self._last_sample
        if last is not None and sample.timestamp_ms > last.timestamp_ms:
            return (sample.timestamp_ms - last.timestamp_ms) / 1000.0
        return 1.0 / self._config.sample_rate_hz

    def _estimate(self, sample: RawSample, magnetometer: Vector3) -> HeadingEstimate:
        if (
            self._ahrs is not None
            and sample.gyroscope is not None
            and sample.accelerometer is not None
        ):
            self._ahrs.update(
                sample.accelerometer,
                sample.gyroscope,
                self._sample_period_s(sample),
                magnetometer=magnetometer,
            )
            heading = self._ahrs.heading_deg
            if math.isfinite(heading):
                return HeadingEstimate(heading, HeadingMethod.AHRS)
        return estimate_heading(magnetometer, sample.accelerometer)

    def _angular_velocity(self, heading: float, timestamp_ms: int) -> float:
        """deg/s between the newest history entry and this heading."""
        if not self._history:
            return 0.0
        last = self._history[-1]
        dt = (timestamp_ms - last.timestamp_ms) / 1000.0
        if dt <= 0:
            return 0.0
        return shortest_angular_delta(last.heading, heading) / dt

    def _process(self, sample: RawSample, check: ValidationResult) -> HeadingResult:
        cfg = self._config
        corrected = self._calibration.apply(sample.magnetometer)
        filtered, filter_state = self._filter(corrected)
        quality = degrade_quality(
            classify_quality(
                sample,
                self._last_sample,
                cfg.excellent_threshold,
                cfg.good_threshold,
                cfg.fair_threshold,
            ),
            check.quality_hint,
        )
        # The AHRS update is the only state change made ahead of the commit;
        # what follows is arithmetic on finite values.
        estimate = self._estimate(sample, filtered)

        if 0.0 < cfg.heading_smoothing < 1.0:
            velocity = self._angular_velocity(estimate.heading, sample.timestamp_ms)
            magnetic = smooth_heading(
                estimate.heading,
                self._smoothed,
                cfg.heading_smoothing,
                velocity,
                cfg.velocity_gain,
            )
        else:
            magnetic = estimate.heading
        declination = self._declination
        entry = HeadingHistoryEntry(estimate.heading, sample.timestamp_ms)
        accuracy = score(list(self._history) + [entry]) * check.quality_hint
        result = HeadingResult(
            magnetic_heading=magnetic,
            true_heading=true_heading(magnetic, declination.value),
            declination_applied=declination.value,
            accuracy_score=accuracy,
            sensor_quality=quality,
            is_calibrated=self._calibration.complete,
            timestamp_ms=sample.timestamp_ms,
            heading_method=estimate.method,
            declination_source=declination.source,
            field_strength=check.field_strength,
        )

        # Commit
        self._filter_state = filter_state
        self._history.append(entry)
        self._last_sample = sample
        self._smoothed = magnetic
        self._quality = quality
        self._latest = result
        if self._calibration.add_sample(sample.magnetometer):
            # Filter state holds vectors corrected with the old bias
            self._filter_state = None
        return result

    # Control surface

    def start_calibration(self) -> bool:
        """Start a calibration cycle; False if one is already collecting."""
        with self._lock:
            started = self._calibration.start()
            progress = self._progress_changed()
        self._emit(None, progress)
        return started

    def cancel_calibration(self) -> None:
        """Abort a running calibration cycle, keeping any previous bias."""
        with self._lock:
            self._calibration.cancel()
            progress = self._progress_changed()
        self._emit(None, progress)

    def is_calibrated(self) -> bool:
        with self._lock:
            return self._calibration.complete

    def needs_calibration(self) -> bool:
        with self._lock:
            return self._calibration.needs_calibration()

    def calibration_progress(self) -> int:
        with self._lock:
            return self._calibration.progress_percent()

    def current_quality(self) -> SensorQuality:
        with self._lock:
            return self._quality

    def latest_result(self) -> Optional[HeadingResult]:
        with self._lock:
            return self._latest

    def current_declination(self) -> Declination:
        with self._lock:
            return self._declination

    def get_status(self) -> dict:
        """Calibration, quality, declination and latest heading for the control API."""
        with self._lock:
            status = self._calibration.to_dict()
            status["sensor_quality"] = self._quality.value
            status["declination"] = self._declination.value
            status["declination_source"] = self._declination.source
            status["location"] = (
                [self._location.latitude, self._location.longitude]
                if self._location
                else None
            )
            status["heading"] = self._latest.to_dict() if self._latest else None
            status["history_length"] = len(self._history)
            return status
