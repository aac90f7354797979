"""
Reliability scoring: accuracy from recent heading spread, sensor quality from
sample-to-sample variation of the raw vectors.
"""

import math
from typing import Optional, Sequence

from compass_fusion.angles import distance, shortest_angular_delta
from compass_fusion.samples import HeadingHistoryEntry, RawSample, SensorQuality

MIN_HISTORY = 5
ACCURACY_WINDOW = 15
ZERO_ACCURACY_STD_DEG = 25.0

EXCELLENT_THRESHOLD = 0.1
GOOD_THRESHOLD = 0.3
FAIR_THRESHOLD = 0.5

# quality_hint cutoffs for degraded field readings
_POOR_HINT = 0.35
_FAIR_HINT = 0.7


def rebase_headings(headings: Sequence[float]) -> list:
    """
    Unwrap headings relative to the first one so that 359 and 1 sit 2 apart
    rather than 358 apart.
    """
    if not headings:
        return []
    ref = headings[0]
    return [ref + shortest_angular_delta(ref, h) for h in headings]


def heading_std_dev(headings: Sequence[float]) -> float:
    values = rebase_headings(headings)
    n = len(values)
    if n == 0:
        return 0.0
    mean = sum(values) / n
    return math.sqrt(sum((v - mean) ** 2 for v in values) / n)


def score(
    history: Sequence[HeadingHistoryEntry],
    min_history: int = MIN_HISTORY,
    window: int = ACCURACY_WINDOW,
) -> float:
    """
    Accuracy in [0, 1] from the spread of the most recent headings.

    Below min_history entries the accuracy is undetermined and 0 is returned.
    A 25 degree standard deviation maps to zero accuracy.
    """
    if len(history) < min_history:
        return 0.0
    recent = list(history)[-window:]
    headings = [e.heading for e in recent if math.isfinite(e.heading)]
    if len(headings) < min_history:
        return 0.0
    sd = heading_std_dev(headings)
    return max(0.0, min(1.0, 1.0 - sd / ZERO_ACCURACY_STD_DEG))


def classify_quality(
    sample: RawSample,
    previous: Optional[RawSample],
    excellent: float = EXCELLENT_THRESHOLD,
    good: float = GOOD_THRESHOLD,
    fair: float = FAIR_THRESHOLD,
) -> SensorQuality:
    """Stability class from the change since the previous raw sample."""
    if previous is None:
        return SensorQuality.UNKNOWN
    mag_var = distance(sample.magnetometer, previous.magnetometer)
    if sample.accelerometer is not None and previous.accelerometer is not None:
        accel_var = distance(sample.accelerometer, previous.accelerometer)
    else:
        accel_var = 0.0
    worst = max(mag_var, accel_var)
    if worst < excellent:
        return SensorQuality.EXCELLENT
    if worst < good:
        return SensorQuality.GOOD
    if worst < fair:
        return SensorQuality.FAIR
    return SensorQuality.POOR


def degrade_quality(quality: SensorQuality, quality_hint: float) -> SensorQuality:
    """Cap the stability class when the field reading itself is implausible."""
    if quality is SensorQuality.UNKNOWN:
        return quality
    if quality_hint < _POOR_HINT:
        return SensorQuality.POOR
    if quality_hint < _FAIR_HINT and quality.rank > SensorQuality.FAIR.rank:
        return SensorQuality.FAIR
    return quality
