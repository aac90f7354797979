"""
Magnetic declination lookup and magnetic-to-true heading conversion.

Lookup tiers: manual override, nearest regional sample within 5 degrees,
linear approximation inside the covered region, then zero.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from compass_fusion.angles import normalize_heading
from compass_fusion.samples import GeoCoordinate

SOURCE_MANUAL = "manual"
SOURCE_REGIONAL = "regional"
SOURCE_APPROXIMATION = "approximation"
SOURCE_DEFAULT = "default"

REGIONAL_RADIUS_DEG = 5.0


@dataclass(frozen=True)
class RegionalDeclination:
    """Known declination at a sample point (degrees, east positive)."""

    latitude: float
    longitude: float
    declination: float
    accuracy: float = 0.1


@dataclass(frozen=True)
class Declination:
    value: float
    accuracy: float
    source: str


# Indonesian archipelago
DEFAULT_REGIONAL_TABLE: Tuple[RegionalDeclination, ...] = (
    RegionalDeclination(-11.0, 95.0, 0.5),
    RegionalDeclination(-6.0, 105.0, 0.3),
    RegionalDeclination(6.0, 95.0, 0.7),
    RegionalDeclination(6.0, 141.0, 1.2),
    RegionalDeclination(-8.5, 115.0, 0.4),  # Bali
    RegionalDeclination(-6.2, 106.8, 0.2),  # Jakarta
    RegionalDeclination(-7.8, 110.4, 0.3),  # Yogyakarta
)

# (lat_min, lat_max, lon_min, lon_max)
DEFAULT_BOUNDING_BOX = (-11.0, 6.0, 95.0, 141.0)

DEFAULT_DECLINATION = Declination(0.0, 1.0, SOURCE_DEFAULT)


def true_heading(magnetic_heading: float, declination: float) -> float:
    """Magnetic heading plus declination, wrapped to [0, 360)."""
    return normalize_heading(magnetic_heading + declination + 360.0)


class DeclinationCorrector:
    """
    Regional declination table with approximation and default fallbacks.

    manual_declination, when set, is returned for every coordinate.
    """

    def __init__(
        self,
        table: Sequence[RegionalDeclination] = DEFAULT_REGIONAL_TABLE,
        bounding_box: Optional[Tuple[float, float, float, float]] = DEFAULT_BOUNDING_BOX,
        manual_declination: Optional[float] = None,
    ) -> None:
        self._table = tuple(table)
        self._box = bounding_box
        self._manual = manual_declination

    def _nearest(self, lat: float, lon: float) -> Tuple[Optional[RegionalDeclination], float]:
        best: Optional[RegionalDeclination] = None
        best_dist = math.inf
        for entry in self._table:
            d = math.hypot(lat - entry.latitude, lon - entry.longitude)
            if d < best_dist:
                best, best_dist = entry, d
        return best, best_dist

    def _approximate(self, lat: float, lon: float) -> Optional[Declination]:
        if self._box is None:
            return None
        lat_min, lat_max, lon_min, lon_max = self._box
        if lat_min <= lat <= lat_max and lon_min <= lon <= lon_max:
            return Declination(
                0.5 + (lon - lon_min) * 0.01, 0.5, SOURCE_APPROXIMATION
            )
        return None

    def declination_for(self, coordinate: Optional[GeoCoordinate]) -> Declination:
        """Declination for a coordinate; never raises, falls back to zero."""
        if self._manual is not None:
            return Declination(self._manual, 0.0, SOURCE_MANUAL)
        if coordinate is None:
            return DEFAULT_DECLINATION
        lat, lon = coordinate.latitude, coordinate.longitude
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return DEFAULT_DECLINATION

        entry, dist = self._nearest(lat, lon)
        if entry is not None and dist < REGIONAL_RADIUS_DEG:
            return Declination(entry.declination, entry.accuracy, SOURCE_REGIONAL)
        approx = self._approximate(lat, lon)
        if approx is not None:
            return approx
        return DEFAULT_DECLINATION
