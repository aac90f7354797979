"""
Build NMEA 0183 heading sentences (HDM, HDT, HDG) with the magnetic-compass
talker ID "HC".
"""

import math
from typing import Optional, Tuple

from compass_fusion.angles import normalize_heading
from compass_fusion.samples import HeadingResult

TALKER = "HC"


def _nmea_checksum(s: str) -> str:
    """Compute NMEA checksum (xor of bytes between $ and *)."""
    c = 0
    for ch in s:
        c ^= ord(ch)
    return f"{c:02X}"


def _sentence(body: str) -> str:
    return f"${body}*{_nmea_checksum(body)}\r\n"


def _heading_field(heading_deg: float) -> str:
    """Heading as x.x in [0, 360); non-finite becomes an empty field."""
    if not math.isfinite(heading_deg):
        return ""
    h = round(normalize_heading(heading_deg), 1)
    if h >= 360.0:
        h = 0.0
    return f"{h:.1f}"


def _signed_field(value: Optional[float], positive: str, negative: str) -> str:
    """Unsigned magnitude plus direction letter, e.g. '0.5,E'; empty if None."""
    if value is None or not math.isfinite(value):
        return ","
    letter = positive if value >= 0 else negative
    return f"{abs(value):.1f},{letter}"


def build_hdm(heading_deg: float, talker: str = TALKER) -> str:
    """HDM: heading relative to magnetic north."""
    return _sentence(f"{talker}HDM,{_heading_field(heading_deg)},M")


def build_hdt(heading_deg: float, talker: str = TALKER) -> str:
    """HDT: heading relative to true north."""
    return _sentence(f"{talker}HDT,{_heading_field(heading_deg)},T")


def build_hdg(
    heading_deg: float,
    deviation_deg: Optional[float] = None,
    variation_deg: Optional[float] = None,
    talker: str = TALKER,
) -> str:
    """
    HDG: magnetic sensor heading with deviation and variation.

    variation_deg is the magnetic declination, east positive.
    """
    return _sentence(
        f"{talker}HDG,{_heading_field(heading_deg)},"
        f"{_signed_field(deviation_deg, 'E', 'W')},"
        f"{_signed_field(variation_deg, 'E', 'W')}"
    )


def result_to_nmea(result: Optional[HeadingResult]) -> Tuple[Optional[str], ...]:
    """
    Build (HDM, HDT, HDG) for a heading result.

    Returns (None, None, None) if result is None.
    """
    if result is None:
        return (None, None, None)
    hdm = build_hdm(result.magnetic_heading)
    hdt = build_hdt(result.true_heading)
    hdg = build_hdg(result.magnetic_heading, variation_deg=result.declination_applied)
    return (hdm, hdt, hdg)
