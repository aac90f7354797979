"""
compass-fusion: tilt-compensated, declination-corrected compass heading.

Fuses magnetometer and accelerometer (optionally gyroscope) samples into a
smoothed heading with an accuracy score, and streams it as NMEA HDM/HDT/HDG.
"""

__version__ = "0.1.0"
