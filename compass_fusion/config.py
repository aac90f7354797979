"""
Configuration defaults and parsing for compass-fusion.
"""

import argparse
from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    """Runtime configuration."""

    source: str = "remote"
    replay_file: Optional[str] = None
    remote_host: str = "0.0.0.0"
    remote_port: int = 2949
    nmea_host: str = "127.0.0.1"
    nmea_port: int = 2948
    output_rate_hz: float = 5.0
    control_port: int = 0
    sample_rate_hz: float = 10.0
    heading_mode: str = "tilt"
    fusion_gain: float = 0.5
    vector_filter: str = "low_pass"
    low_pass_alpha: float = 0.8
    kalman_q: float = 0.1
    kalman_r: float = 0.1
    heading_smoothing: float = 0.15
    velocity_gain: float = 0.01
    calibration_samples: int = 50
    calibration_max_samples: int = 200
    calibration_threshold: float = 0.1
    auto_calibrate: bool = False
    history_size: int = 30
    declination: Optional[float] = None
    excellent_threshold: float = 0.1
    good_threshold: float = 0.3
    fair_threshold: float = 0.5
    debug: bool = False


def parse_args(args: Optional[list] = None) -> Config:
    """Parse command-line arguments into Config."""
    parser = argparse.ArgumentParser(
        description=(
            "Fuse magnetometer and accelerometer samples into a tilt-compensated, "
            "declination-corrected heading; output NMEA HDM/HDT/HDG."
        )
    )
    parser.add_argument(
        "--source",
        choices=("remote", "replay"),
        default="remote",
        help="Sample source: remote (TCP JSON lines) or replay (file) (default: remote)",
    )
    parser.add_argument(
        "--replay-file",
        default=None,
        help="JSON-lines sample file for --source=replay ('-' for stdin)",
    )
    parser.add_argument(
        "--remote-host",
        default="0.0.0.0",
        help="Bind address for remote source (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--remote-port",
        type=int,
        default=2949,
        help="Port for remote source (default: 2949)",
    )
    parser.add_argument(
        "--nmea-host",
        default="127.0.0.1",
        help="Bind address for NMEA heading server (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--nmea-port",
        type=int,
        default=2948,
        help="Port for NMEA heading server (default: 2948)",
    )
    parser.add_argument(
        "--output-rate",
        type=float,
        default=5.0,
        help="NMEA output rate in Hz (default: 5)",
    )
    parser.add_argument(
        "--control-port",
        type=int,
        default=0,
        help="TCP port for control API (0=disabled, default 0)",
    )
    parser.add_argument(
        "--sample-rate",
        type=float,
        default=10.0,
        help="Nominal sensor sample rate in Hz (default: 10)",
    )
    parser.add_argument(
        "--heading-mode",
        choices=("tilt", "ahrs"),
        default="tilt",
        help="tilt (accel-compensated) or ahrs (gyro-aided, needs imufusion)",
    )
    parser.add_argument(
        "--fusion-gain",
        type=float,
        default=0.5,
        help="AHRS fusion gain 0-1 (default: 0.5)",
    )
    parser.add_argument(
        "--vector-filter",
        choices=("low_pass", "kalman", "none"),
        default="low_pass",
        help="Magnetometer noise filter (default: low_pass)",
    )
    parser.add_argument(
        "--low-pass-alpha",
        type=float,
        default=0.8,
        help="Low-pass filter weight of the new sample 0-1 (default: 0.8)",
    )
    parser.add_argument(
        "--kalman-q",
        type=float,
        default=0.1,
        help="Kalman process noise (default: 0.1)",
    )
    parser.add_argument(
        "--kalman-r",
        type=float,
        default=0.1,
        help="Kalman measurement noise (default: 0.1)",
    )
    parser.add_argument(
        "--heading-smoothing",
        type=float,
        default=0.15,
        help="Base heading smoothing factor; 0 or >=1 disables (default: 0.15)",
    )
    parser.add_argument(
        "--velocity-gain",
        type=float,
        default=0.01,
        help="Smoothing factor increase per deg/s of rotation (default: 0.01)",
    )
    parser.add_argument(
        "--calibration-samples",
        type=int,
        default=50,
        help="Samples needed to complete calibration, min 10 (default: 50)",
    )
    parser.add_argument(
        "--calibration-max-samples",
        type=int,
        default=200,
        help="Calibration buffer size (default: 200)",
    )
    parser.add_argument(
        "--calibration-threshold",
        type=float,
        default=0.1,
        help="Max per-axis std-dev for calibration to complete (default: 0.1)",
    )
    parser.add_argument(
        "--auto-calibrate",
        action="store_true",
        help="Start calibration at startup",
    )
    parser.add_argument(
        "--history-size",
        type=int,
        default=30,
        help="Heading history length for accuracy, min 15 (default: 30)",
    )
    parser.add_argument(
        "--declination",
        type=float,
        default=None,
        help="Fixed magnetic declination in degrees, east positive (default: lookup)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parsed = parser.parse_args(args)
    return Config(
        source=parsed.source,
        replay_file=parsed.replay_file,
        remote_host=parsed.remote_host,
        remote_port=parsed.remote_port,
        nmea_host=parsed.nmea_host,
        nmea_port=parsed.nmea_port,
        output_rate_hz=parsed.output_rate,
        control_port=parsed.control_port,
        sample_rate_hz=parsed.sample_rate,
        heading_mode=parsed.heading_mode,
        fusion_gain=parsed.fusion_gain,
        vector_filter=parsed.vector_filter,
        low_pass_alpha=parsed.low_pass_alpha,
        kalman_q=parsed.kalman_q,
        kalman_r=parsed.kalman_r,
        heading_smoothing=parsed.heading_smoothing,
        velocity_gain=parsed.velocity_gain,
        calibration_samples=parsed.calibration_samples,
        calibration_max_samples=parsed.calibration_max_samples,
        calibration_threshold=parsed.calibration_threshold,
        auto_calibrate=parsed.auto_calibrate,
        history_size=parsed.history_size,
        declination=parsed.declination,
        debug=parsed.debug,
    )
