#!/usr/bin/env python3
"""
LibFuzzer harness for the heading pipeline.

Each input is split into wire lines and replayed through one pipeline, so
arbitrary samples and locations (NaN, huge, zero vectors) reach validation,
calibration, filtering and scoring. Every result must be a finite heading.
Run: python fuzz/fuzz_pipeline.py fuzz/corpus/pipeline/ [options]
"""

import math
import sys

try:
    import atheris
except ImportError:
    print("Install atheris: pip install atheris")
    sys.exit(1)

with atheris.instrument_imports():
    from compass_fusion.config import Config
    from compass_fusion.pipeline import CompassPipeline
    from compass_fusion.sources import replay_lines


def test_one_input(data: bytes) -> None:
    """Single fuzz iteration: replay decoded lines, check every result."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return
    pipeline = CompassPipeline(Config(auto_calibrate=True, calibration_samples=10))
    for result in replay_lines(pipeline, text.splitlines()):
        for value in (result.magnetic_heading, result.true_heading):
            if not (math.isfinite(value) and 0.0 <= value < 360.0):
                raise AssertionError(f"heading out of range: {value}")
        if not 0.0 <= result.accuracy_score <= 1.0:
            raise AssertionError(f"accuracy out of range: {result.accuracy_score}")


def main() -> None:
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
