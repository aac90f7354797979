#!/usr/bin/env python3
"""
LibFuzzer harness for control API request handling (_handle_request).

Feed raw bytes as JSON. Fuzzer exercises request parsing and validation.
Run: python fuzz/fuzz_control_api.py fuzz/corpus/control_api/ [options]
"""

import json
import sys

try:
    import atheris
except ImportError:
    print("Install atheris: pip install atheris")
    sys.exit(1)

with atheris.instrument_imports():
    from compass_fusion.control_api import _handle_request
    from compass_fusion.pipeline import CompassPipeline


def test_one_input(data: bytes) -> None:
    """Single fuzz iteration: parse JSON and handle as a control request."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return
    try:
        request = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return
    response = _handle_request(CompassPipeline(), request)
    json.dumps(response)


def main() -> None:
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
