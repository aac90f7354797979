#!/usr/bin/env python3
"""
LibFuzzer harness for the JSON-lines wire format (parse_line).

Feed raw bytes (UTF-8). Fuzzer exercises JSON decoding and type coercion.
Run: python fuzz/fuzz_messages.py fuzz/corpus/messages/ [options]
"""

import sys

try:
    import atheris
except ImportError:
    print("Install atheris: pip install atheris")
    sys.exit(1)

with atheris.instrument_imports():
    from compass_fusion.sources.messages import parse_line


def test_one_input(data: bytes) -> None:
    """Single fuzz iteration: decode data as UTF-8 and parse as one wire line."""
    try:
        line = data.decode("utf-8")
    except UnicodeDecodeError:
        return
    parse_line(line)


def main() -> None:
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
