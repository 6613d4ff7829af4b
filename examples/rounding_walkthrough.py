#!/usr/bin/env python3
"""
Walk through truncation and round-nearest-even on a small custom format.
"""

from __future__ import annotations

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from fpv_format import format_description  # noqa: E402
from fpv_populator import populator  # noqa: E402
from fpv_types import FloatFormat, RoundingMode  # noqa: E402


def main() -> None:
    fmt = FloatFormat.of(4, 4)
    for value in (1.03125, 1.09375, 1.1, 15.75, 240.0, 250.0, 257.0):
        rne = populator(fmt).of_double(value)
        trunc = populator(fmt).of_double(value, rounding_mode=RoundingMode.TRUNCATE)
        print(f"{value}:")
        print(f"  rne      {format_description(rne)}")
        print(f"  truncate {format_description(trunc)}")
        if not rne.is_infinity:
            print(f"  ulp      {format_description(rne.ulp())}")

    explicit = fmt.explicit_format()
    raw = populator(explicit).of_spaced_binary_string("0 0111 00110")
    print(f"explicit {format_description(raw)}")
    print(f"canonical {format_description(raw.canonicalize())}")
    print(f"implicit {format_description(raw.to_implicit())}")


if __name__ == "__main__":
    main()
