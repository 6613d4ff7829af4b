#!/usr/bin/env python3
"""
Inspect doubles, packed bit patterns and named constants of a floating-point format.
"""

from fpv_inspect import main


if __name__ == "__main__":
    raise SystemExit(main())
