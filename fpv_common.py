"""Common errors and validation helpers for floating-point values."""
from __future__ import annotations

import re
from typing import Tuple


class FpvError(ValueError):
    """Raised for floating-point value validation or conversion errors."""


class WidthMismatchError(FpvError):
    """A field or operand width disagrees with the expected format."""


class AlreadyPopulatedError(FpvError):
    """A single-use populator was asked to construct a second value."""


class UnsupportedRoundingModeError(FpvError, NotImplementedError):
    """The requested rounding mode is not implemented."""


class InfinityUnsupportedError(FpvError):
    """An infinity was requested in a format that cannot encode one."""


class RangeExceededError(FpvError):
    """A double lies outside the finite range of a range-checked format."""


class InvalidComparisonError(FpvError):
    """An ordering was requested against NaN."""


class InvalidBitsError(FpvError):
    """Unknown bits were found where a definite value is required."""


BIT_STRING_RE = re.compile(r"^[01xXzZ]+$")


def check_bit_string(text: str) -> None:
    """Validate that a string only holds 0/1/x/z bit characters."""
    if not isinstance(text, str):
        raise FpvError(f"Bit string must be str, got {type(text)}")
    if not BIT_STRING_RE.match(text):
        raise FpvError(f"Invalid bit string '{text}': must match [01xXzZ]+")


def check_width(what: str, actual: int, expected: int) -> None:
    """Raise WidthMismatchError unless actual == expected."""
    if actual != expected:
        raise WidthMismatchError(f"{what} width must be {expected}, got {actual}")


def check_fits(what: str, value: int, width: int) -> None:
    """Raise WidthMismatchError when an unsigned integer needs more than width bits."""
    if value < 0:
        raise WidthMismatchError(f"{what} must be non-negative, got {value}")
    if value >> width:
        raise WidthMismatchError(f"{what} {value} does not fit in {width} bits")


def split_spaced_fields(text: str) -> Tuple[str, str, str]:
    """Split a 'sign exponent mantissa' string into its three fields."""
    parts = text.split()
    if len(parts) != 3:
        raise FpvError(f"Expected 'sign exponent mantissa', got '{text}'")
    return parts[0], parts[1], parts[2]
