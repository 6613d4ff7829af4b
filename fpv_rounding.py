"""Conversion between native doubles and format fields.

Conversions toward a format operate on implicit J-bit formats only; the
explicit J-bit populator widens their results afterwards.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np

from fpv_common import UnsupportedRoundingModeError
from fpv_constants import constant_fields, infinity_fields, rules_for
from fpv_types import (
    IMPLEMENTED_ROUNDING_MODES,
    FloatFormat,
    FloatingPointConstant,
    Fields,
    RoundingMode,
)

logger = logging.getLogger(__name__)

DOUBLE_MANTISSA_WIDTH = 52
DOUBLE_BIAS = 1023


def decompose_double(value: float) -> Fields:
    """Split a double into its raw 1/11/52-bit fields."""
    bits = int(np.float64(value).view(np.uint64))
    return Fields(
        bits >> 63,
        (bits >> DOUBLE_MANTISSA_WIDTH) & 0x7FF,
        bits & ((1 << DOUBLE_MANTISSA_WIDTH) - 1),
    )


def _significand(fields: Fields) -> Tuple[int, int]:
    """Return a 53-bit significand with bit 52 set and its unbiased exponent."""
    if fields.exponent == 0:
        shift = DOUBLE_MANTISSA_WIDTH + 1 - fields.mantissa.bit_length()
        return fields.mantissa << shift, 1 - DOUBLE_BIAS - shift
    return fields.mantissa | (1 << DOUBLE_MANTISSA_WIDTH), fields.exponent - DOUBLE_BIAS


def _special_fields(fmt: FloatFormat, value: float, clamp: bool) -> Optional[Fields]:
    if math.isnan(value):
        return constant_fields(fmt, FloatingPointConstant.NAN)
    if math.isinf(value):
        return infinity_fields(fmt, value < 0, clamp=clamp)
    if value == 0.0:
        return Fields(1 if math.copysign(1.0, value) < 0 else 0, 0, 0)
    return None


def _saturate(fmt: FloatFormat, fields: Fields) -> Fields:
    """Replace a result above the largest normal with an infinity or the finite maximum."""
    largest = constant_fields(fmt, FloatingPointConstant.LARGEST_NORMAL)
    if (fields.exponent, fields.mantissa) <= (largest.exponent, largest.mantissa):
        return fields
    if rules_for(fmt).supports_infinities:
        logger.debug("Saturating overflow to infinity in %s", fmt.name)
        return infinity_fields(fmt, bool(fields.sign))
    logger.debug("Saturating overflow to largest normal in %s", fmt.name)
    return Fields(fields.sign, largest.exponent, largest.mantissa)


def _flush(fmt: FloatFormat, fields: Fields) -> Fields:
    if fmt.subnormal_as_zero and fields.exponent == 0 and fields.mantissa != 0:
        logger.debug("Flushing subnormal result to zero in %s", fmt.name)
        return Fields(fields.sign, 0, 0)
    return fields


def round_double(
    fmt: FloatFormat,
    value: float,
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
    clamp: bool = False,
) -> Fields:
    """Round a double into the fields of an implicit J-bit format.

    ``clamp`` maps an infinite input to the signed largest normal in formats
    that cannot encode infinity instead of raising.
    """
    if rounding_mode not in IMPLEMENTED_ROUNDING_MODES:
        raise UnsupportedRoundingModeError(f"Rounding mode {rounding_mode.value} is not implemented")
    value = float(value)
    special = _special_fields(fmt, value, clamp)
    if special is not None:
        return special

    double = decompose_double(value)
    sig, unbiased = _significand(double)
    mw = fmt.mantissa_width
    exponent = unbiased + fmt.bias
    shift = DOUBLE_MANTISSA_WIDTH - mw
    if exponent <= 0:
        shift += 1 - exponent
        exponent = 0

    if shift <= 0:
        kept = sig << -shift
        guard = rnd = sticky = 0
    else:
        kept = sig >> shift
        guard = (sig >> (shift - 1)) & 1
        rnd = (sig >> (shift - 2)) & 1 if shift >= 2 else 0
        sticky = int(sig & ((1 << (shift - 2)) - 1) != 0) if shift >= 3 else 0

    if rounding_mode == RoundingMode.ROUND_NEAREST_EVEN and guard and (rnd or sticky or kept & 1):
        kept += 1

    if exponent == 0:
        # a carry out of a subnormal mantissa lands on the smallest normal
        exponent = kept >> mw
    elif kept >> (mw + 1):
        kept >>= 1
        exponent += 1
    fields = Fields(double.sign, exponent, kept & ((1 << mw) - 1))
    return _flush(fmt, _saturate(fmt, fields))


def _scaled_floor(numerator: int, denominator: int, power: int) -> int:
    """floor(numerator / denominator * 2**power)."""
    if power >= 0:
        return (numerator << power) // denominator
    return numerator // (denominator << -power)


def unrounded_double(fmt: FloatFormat, value: float, clamp: bool = False) -> Fields:
    """Convert a double by exact integer scaling, discarding every bit that does not fit."""
    value = float(value)
    special = _special_fields(fmt, value, clamp)
    if special is not None:
        return special

    sign = 1 if value < 0 else 0
    numerator, denominator = abs(value).as_integer_ratio()
    unbiased = numerator.bit_length() - denominator.bit_length()
    mw = fmt.mantissa_width
    exponent = unbiased + fmt.bias
    if exponent <= 0:
        mantissa = _scaled_floor(numerator, denominator, fmt.bias - 1 + mw)
        fields = Fields(sign, 0, mantissa)
    else:
        significand = _scaled_floor(numerator, denominator, mw - unbiased)
        fields = Fields(sign, exponent, significand & ((1 << mw) - 1))
    return _flush(fmt, _saturate(fmt, fields))


def fields_to_double(fmt: FloatFormat, fields: Fields) -> float:
    """Exact double value of format fields (implicit or explicit J-bit)."""
    sign, exponent, mantissa = fields
    rules = rules_for(fmt)
    if rules.is_nan(fmt, exponent, mantissa):
        return math.nan
    if rules.is_infinity(fmt, exponent, mantissa):
        return -math.inf if sign else math.inf
    signed_one = -1.0 if sign else 1.0
    if exponent == 0 and fmt.subnormal_as_zero:
        return math.copysign(0.0, signed_one)
    if fmt.explicit_jbit:
        significand = mantissa
        scale = max(exponent, 1) - fmt.bias - (fmt.mantissa_width - 1)
    elif exponent == 0:
        significand = mantissa
        scale = 1 - fmt.bias - fmt.mantissa_width
    else:
        significand = mantissa | (1 << fmt.mantissa_width)
        scale = exponent - fmt.bias - fmt.mantissa_width
    try:
        magnitude = math.ldexp(significand, scale)
    except OverflowError:
        magnitude = math.inf
    return math.copysign(magnitude, signed_one)


def max_value(fmt: FloatFormat) -> float:
    """Largest finite magnitude of a format."""
    implicit = fmt.implicit_format()
    return fields_to_double(implicit, constant_fields(implicit, FloatingPointConstant.LARGEST_NORMAL))


def min_value(fmt: FloatFormat) -> float:
    """Smallest positive magnitude of a format.

    This is the smallest subnormal, or the smallest normal when subnormals
    read as zero.
    """
    implicit = fmt.implicit_format()
    constant = FloatingPointConstant.SMALLEST_POSITIVE_SUBNORMAL
    if fmt.subnormal_as_zero:
        constant = FloatingPointConstant.SMALLEST_POSITIVE_NORMAL
    return fields_to_double(implicit, constant_fields(implicit, constant))
