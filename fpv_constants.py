"""Constant catalog and per-format rules.

Every format derives its named constants from its widths.  A format variant
may override entries (and the NaN/infinity predicates) through the rule
table below, which is selected by ``FloatFormat.variant``.
"""
from __future__ import annotations

import dataclasses
from typing import Callable, Dict, Optional, Tuple

from fpv_common import InfinityUnsupportedError
from fpv_types import FloatFormat, FloatingPointConstant, Fields

Components = Tuple[str, str, str]

C = FloatingPointConstant


def _ieee_is_nan(fmt: FloatFormat, exponent: int, mantissa: int) -> bool:
    return exponent == fmt.all_ones_exponent and mantissa != 0


def _ieee_is_infinity(fmt: FloatFormat, exponent: int, mantissa: int) -> bool:
    return exponent == fmt.all_ones_exponent and mantissa == 0


def _never(fmt: FloatFormat, exponent: int, mantissa: int) -> bool:
    return False


def _e4m3_is_nan(fmt: FloatFormat, exponent: int, mantissa: int) -> bool:
    return exponent == fmt.all_ones_exponent and mantissa == (1 << fmt.mantissa_width) - 1


def _e4m3_constant(fmt: FloatFormat, constant: FloatingPointConstant) -> Optional[Components]:
    e = fmt.exponent_width
    m = fmt.mantissa_width
    if constant == C.LARGEST_NORMAL:
        return "0", "1" * e, "1" * (m - 1) + "0"
    if constant == C.NAN:
        return "0", "1" * e, "1" * m
    if constant in (C.POSITIVE_INFINITY, C.NEGATIVE_INFINITY):
        raise InfinityUnsupportedError(f"Infinity is not representable in {fmt.name}")
    return None


@dataclasses.dataclass(frozen=True)
class FormatRules:
    """Per-variant hooks for classification, constants and range checks."""

    supports_infinities: bool = True
    is_nan: Callable[[FloatFormat, int, int], bool] = _ieee_is_nan
    is_infinity: Callable[[FloatFormat, int, int], bool] = _ieee_is_infinity
    constant_override: Optional[Callable[[FloatFormat, FloatingPointConstant], Optional[Components]]] = None
    range_checked: bool = False


FORMAT_RULES: Dict[str, FormatRules] = {
    "ieee": FormatRules(),
    "e4m3": FormatRules(
        supports_infinities=False,
        is_nan=_e4m3_is_nan,
        is_infinity=_never,
        constant_override=_e4m3_constant,
        range_checked=True,
    ),
    "e5m2": FormatRules(range_checked=True),
}


def rules_for(fmt: FloatFormat) -> FormatRules:
    """Return the rule entry selected by the format identity."""
    return FORMAT_RULES[fmt.variant]


def constant_components(fmt: FloatFormat, constant: FloatingPointConstant) -> Components:
    """Return (sign, exponent, mantissa) bit strings of a constant in an implicit format."""
    rules = rules_for(fmt)
    if rules.constant_override is not None:
        override = rules.constant_override(fmt, constant)
        if override is not None:
            return override

    e = fmt.exponent_width
    m = fmt.mantissa_width
    if constant == C.NEGATIVE_INFINITY:
        return "1", "1" * e, "0" * m
    if constant == C.NEGATIVE_ZERO:
        return "1", "0" * e, "0" * m
    if constant == C.POSITIVE_ZERO:
        return "0", "0" * e, "0" * m
    if constant == C.SMALLEST_POSITIVE_SUBNORMAL:
        return "0", "0" * e, "0" * (m - 1) + "1"
    if constant == C.LARGEST_POSITIVE_SUBNORMAL:
        return "0", "0" * e, "1" * m
    if constant == C.SMALLEST_POSITIVE_NORMAL:
        return "0", "0" * (e - 1) + "1", "0" * m
    if constant == C.LARGEST_LESS_THAN_ONE:
        return "0", "0" + "1" * (e - 2) + "0", "1" * m
    if constant == C.ONE:
        return "0", "0" + "1" * (e - 1), "0" * m
    if constant == C.SMALLEST_LARGER_THAN_ONE:
        return "0", "0" + "1" * (e - 1), "0" * (m - 1) + "1"
    if constant == C.LARGEST_NORMAL:
        return "0", "1" * (e - 1) + "0", "1" * m
    if constant == C.POSITIVE_INFINITY:
        return "0", "1" * e, "0" * m
    if constant == C.NAN:
        return "0", "1" * e, "0" * (m - 1) + "1"
    raise ValueError(f"Unknown constant {constant}")


def constant_fields(fmt: FloatFormat, constant: FloatingPointConstant) -> Fields:
    """Integer form of constant_components."""
    sign, exponent, mantissa = constant_components(fmt, constant)
    return Fields(int(sign, 2), int(exponent, 2), int(mantissa, 2))


def infinity_fields(fmt: FloatFormat, negative: bool, clamp: bool = False) -> Fields:
    """Fields of a signed infinity, or of the signed largest normal when clamping.

    Formats without infinities raise unless ``clamp`` is set.
    """
    if rules_for(fmt).supports_infinities:
        return constant_fields(fmt, C.NEGATIVE_INFINITY if negative else C.POSITIVE_INFINITY)
    if not clamp:
        raise InfinityUnsupportedError(f"Infinity is not representable in {fmt.name}")
    largest = constant_fields(fmt, C.LARGEST_NORMAL)
    return Fields(1 if negative else 0, largest.exponent, largest.mantissa)
