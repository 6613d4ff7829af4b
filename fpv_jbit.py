"""Translation between implicit and explicit J-bit encodings."""
from __future__ import annotations

from fpv_common import FpvError
from fpv_constants import rules_for
from fpv_types import FloatFormat, Fields


def _require_explicit(fmt: FloatFormat) -> None:
    if not fmt.explicit_jbit:
        raise FpvError(f"Format {fmt.name} does not store an explicit J-bit")


def widen_fields(implicit_fmt: FloatFormat, fields: Fields) -> Fields:
    """Insert the leading bit into implicit fields, giving the explicit partner's fields."""
    rules = rules_for(implicit_fmt)
    mw = implicit_fmt.mantissa_width
    special = rules.is_nan(implicit_fmt, fields.exponent, fields.mantissa) or rules.is_infinity(
        implicit_fmt, fields.exponent, fields.mantissa
    )
    jbit = 1 if fields.exponent != 0 and not special else 0
    return Fields(fields.sign, fields.exponent, fields.mantissa | (jbit << mw))


def canonicalize_fields(fmt: FloatFormat, fields: Fields) -> Fields:
    """Shift the leading one of an explicit mantissa as far left as the exponent allows.

    Values that cannot reach the leading position end up with a zero exponent;
    every NaN collapses to the canonical NaN encoding.
    """
    _require_explicit(fmt)
    rules = rules_for(fmt)
    sign, exponent, mantissa = fields
    if rules.is_infinity(fmt, exponent, mantissa):
        return fields
    if rules.is_nan(fmt, exponent, mantissa):
        return Fields(0, fmt.all_ones_exponent, 1)
    if mantissa == 0:
        return Fields(sign, 0, 0)

    top = 1 << (fmt.mantissa_width - 1)
    mask = (1 << fmt.mantissa_width) - 1
    while not mantissa & top and exponent > 1:
        exponent -= 1
        mantissa = (mantissa << 1) & mask
    if not mantissa & top and exponent == 1:
        exponent = 0
    elif mantissa & top and exponent == 0:
        exponent = 1
    return Fields(sign, exponent, mantissa)


def narrow_fields(fmt: FloatFormat, fields: Fields) -> Fields:
    """Canonicalize explicit fields and drop the leading bit."""
    canonical = canonicalize_fields(fmt, fields)
    mask = (1 << (fmt.mantissa_width - 1)) - 1
    return Fields(canonical.sign, canonical.exponent, canonical.mantissa & mask)


def is_legal_fields(fmt: FloatFormat, fields: Fields) -> bool:
    """Zero exponents need a clear leading bit; non-zero exponents need some set bit."""
    _require_explicit(fmt)
    leading = 1 << (fmt.mantissa_width - 1)
    if fields.exponent == 0:
        return fields.mantissa < leading
    return fields.mantissa >= 1
