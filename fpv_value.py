"""Immutable floating-point values of any configured format."""
from __future__ import annotations

import operator
from typing import Callable, Tuple

from fpv_bits import BitVector
from fpv_common import InvalidBitsError, InvalidComparisonError, WidthMismatchError, check_width
from fpv_constants import constant_fields, infinity_fields, rules_for
from fpv_jbit import canonicalize_fields, is_legal_fields, narrow_fields, widen_fields
from fpv_rounding import fields_to_double, round_double
from fpv_types import FloatFormat, FloatingPointConstant, Fields, RoundingMode


class FloatingPointValue:
    """A (sign, exponent, mantissa) triple bound to a FloatFormat.

    Values are normally built by a populator; the constructor only checks
    field widths.  Instances never change after construction.
    """

    __slots__ = ("_format", "_sign", "_exponent", "_mantissa")

    def __init__(self, fmt: FloatFormat, sign: BitVector, exponent: BitVector, mantissa: BitVector):
        check_width("Sign", sign.width, 1)
        check_width("Exponent", exponent.width, fmt.exponent_width)
        check_width("Mantissa", mantissa.width, fmt.mantissa_width)
        self._format = fmt
        self._sign = sign
        self._exponent = exponent
        self._mantissa = mantissa

    @classmethod
    def of_fields(cls, fmt: FloatFormat, fields: Fields) -> "FloatingPointValue":
        """Build a value from integer field contents."""
        return cls(
            fmt,
            BitVector(fields.sign, 1),
            BitVector(fields.exponent, fmt.exponent_width),
            BitVector(fields.mantissa, fmt.mantissa_width),
        )

    @property
    def format(self) -> FloatFormat:
        return self._format

    @property
    def sign(self) -> BitVector:
        return self._sign

    @property
    def exponent(self) -> BitVector:
        return self._exponent

    @property
    def mantissa(self) -> BitVector:
        return self._mantissa

    @property
    def exponent_width(self) -> int:
        return self._format.exponent_width

    @property
    def mantissa_width(self) -> int:
        return self._format.mantissa_width

    @property
    def bias(self) -> int:
        return self._format.bias

    @property
    def explicit_jbit(self) -> bool:
        return self._format.explicit_jbit

    @property
    def subnormal_as_zero(self) -> bool:
        return self._format.subnormal_as_zero

    @property
    def value(self) -> BitVector:
        """Packed sign|exponent|mantissa bit vector."""
        return BitVector.concat(self._sign, self._exponent, self._mantissa)

    @property
    def is_valid(self) -> bool:
        """True when no field holds unknown bits."""
        return self._sign.is_valid and self._exponent.is_valid and self._mantissa.is_valid

    def fields(self) -> Fields:
        """Integer field contents; raises InvalidBitsError on unknown bits."""
        return Fields(self._sign.to_int(), self._exponent.to_int(), self._mantissa.to_int())

    # classification

    @property
    def is_nan(self) -> bool:
        _, exponent, mantissa = self.fields()
        return rules_for(self._format).is_nan(self._format, exponent, mantissa)

    @property
    def is_infinity(self) -> bool:
        _, exponent, mantissa = self.fields()
        return rules_for(self._format).is_infinity(self._format, exponent, mantissa)

    @property
    def is_zero(self) -> bool:
        """Either signed zero, or any zero-exponent value when subnormals read as zero."""
        _, exponent, mantissa = self.fields()
        if exponent == 0 and self.subnormal_as_zero:
            return True
        if self.explicit_jbit:
            return mantissa == 0 and not self.is_infinity and not self.is_nan
        return exponent == 0 and mantissa == 0

    @property
    def is_subnormal(self) -> bool:
        return self.fields().exponent == 0 and not self.is_zero

    @property
    def is_normal(self) -> bool:
        _, exponent, mantissa = self.fields()
        if exponent == 0 or self.is_nan or self.is_infinity:
            return False
        if self.explicit_jbit:
            return bool(mantissa >> (self.mantissa_width - 1))
        return True

    @property
    def is_legal(self) -> bool:
        """Explicit J-bit fields must agree with their exponent; implicit fields always do."""
        if not self.explicit_jbit:
            return True
        return is_legal_fields(self._format, self.fields())

    # conversion

    def to_double(self) -> float:
        """Exact double value; unknown bits are an error rather than NaN."""
        if not self.is_valid:
            raise InvalidBitsError(f"Cannot convert {self} with unknown bits to a double")
        return fields_to_double(self._format, self.fields())

    def __float__(self) -> float:
        return self.to_double()

    def canonicalize(self) -> "FloatingPointValue":
        """Canonical explicit J-bit encoding of the same number."""
        if not self.explicit_jbit:
            return self
        return FloatingPointValue.of_fields(self._format, canonicalize_fields(self._format, self.fields()))

    def to_implicit(self) -> "FloatingPointValue":
        """The same number in the implicit partner format."""
        fmt, fields = self._implicit_fields()
        return FloatingPointValue.of_fields(fmt, fields)

    def _implicit_fields(self) -> Tuple[FloatFormat, Fields]:
        if not self.explicit_jbit:
            return self._format, self.fields()
        return self._format.implicit_format(), narrow_fields(self._format, self.fields())

    # ordering and equality

    def order_key(self) -> int:
        """Signed integer whose ordering matches compare_to."""
        fmt, fields = self._implicit_fields()
        if fields.exponent == 0 and (fields.mantissa == 0 or fmt.subnormal_as_zero):
            return 0
        magnitude = (fields.exponent << fmt.mantissa_width) | fields.mantissa
        return -magnitude if fields.sign else magnitude

    def compare_to(self, other: "FloatingPointValue") -> int:
        """Total order over non-NaN values returning -1, 0 or 1; signed zeros compare equal."""
        if self.is_nan or other.is_nan:
            raise InvalidComparisonError("NaN values cannot be ordered")
        mine, _ = self._implicit_fields()
        theirs, _ = other._implicit_fields()
        check_width("Compared exponent", theirs.exponent_width, mine.exponent_width)
        check_width("Compared mantissa", theirs.mantissa_width, mine.mantissa_width)
        a = self.order_key()
        b = other.order_key()
        return (a > b) - (a < b)

    def __lt__(self, other: "FloatingPointValue") -> bool:
        return self.compare_to(other) < 0

    def __le__(self, other: "FloatingPointValue") -> bool:
        return self.compare_to(other) <= 0

    def __gt__(self, other: "FloatingPointValue") -> bool:
        return self.compare_to(other) > 0

    def __ge__(self, other: "FloatingPointValue") -> bool:
        return self.compare_to(other) >= 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FloatingPointValue):
            return NotImplemented
        if not (self.is_valid and other.is_valid):
            return self._format == other._format and self.value == other.value
        mine, fields = self._implicit_fields()
        theirs, other_fields = other._implicit_fields()
        if (mine.exponent_width, mine.mantissa_width) != (theirs.exponent_width, theirs.mantissa_width):
            return False
        if self.is_nan or other.is_nan:
            return False
        if self.is_infinity or other.is_infinity:
            return self.is_infinity and other.is_infinity and fields.sign == other_fields.sign
        if self.is_zero or other.is_zero:
            return self.is_zero and other.is_zero
        return fields == other_fields

    def __hash__(self) -> int:
        if not self.is_valid:
            return hash((self._format, self.value))
        fmt, fields = self._implicit_fields()
        widths = (fmt.exponent_width, fmt.mantissa_width)
        if self.is_nan:
            return hash((widths, "nan"))
        if self.is_zero:
            return hash((widths, 0))
        return hash((widths, fields))

    # arithmetic

    def _result(self, fields: Fields) -> "FloatingPointValue":
        """Wrap implicit-partner fields as a value of this value's format."""
        if self.explicit_jbit:
            fields = widen_fields(self._format.implicit_format(), fields)
        return FloatingPointValue.of_fields(self._format, fields)

    def _constant(self, constant: FloatingPointConstant) -> "FloatingPointValue":
        return self._result(constant_fields(self._format.implicit_format(), constant))

    def _infinity(self, negative: bool) -> "FloatingPointValue":
        return self._result(infinity_fields(self._format.implicit_format(), negative))

    def _rounded(self, value: float) -> "FloatingPointValue":
        implicit = self._format.implicit_format()
        return self._result(round_double(implicit, value, RoundingMode.ROUND_NEAREST_EVEN))

    def _check_operand(self, other: "FloatingPointValue") -> None:
        if (other.exponent_width, other.mantissa_width) != (self.exponent_width, self.mantissa_width):
            raise WidthMismatchError(
                f"Operand format {other.format.name} does not match {self._format.name}"
            )

    def _perform(
        self, other: "FloatingPointValue", op: Callable[[float, float], float]
    ) -> "FloatingPointValue":
        return self._rounded(op(self.to_double(), other.to_double()))

    def __add__(self, other: "FloatingPointValue") -> "FloatingPointValue":
        self._check_operand(other)
        if self.is_nan or other.is_nan:
            return self._constant(FloatingPointConstant.NAN)
        if self.is_infinity:
            if other.is_infinity and self._sign != other._sign:
                return self._constant(FloatingPointConstant.NAN)
            return self
        if other.is_infinity:
            return other
        return self._perform(other, operator.add)

    def __sub__(self, other: "FloatingPointValue") -> "FloatingPointValue":
        self._check_operand(other)
        if self.is_nan or other.is_nan:
            return self._constant(FloatingPointConstant.NAN)
        if self.is_infinity:
            if other.is_infinity and self._sign == other._sign:
                return self._constant(FloatingPointConstant.NAN)
            return self
        if other.is_infinity:
            return other.negate()
        return self._perform(other, operator.sub)

    def __mul__(self, other: "FloatingPointValue") -> "FloatingPointValue":
        self._check_operand(other)
        if self.is_nan or other.is_nan:
            return self._constant(FloatingPointConstant.NAN)
        if self.is_infinity or other.is_infinity:
            if self.is_zero or other.is_zero:
                return self._constant(FloatingPointConstant.NAN)
            return self._infinity(self._sign != other._sign)
        return self._perform(other, operator.mul)

    def __truediv__(self, other: "FloatingPointValue") -> "FloatingPointValue":
        self._check_operand(other)
        if self.is_nan or other.is_nan:
            return self._constant(FloatingPointConstant.NAN)
        if self.is_infinity:
            if other.is_infinity:
                return self._constant(FloatingPointConstant.NAN)
            return self
        if other.is_zero:
            if self.is_zero:
                return self._constant(FloatingPointConstant.NAN)
            return self._infinity(self._sign != other._sign)
        return self._perform(other, operator.truediv)

    def negate(self) -> "FloatingPointValue":
        """Flip the sign bit."""
        sign = BitVector(1 - self._sign.to_int(), 1)
        return FloatingPointValue(self._format, sign, self._exponent, self._mantissa)

    def abs(self) -> "FloatingPointValue":
        """Clear the sign bit."""
        return FloatingPointValue(self._format, BitVector(0, 1), self._exponent, self._mantissa)

    def __neg__(self) -> "FloatingPointValue":
        return self.negate()

    def __abs__(self) -> "FloatingPointValue":
        return self.abs()

    def ulp(self) -> "FloatingPointValue":
        """One unit in the last place at this value's exponent, carrying its sign.

        Exponents no larger than the mantissa width return the smallest
        mantissa step at the same exponent, which overstates the unit for
        values deep in the subnormal range.
        """
        fmt, fields = self._implicit_fields()
        mw = fmt.mantissa_width
        if fields.exponent > mw:
            ulp_fields = Fields(fields.sign, fields.exponent - mw, 0)
        else:
            # TODO: shift the unit bit with the exponent for small exponents
            ulp_fields = Fields(fields.sign, fields.exponent, 1)
        return self._result(ulp_fields)

    def within_rounding(self, other: "FloatingPointValue") -> bool:
        """True when the magnitudes differ by at most one ULP of this value."""
        if self == other:
            return True
        diff = (self.abs() - other.abs()).abs()
        return diff.compare_to(self.ulp().abs()) <= 0

    # display

    def to_string(self, integer: bool = False) -> str:
        """Spaced bit-string form, or '(sign exponent mantissa)' integers."""
        if integer:
            sign, exponent, mantissa = self.fields()
            return f"({sign} {exponent} {mantissa})"
        return f"{self._sign} {self._exponent} {self._mantissa}"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"FloatingPointValue({self._format.name}, '{self.to_string()}')"


def same_value(a: FloatingPointValue, b: FloatingPointValue) -> bool:
    """Equality that also matches two NaNs."""
    if a.is_nan and b.is_nan:
        return True
    return a == b
