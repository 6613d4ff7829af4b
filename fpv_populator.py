"""Single-use builders that construct validated FloatingPointValues."""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from fpv_bits import BitVector
from fpv_common import (
    AlreadyPopulatedError,
    FpvError,
    InvalidComparisonError,
    RangeExceededError,
    WidthMismatchError,
    check_width,
    split_spaced_fields,
)
from fpv_constants import constant_fields, rules_for
from fpv_jbit import canonicalize_fields, narrow_fields, widen_fields
from fpv_rounding import max_value, min_value, round_double, unrounded_double
from fpv_types import FloatFormat, FloatingPointConstant, Fields, RoundingMode
from fpv_value import FloatingPointValue

logger = logging.getLogger(__name__)

RANDOM_CHUNK_BITS = 32


def _random_bits(rng: np.random.Generator, width: int) -> int:
    """Uniform unsigned integer of ``width`` bits, drawn in 32-bit chunks."""
    value = 0
    remaining = width
    while remaining > 0:
        take = min(RANDOM_CHUNK_BITS, remaining)
        value = (value << take) | int(rng.integers(0, 1 << take))
        remaining -= take
    return value


def _random_below(rng: np.random.Generator, bound: int) -> int:
    """Uniform integer in [0, bound)."""
    if bound <= 1 << 62:
        return int(rng.integers(0, bound))
    width = bound.bit_length()
    while True:
        candidate = _random_bits(rng, width)
        if candidate < bound:
            return candidate


def _random_between(rng: np.random.Generator, low: int, high: int) -> int:
    """Uniform integer in [low, high]."""
    return low + _random_below(rng, high - low + 1)


class FloatingPointValuePopulator:
    """Builds exactly one FloatingPointValue of a format.

    Every entry point ends in :meth:`populate`; a second construction on the
    same populator raises AlreadyPopulatedError.
    """

    def __init__(self, fmt: FloatFormat):
        self._format = fmt
        self._populated = False

    @property
    def format(self) -> FloatFormat:
        return self._format

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
    def min_exponent(self) -> int:
        return self._format.min_exponent

    @property
    def max_exponent(self) -> int:
        return self._format.max_exponent

    @property
    def explicit_jbit(self) -> bool:
        return self._format.explicit_jbit

    @property
    def is_populated(self) -> bool:
        return self._populated

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._format.name})"

    def _check_unpopulated(self) -> None:
        if self._populated:
            raise AlreadyPopulatedError(f"{self!r} already populated")

    def populate(self, sign: BitVector, exponent: BitVector, mantissa: BitVector) -> FloatingPointValue:
        """Validate the fields and construct the value."""
        self._check_unpopulated()
        value = FloatingPointValue(self._format, sign, exponent, mantissa)
        self._populated = True
        return value

    def _populate_fields(self, fields: Fields) -> FloatingPointValue:
        return self.populate(
            BitVector(fields.sign, 1),
            BitVector(fields.exponent, self.exponent_width),
            BitVector(fields.mantissa, self.mantissa_width),
        )

    def _populate_implicit(self, fields: Fields) -> FloatingPointValue:
        """Construct from fields computed in the implicit J-bit partner format."""
        return self._populate_fields(fields)

    # raw fields

    def of_binary_strings(self, sign: str, exponent: str, mantissa: str) -> FloatingPointValue:
        """Build from MSB-first bit strings of each field."""
        self._check_unpopulated()
        return self.populate(
            BitVector.of_string(sign),
            BitVector.of_string(exponent),
            BitVector.of_string(mantissa),
        )

    def of_spaced_binary_string(self, text: str) -> FloatingPointValue:
        """Build from a 'sign exponent mantissa' string."""
        self._check_unpopulated()
        return self.of_binary_strings(*split_spaced_fields(text))

    def of_string(self, text: str, radix: int = 2) -> FloatingPointValue:
        """Build from one packed string in the given radix, sliced by field widths."""
        self._check_unpopulated()
        width = self._format.width
        if radix == 2:
            bits = BitVector.of_string(text)
            if bits.width > width:
                raise WidthMismatchError(f"Bit string '{text}' is wider than {width} bits")
            return self.of_bit_vector(bits.zero_extend(width))
        try:
            raw = int(text, radix)
        except ValueError as exc:
            raise FpvError(f"Invalid radix-{radix} string '{text}'") from exc
        return self.of_bit_vector(BitVector(raw, width))

    def of_ints(self, exponent: int, mantissa: int, sign: bool = False) -> FloatingPointValue:
        """Build from unsigned integer exponent and mantissa fields."""
        self._check_unpopulated()
        return self.populate(
            BitVector(1 if sign else 0, 1),
            BitVector(exponent, self.exponent_width),
            BitVector(mantissa, self.mantissa_width),
        )

    of_big_ints = of_ints

    def of_bit_vector(self, bits: BitVector) -> FloatingPointValue:
        """Slice a packed sign|exponent|mantissa vector into fields."""
        self._check_unpopulated()
        check_width("Packed value", bits.width, self._format.width)
        mw = self.mantissa_width
        return self.populate(
            bits.slice(bits.width - 1, bits.width - 1),
            bits.slice(bits.width - 2, mw),
            bits.slice(mw - 1, 0),
        )

    def of_int(self, bits: int) -> FloatingPointValue:
        """Build from a packed unsigned integer bit pattern."""
        self._check_unpopulated()
        return self.of_bit_vector(BitVector(bits, self._format.width))

    # constants

    def of_constant(self, constant: FloatingPointConstant) -> FloatingPointValue:
        """Build a named constant of the format."""
        self._check_unpopulated()
        return self._populate_implicit(constant_fields(self._format.implicit_format(), constant))

    @property
    def positive_infinity(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstant.POSITIVE_INFINITY)

    @property
    def negative_infinity(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstant.NEGATIVE_INFINITY)

    @property
    def nan(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstant.NAN)

    @property
    def one(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstant.ONE)

    @property
    def positive_zero(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstant.POSITIVE_ZERO)

    @property
    def negative_zero(self) -> FloatingPointValue:
        return self.of_constant(FloatingPointConstant.NEGATIVE_ZERO)

    # doubles

    def _check_range(self, value: float) -> None:
        if math.isnan(value):
            return
        magnitude = abs(value)
        if magnitude > max_value(self._format) or (magnitude != 0.0 and magnitude < min_value(self._format)):
            raise RangeExceededError(f"{value} exceeds the range of {self._format.name}")

    def of_double(
        self,
        value: float,
        rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
        clamp: bool = False,
    ) -> FloatingPointValue:
        """Round a native double into the format.

        Range-checked formats reject magnitudes outside their finite range
        unless ``clamp`` is set, in which case the result saturates.
        """
        self._check_unpopulated()
        if rules_for(self._format).range_checked:
            if clamp:
                logger.debug("Skipping range check for %s in %s", value, self._format.name)
            else:
                self._check_range(value)
        implicit = self._format.implicit_format()
        return self._populate_implicit(round_double(implicit, value, rounding_mode, clamp=clamp))

    def of_double_unrounded(self, value: float, clamp: bool = False) -> FloatingPointValue:
        """Convert a double by dropping every bit that does not fit; matches truncation."""
        self._check_unpopulated()
        implicit = self._format.implicit_format()
        return self._populate_implicit(unrounded_double(implicit, value, clamp=clamp))

    # other values

    def of_floating_point_value(
        self, fpv: FloatingPointValue, canonicalize_explicit: bool = False
    ) -> FloatingPointValue:
        """Re-encode a value of this format or of its J-bit partner format.

        ``canonicalize_explicit`` canonicalizes an explicit J-bit result.
        """
        self._check_unpopulated()
        source = fpv.format
        target = self._format
        if source.exponent_width != target.exponent_width:
            raise WidthMismatchError(
                f"Exponent width {source.exponent_width} does not match {target.exponent_width}"
            )
        if source.explicit_jbit == target.explicit_jbit:
            check_width("Mantissa", source.mantissa_width, target.mantissa_width)
            fields = fpv.fields()
        elif source.explicit_jbit:
            check_width("Mantissa", source.mantissa_width - 1, target.mantissa_width)
            fields = narrow_fields(source, fpv.fields())
        else:
            check_width("Mantissa", source.mantissa_width + 1, target.mantissa_width)
            fields = widen_fields(source, fpv.fields())
        if canonicalize_explicit and target.explicit_jbit:
            fields = canonicalize_fields(target, fields)
        return self._populate_fields(fields)

    # random

    def _bound_key(self, bound: FloatingPointValue) -> int:
        implicit = self._format.implicit_format()
        bound_format = bound.format.implicit_format()
        check_width("Bound exponent", bound_format.exponent_width, implicit.exponent_width)
        check_width("Bound mantissa", bound_format.mantissa_width, implicit.mantissa_width)
        if bound.is_nan:
            raise InvalidComparisonError("A NaN cannot bound a random value")
        return bound.order_key()

    def _key_interval(
        self,
        gt: Optional[FloatingPointValue],
        gte: Optional[FloatingPointValue],
        lt: Optional[FloatingPointValue],
        lte: Optional[FloatingPointValue],
    ) -> Tuple[int, int]:
        implicit = self._format.implicit_format()
        largest = constant_fields(implicit, FloatingPointConstant.LARGEST_NORMAL)
        limit = (largest.exponent << implicit.mantissa_width) | largest.mantissa
        bounded = any(b is not None for b in (gt, gte, lt, lte))
        if bounded and rules_for(implicit).supports_infinities:
            # an open side of a bounded interval reaches the infinity
            limit = implicit.all_ones_exponent << implicit.mantissa_width
        lows = [self._bound_key(gte)] if gte is not None else []
        if gt is not None:
            lows.append(self._bound_key(gt) + 1)
        highs = [self._bound_key(lte)] if lte is not None else []
        if lt is not None:
            highs.append(self._bound_key(lt) - 1)
        low = max(lows) if lows else -limit
        high = min(highs) if highs else limit
        return low, high

    def random(
        self,
        rng: Optional[np.random.Generator] = None,
        *,
        normal: bool = False,
        gt: Optional[FloatingPointValue] = None,
        gte: Optional[FloatingPointValue] = None,
        lt: Optional[FloatingPointValue] = None,
        lte: Optional[FloatingPointValue] = None,
        gen_normal: bool = True,
        gen_subnormal: bool = True,
    ) -> FloatingPointValue:
        """Sample a random value.

        Without constraints the sign, exponent and mantissa fields are drawn
        independently over the finite exponents (``normal`` excludes the zero
        exponent).  Bounds and class filters switch to uniform sampling over
        the ordered representable values that satisfy them.
        """
        self._check_unpopulated()
        if rng is None:
            rng = np.random.default_rng()
        implicit = self._format.implicit_format()
        constrained = any(b is not None for b in (gt, gte, lt, lte)) or not (gen_normal and gen_subnormal)
        if not constrained:
            return self._populate_implicit(self._random_fields(rng, implicit, normal))
        if normal:
            gen_subnormal = False
        low, high = self._key_interval(gt, gte, lt, lte)
        return self._populate_implicit(
            self._random_constrained(rng, implicit, low, high, gen_normal, gen_subnormal)
        )

    @staticmethod
    def _random_fields(rng: np.random.Generator, fmt: FloatFormat, normal: bool) -> Fields:
        sign = int(rng.integers(0, 2))
        largest_exponent = fmt.bias + fmt.max_exponent
        exponent = _random_between(rng, 1 if normal else 0, largest_exponent)
        if fmt.subnormal_as_zero and exponent == 0:
            mantissa = 0
        else:
            mantissa = _random_bits(rng, fmt.mantissa_width)
        return Fields(sign, exponent, mantissa)

    @staticmethod
    def _random_constrained(
        rng: np.random.Generator,
        fmt: FloatFormat,
        low: int,
        high: int,
        gen_normal: bool,
        gen_subnormal: bool,
    ) -> Fields:
        mw = fmt.mantissa_width
        first_normal = 1 << mw
        subnormal_limit = 0 if fmt.subnormal_as_zero else first_normal - 1
        intervals: List[Tuple[int, int]] = []
        if gen_normal:
            intervals.append((low, min(high, -first_normal)))
        if gen_subnormal:
            intervals.append((max(low, -subnormal_limit), min(high, subnormal_limit)))
        if gen_normal:
            intervals.append((max(low, first_normal), high))
        intervals = [(a, b) for a, b in intervals if a <= b]
        total = sum(b - a + 1 for a, b in intervals)
        if total == 0:
            raise FpvError(f"No {fmt.name} value satisfies the random constraints")

        index = _random_below(rng, total)
        for a, b in intervals:
            if index <= b - a:
                key = a + index
                break
            index -= b - a + 1
        if key == 0:
            return Fields(int(rng.integers(0, 2)), 0, 0)
        magnitude = abs(key)
        return Fields(1 if key < 0 else 0, magnitude >> mw, magnitude & (first_normal - 1))


class ExplicitJBitPopulator(FloatingPointValuePopulator):
    """Populator for explicit J-bit formats.

    Constants, double conversions and random samples are computed in the
    implicit partner format (one mantissa bit narrower) and widened by
    inserting the leading bit.
    """

    def __init__(self, fmt: FloatFormat):
        if not fmt.explicit_jbit:
            raise FpvError(f"Format {fmt.name} does not store an explicit J-bit")
        super().__init__(fmt)

    def _populate_implicit(self, fields: Fields) -> FloatingPointValue:
        return self._populate_fields(widen_fields(self._format.implicit_format(), fields))


def populator(fmt: FloatFormat) -> FloatingPointValuePopulator:
    """Return a fresh populator suited to the format's J-bit encoding."""
    if fmt.explicit_jbit:
        return ExplicitJBitPopulator(fmt)
    return FloatingPointValuePopulator(fmt)
