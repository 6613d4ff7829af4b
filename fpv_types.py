"""Format descriptors, constant names and rounding modes."""
from __future__ import annotations

import enum
from typing import Literal, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FloatingPointConstant(enum.Enum):
    """Named constants every format can produce."""

    NEGATIVE_INFINITY = "negativeInfinity"
    NEGATIVE_ZERO = "negativeZero"
    POSITIVE_ZERO = "positiveZero"
    SMALLEST_POSITIVE_SUBNORMAL = "smallestPositiveSubnormal"
    LARGEST_POSITIVE_SUBNORMAL = "largestPositiveSubnormal"
    SMALLEST_POSITIVE_NORMAL = "smallestPositiveNormal"
    LARGEST_LESS_THAN_ONE = "largestLessThanOne"
    ONE = "one"
    SMALLEST_LARGER_THAN_ONE = "smallestLargerThanOne"
    LARGEST_NORMAL = "largestNormal"
    POSITIVE_INFINITY = "positiveInfinity"
    NAN = "nan"


class RoundingMode(enum.Enum):
    """IEEE rounding modes; only TRUNCATE and ROUND_NEAREST_EVEN are implemented."""

    TRUNCATE = "truncate"
    ROUND_NEAREST_EVEN = "roundNearestEven"
    ROUND_NEAREST_TIES_AWAY = "roundNearestTiesAway"
    ROUND_TOWARDS_ZERO = "roundTowardsZero"
    ROUND_TOWARDS_INFINITY = "roundTowardsInfinity"
    ROUND_TOWARDS_NEGATIVE_INFINITY = "roundTowardsNegativeInfinity"


IMPLEMENTED_ROUNDING_MODES = {RoundingMode.TRUNCATE, RoundingMode.ROUND_NEAREST_EVEN}


class Fields(NamedTuple):
    """Unsigned integer contents of the sign, exponent and mantissa fields."""

    sign: int
    exponent: int
    mantissa: int


class FloatFormat(BaseModel):
    """Exponent/mantissa widths plus the traits that drive every computation.

    ``variant`` is the format identity used to pick per-format rules: the
    plain ``ieee`` variant reserves the all-ones exponent for infinities and
    NaNs, while ``e4m3`` and ``e5m2`` follow the FP8 definitions.
    """

    model_config = ConfigDict(frozen=True)

    exponent_width: int = Field(ge=2)
    mantissa_width: int = Field(ge=1)
    explicit_jbit: bool = False
    subnormal_as_zero: bool = False
    variant: Literal["ieee", "e4m3", "e5m2"] = "ieee"

    @model_validator(mode="after")
    def _check_traits(self) -> "FloatFormat":
        if self.explicit_jbit and self.mantissa_width < 2:
            raise ValueError("explicit J-bit formats need a mantissa of at least 2 bits")
        if self.explicit_jbit and self.variant != "ieee":
            raise ValueError(f"explicit J-bit is not supported for the {self.variant} variant")
        if self.variant == "e4m3" and (self.exponent_width, self.mantissa_width) != (4, 3):
            raise ValueError("the e4m3 variant requires exponent width 4 and mantissa width 3")
        if self.variant == "e5m2" and (self.exponent_width, self.mantissa_width) != (5, 2):
            raise ValueError("the e5m2 variant requires exponent width 5 and mantissa width 2")
        return self

    @classmethod
    def of(
        cls,
        exponent_width: int,
        mantissa_width: int,
        *,
        explicit_jbit: bool = False,
        subnormal_as_zero: bool = False,
        variant: str = "ieee",
    ) -> "FloatFormat":
        """Positional shorthand for the keyword constructor."""
        return cls(
            exponent_width=exponent_width,
            mantissa_width=mantissa_width,
            explicit_jbit=explicit_jbit,
            subnormal_as_zero=subnormal_as_zero,
            variant=variant,
        )

    @property
    def bias(self) -> int:
        return (1 << (self.exponent_width - 1)) - 1

    @property
    def max_exponent(self) -> int:
        return self.bias

    @property
    def min_exponent(self) -> int:
        return 1 - self.bias

    @property
    def width(self) -> int:
        """Total packed width: sign + exponent + mantissa."""
        return 1 + self.exponent_width + self.mantissa_width

    @property
    def all_ones_exponent(self) -> int:
        return (1 << self.exponent_width) - 1

    @property
    def name(self) -> str:
        for alias, fmt in STANDARD_FORMATS.items():
            if fmt == self:
                return alias
        name = f"e{self.exponent_width}m{self.mantissa_width}"
        if self.explicit_jbit:
            name += "j"
        if self.subnormal_as_zero:
            name += "_saz"
        return name

    def implicit_format(self) -> "FloatFormat":
        """The implicit J-bit partner of an explicit format (mantissa one narrower)."""
        if not self.explicit_jbit:
            return self
        return FloatFormat.of(
            self.exponent_width,
            self.mantissa_width - 1,
            subnormal_as_zero=self.subnormal_as_zero,
        )

    def explicit_format(self) -> "FloatFormat":
        """The explicit J-bit partner of an implicit format (mantissa one wider)."""
        if self.explicit_jbit:
            return self
        return FloatFormat.of(
            self.exponent_width,
            self.mantissa_width + 1,
            explicit_jbit=True,
            subnormal_as_zero=self.subnormal_as_zero,
        )

    def __str__(self) -> str:
        return self.name


FP64 = FloatFormat.of(11, 52)
FP32 = FloatFormat.of(8, 23)
FP16 = FloatFormat.of(5, 10)
BF16 = FloatFormat.of(8, 7)
TF32 = FloatFormat.of(8, 10)
FP8_E4M3 = FloatFormat.of(4, 3, variant="e4m3")
FP8_E5M2 = FloatFormat.of(5, 2, variant="e5m2")

STANDARD_FORMATS = {
    "fp64": FP64,
    "fp32": FP32,
    "fp16": FP16,
    "bf16": BF16,
    "tf32": TF32,
    "e4m3": FP8_E4M3,
    "e5m2": FP8_E5M2,
}

FORMAT_ALIAS = {
    "fp64": FP64,
    "f64": FP64,
    "float64": FP64,
    "double": FP64,
    "fp32": FP32,
    "f32": FP32,
    "float32": FP32,
    "single": FP32,
    "fp16": FP16,
    "f16": FP16,
    "float16": FP16,
    "half": FP16,
    "bf16": BF16,
    "bfloat16": BF16,
    "tf32": TF32,
    "e4m3": FP8_E4M3,
    "f8e4m3": FP8_E4M3,
    "fp8e4m3": FP8_E4M3,
    "float8e4m3": FP8_E4M3,
    "e5m2": FP8_E5M2,
    "f8e5m2": FP8_E5M2,
    "fp8e5m2": FP8_E5M2,
    "float8e5m2": FP8_E5M2,
}


def format_from_alias(alias: Optional[str]) -> Optional[FloatFormat]:
    """Resolve a format alias string to a FloatFormat."""
    if alias is None:
        return None
    if isinstance(alias, str):
        key = alias.strip().lower()
        if key in FORMAT_ALIAS:
            return FORMAT_ALIAS[key]
    return None


def constant_from_name(name: str) -> Optional[FloatingPointConstant]:
    """Resolve a constant by its camelCase value or UPPER_CASE member name."""
    for member in FloatingPointConstant:
        if name in (member.value, member.name, member.name.lower()):
            return member
    return None
