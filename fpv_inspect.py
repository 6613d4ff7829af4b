"""Inspect doubles, bit patterns and constants of a floating-point format."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import numpy as np

from fpv_common import FpvError, InfinityUnsupportedError
from fpv_format import format_description, format_scalar, format_values_1d, histogram_string
from fpv_populator import populator
from fpv_rounding import max_value, min_value
from fpv_types import FloatFormat, FloatingPointConstant, RoundingMode, format_from_alias

ROUNDING_CHOICES = {
    "rne": RoundingMode.ROUND_NEAREST_EVEN,
    "truncate": RoundingMode.TRUNCATE,
}


def format_header(fmt: FloatFormat) -> List[str]:
    """Summary lines for a format."""
    return [
        f"format := {fmt.name}",
        f"widths := e{fmt.exponent_width} m{fmt.mantissa_width} ({fmt.width} bits)",
        f"bias := {fmt.bias}",
        f"exponent range := [{fmt.min_exponent}, {fmt.max_exponent}]",
        f"explicit_jbit := {format_scalar(fmt.explicit_jbit)}",
        f"subnormal_as_zero := {format_scalar(fmt.subnormal_as_zero)}",
        f"max_value := {format_scalar(max_value(fmt))}",
        f"min_value := {format_scalar(min_value(fmt))}",
    ]


def inspect_doubles(
    fmt: FloatFormat,
    values: List[float],
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
    clamp: bool = False,
) -> List[str]:
    """Convert each double and report the result."""
    lines = []
    for value in values:
        fpv = populator(fmt).of_double(value, rounding_mode=rounding_mode, clamp=clamp)
        lines.append(f"{format_scalar(float(value))} -> {format_description(fpv)}")
    return lines


def inspect_bits(fmt: FloatFormat, patterns: List[str]) -> List[str]:
    """Decode packed patterns given as 0x/0b/decimal integers."""
    lines = []
    for text in patterns:
        try:
            raw = int(text, 0)
        except ValueError as exc:
            raise FpvError(f"Invalid bit pattern '{text}'") from exc
        fpv = populator(fmt).of_int(raw)
        lines.append(f"{text} -> {format_description(fpv)}")
    return lines


def inspect_constants(fmt: FloatFormat) -> List[str]:
    """Report every named constant of the format."""
    lines = []
    for constant in FloatingPointConstant:
        try:
            fpv = populator(fmt).of_constant(constant)
        except InfinityUnsupportedError:
            lines.append(f"{constant.value}: unsupported")
            continue
        lines.append(f"{constant.value}: {format_description(fpv)}")
    return lines


def inspect_random(fmt: FloatFormat, count: int, seed: Optional[int] = None, normal: bool = False) -> List[str]:
    """Sample random values and summarize their doubles."""
    rng = np.random.default_rng(seed)
    doubles = np.array(
        [populator(fmt).random(rng, normal=normal).to_double() for _ in range(count)],
        dtype=np.float64,
    )
    return [
        f"samples := {format_values_1d(doubles)}",
        f"- hist: {histogram_string(doubles)}",
    ]


def _resolve_format(parser: argparse.ArgumentParser, args: argparse.Namespace) -> FloatFormat:
    if args.exponent_width is not None or args.mantissa_width is not None:
        if args.exponent_width is None or args.mantissa_width is None:
            parser.error("--exponent-width and --mantissa-width must be given together")
        return FloatFormat.of(
            args.exponent_width,
            args.mantissa_width,
            explicit_jbit=args.explicit_jbit,
            subnormal_as_zero=args.subnormal_as_zero,
        )
    fmt = format_from_alias(args.format)
    if fmt is None:
        parser.error(f"unknown format '{args.format}'")
    if args.explicit_jbit:
        fmt = fmt.explicit_format()
    if args.subnormal_as_zero:
        fmt = FloatFormat.of(
            fmt.exponent_width,
            fmt.mantissa_width,
            explicit_jbit=fmt.explicit_jbit,
            subnormal_as_zero=True,
            variant=fmt.variant,
        )
    return fmt


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for format inspection."""
    parser = argparse.ArgumentParser(description="Inspect values of a floating-point format")
    parser.add_argument("--format", default="fp32", help="Format alias (fp32, bf16, e4m3, ...)")
    parser.add_argument("--exponent-width", type=int, help="Custom exponent width")
    parser.add_argument("--mantissa-width", type=int, help="Custom mantissa width")
    parser.add_argument("--explicit-jbit", action="store_true", help="Store the leading mantissa bit")
    parser.add_argument("--subnormal-as-zero", action="store_true", help="Read subnormals as zero")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--double", type=float, nargs="+", help="Doubles to convert")
    action.add_argument("--bits", nargs="+", help="Packed patterns to decode (0x.., 0b.., decimal)")
    action.add_argument("--constants", action="store_true", help="List the named constants")
    action.add_argument("--random", type=int, metavar="N", help="Sample N random values")
    parser.add_argument("--rounding", choices=sorted(ROUNDING_CHOICES), default="rne")
    parser.add_argument("--clamp", action="store_true", help="Saturate instead of raising on range errors")
    parser.add_argument("--normal", action="store_true", help="Random samples avoid the zero exponent")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        fmt = _resolve_format(parser, args)
        lines = format_header(fmt)
        lines.append("")
        if args.double:
            lines += inspect_doubles(fmt, args.double, ROUNDING_CHOICES[args.rounding], args.clamp)
        elif args.bits:
            lines += inspect_bits(fmt, args.bits)
        elif args.random is not None:
            lines += inspect_random(fmt, args.random, args.seed, args.normal)
        else:
            lines += inspect_constants(fmt)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
