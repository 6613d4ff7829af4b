from __future__ import annotations

import math
import sys
from pathlib import Path
import unittest

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from fpv_common import InfinityUnsupportedError, UnsupportedRoundingModeError
from fpv_rounding import decompose_double, fields_to_double, round_double, unrounded_double
from fpv_types import BF16, FP16, FP32, FP64, FP8_E4M3, FP8_E5M2, FloatFormat, Fields, RoundingMode

E4M4 = FloatFormat.of(4, 4)


def _double(exponent: str, mantissa: str) -> float:
    """Build a positive double from its raw exponent and mantissa bit strings."""
    bits = (int(exponent, 2) << 52) | int(mantissa.ljust(52, "0"), 2)
    return float(np.uint64(bits).view(np.float64))


class TestDecompose(unittest.TestCase):
    def test_decompose(self) -> None:
        self.assertEqual(decompose_double(1.0), Fields(0, 1023, 0))
        self.assertEqual(decompose_double(-2.5), Fields(1, 1024, 1 << 50))
        self.assertEqual(decompose_double(5e-324), Fields(0, 0, 1))
        self.assertEqual(decompose_double(-0.0), Fields(1, 0, 0))


class TestRoundNearestEven(unittest.TestCase):
    def test_one_in_fp32(self) -> None:
        self.assertEqual(round_double(FP32, 1.0), Fields(0, 127, 0))

    def test_guard_and_sticky(self) -> None:
        value = _double("10000000000", "0000100000000000000000000000000000000000000000000001")
        self.assertEqual(round_double(E4M4, value), Fields(0, 8, 1))

    def test_guard_and_round(self) -> None:
        value = _double("10000000000", "000011")
        self.assertEqual(round_double(E4M4, value), Fields(0, 8, 1))

    def test_tie_rounds_to_odd_lsb_up(self) -> None:
        value = _double("10000000000", "00011")
        self.assertEqual(round_double(E4M4, value), Fields(0, 8, 2))

    def test_tie_keeps_even_lsb(self) -> None:
        value = _double("10000000000", "00101")
        self.assertEqual(round_double(E4M4, value), Fields(0, 8, 2))

    def test_carry_into_exponent(self) -> None:
        value = _double("10000000000", "11111")
        self.assertEqual(round_double(E4M4, value), Fields(0, 9, 0))

    def test_subnormal_carry_to_normal(self) -> None:
        # largest subnormal plus half a step rounds up to the smallest normal
        value = (15.5 / 16) * 2.0 ** -6
        self.assertEqual(round_double(E4M4, value), Fields(0, 1, 0))
        self.assertEqual(round_double(E4M4, value, RoundingMode.TRUNCATE), Fields(0, 0, 15))

    def test_overflow_saturates(self) -> None:
        self.assertEqual(round_double(E4M4, 257.0), Fields(0, 15, 0))
        self.assertEqual(round_double(E4M4, -257.0), Fields(1, 15, 0))
        self.assertEqual(round_double(E4M4, 248.0), Fields(0, 14, 15))
        # 252 is a tie above the largest normal and rounds away to infinity
        self.assertEqual(round_double(E4M4, 252.0), Fields(0, 15, 0))

    def test_no_infinity_format_saturates_finite(self) -> None:
        self.assertEqual(round_double(FP8_E4M3, 1000.0), Fields(0, 15, 6))
        with self.assertRaises(InfinityUnsupportedError):
            round_double(FP8_E4M3, math.inf)
        self.assertEqual(round_double(FP8_E4M3, -math.inf, clamp=True), Fields(1, 15, 6))

    def test_specials(self) -> None:
        self.assertEqual(round_double(FP16, math.nan), Fields(0, 31, 1))
        self.assertEqual(round_double(FP16, -math.inf), Fields(1, 31, 0))
        self.assertEqual(round_double(FP16, -0.0), Fields(1, 0, 0))
        self.assertEqual(round_double(FP8_E4M3, math.nan), Fields(0, 15, 7))

    def test_subnormal_as_zero_flushes(self) -> None:
        saz = FloatFormat.of(5, 10, subnormal_as_zero=True)
        self.assertEqual(round_double(saz, 2.0 ** -20), Fields(0, 0, 0))
        self.assertEqual(round_double(saz, -(2.0 ** -20)), Fields(1, 0, 0))
        self.assertEqual(round_double(saz, 2.0 ** -14), Fields(0, 1, 0))

    def test_unsupported_mode(self) -> None:
        with self.assertRaises(UnsupportedRoundingModeError):
            round_double(FP32, 1.0, RoundingMode.ROUND_TOWARDS_ZERO)
        with self.assertRaises(NotImplementedError):
            round_double(FP32, 1.0, RoundingMode.ROUND_NEAREST_TIES_AWAY)

    def test_matches_numpy_float32(self) -> None:
        rng = np.random.default_rng(6)
        values = rng.normal(size=200) * np.exp2(rng.integers(-140, 120, size=200))
        for value in values:
            expected = int(np.float32(value).view(np.uint32))
            sign, exponent, mantissa = round_double(FP32, float(value))
            self.assertEqual((sign << 31) | (exponent << 23) | mantissa, expected)

    def test_matches_numpy_float16(self) -> None:
        rng = np.random.default_rng(7)
        values = rng.normal(size=200) * np.exp2(rng.integers(-24, 14, size=200))
        for value in values:
            expected = int(np.float16(value).view(np.uint16))
            sign, exponent, mantissa = round_double(FP16, float(value))
            self.assertEqual((sign << 15) | (exponent << 10) | mantissa, expected)

    def test_bf16_matches_float32_rounding(self) -> None:
        rng = np.random.default_rng(8)
        for value in rng.normal(size=100).astype(np.float32):
            bits = int(value.view(np.uint32))
            expected = (bits + 0x7FFF + ((bits >> 16) & 1)) >> 16
            sign, exponent, mantissa = round_double(BF16, float(value))
            self.assertEqual((sign << 15) | (exponent << 7) | mantissa, expected)


class TestTruncateAgreesWithUnrounded(unittest.TestCase):
    def test_random_doubles(self) -> None:
        rng = np.random.default_rng(6)
        formats = [FP64, FP32, FP16, BF16, E4M4, FP8_E4M3, FP8_E5M2, FloatFormat.of(3, 2),
                   FloatFormat.of(6, 9, subnormal_as_zero=True)]
        values = rng.normal(size=300) * np.exp2(rng.integers(-160, 160, size=300))
        for fmt in formats:
            for value in values:
                with self.subTest(fmt=fmt.name, value=float(value)):
                    self.assertEqual(
                        round_double(fmt, float(value), RoundingMode.TRUNCATE),
                        unrounded_double(fmt, float(value)),
                    )

    def test_double_subnormals(self) -> None:
        for value in (5e-324, 2.5e-320, -1e-310):
            self.assertEqual(
                round_double(FP64, value, RoundingMode.TRUNCATE), unrounded_double(FP64, value)
            )
            self.assertEqual(unrounded_double(FP64, value), decompose_double(value))

    def test_unrounded_overflow(self) -> None:
        self.assertEqual(unrounded_double(E4M4, 557.0), Fields(0, 15, 0))
        self.assertEqual(unrounded_double(E4M4, -math.inf), Fields(1, 15, 0))


class TestFieldsToDouble(unittest.TestCase):
    def test_spaced_string_value(self) -> None:
        fields = Fields(0, 0b10000001, 0b01000100000000000000000)
        self.assertEqual(fields_to_double(FP32, fields), 5.0625)

    def test_fp8_corners(self) -> None:
        e4m3 = [
            (Fields(0, 0, 0), 0.0),
            (Fields(0, 15, 6), 448.0),
            (Fields(0, 1, 0), 2.0 ** -6),
            (Fields(0, 0, 7), 0.875 * 2.0 ** -6),
            (Fields(0, 0, 1), 2.0 ** -9),
            (Fields(0, 15, 0), 256.0),
        ]
        for fields, value in e4m3:
            self.assertEqual(fields_to_double(FP8_E4M3, fields), value)
            self.assertEqual(round_double(FP8_E4M3, value), fields)
        e5m2 = [
            (Fields(0, 0, 0), 0.0),
            (Fields(0, 30, 3), 57344.0),
            (Fields(0, 1, 0), 2.0 ** -14),
            (Fields(0, 0, 3), 0.75 * 2.0 ** -14),
            (Fields(0, 0, 1), 2.0 ** -16),
        ]
        for fields, value in e5m2:
            self.assertEqual(fields_to_double(FP8_E5M2, fields), value)
            self.assertEqual(round_double(FP8_E5M2, value), fields)
        self.assertTrue(math.isnan(fields_to_double(FP8_E4M3, Fields(0, 15, 7))))

    def test_signed_zero(self) -> None:
        self.assertEqual(math.copysign(1.0, fields_to_double(FP16, Fields(1, 0, 0))), -1.0)

    def test_explicit_jbit(self) -> None:
        explicit = E4M4.explicit_format()
        self.assertEqual(fields_to_double(explicit, Fields(0, 7, 0b10000)), 1.0)
        self.assertEqual(fields_to_double(explicit, Fields(0, 8, 0b01000)), 1.0)
        self.assertEqual(fields_to_double(explicit, Fields(0, 0, 0b00001)), 2.0 ** -10)
        self.assertEqual(fields_to_double(explicit, Fields(0, 1, 0b00001)), 2.0 ** -10)

    def test_wide_format_overflows_to_infinity(self) -> None:
        wide = FloatFormat.of(12, 20)
        largest = Fields(0, (1 << 12) - 2, (1 << 20) - 1)
        self.assertEqual(fields_to_double(wide, largest), math.inf)


if __name__ == "__main__":
    unittest.main()
