from __future__ import annotations

import sys
from pathlib import Path
import unittest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from fpv_common import FpvError
from fpv_jbit import canonicalize_fields, is_legal_fields, narrow_fields, widen_fields
from fpv_populator import populator
from fpv_types import FloatFormat, Fields, RoundingMode

E4M4 = FloatFormat.of(4, 4)
EXPLICIT = E4M4.explicit_format()


def all_explicit_values():
    for bits in range(1 << EXPLICIT.width):
        yield populator(EXPLICIT).of_int(bits)


class TestFieldTranslation(unittest.TestCase):
    def test_widen(self) -> None:
        self.assertEqual(widen_fields(E4M4, Fields(0, 7, 0)), Fields(0, 7, 0b10000))
        self.assertEqual(widen_fields(E4M4, Fields(1, 0, 3)), Fields(1, 0, 3))
        self.assertEqual(widen_fields(E4M4, Fields(0, 15, 0)), Fields(0, 15, 0))
        self.assertEqual(widen_fields(E4M4, Fields(0, 15, 1)), Fields(0, 15, 1))

    def test_canonicalize(self) -> None:
        self.assertEqual(canonicalize_fields(EXPLICIT, Fields(0, 8, 0b01000)), Fields(0, 7, 0b10000))
        self.assertEqual(canonicalize_fields(EXPLICIT, Fields(0, 3, 0b00001)), Fields(0, 0, 0b00100))
        self.assertEqual(canonicalize_fields(EXPLICIT, Fields(0, 0, 0b10000)), Fields(0, 1, 0b10000))
        self.assertEqual(canonicalize_fields(EXPLICIT, Fields(1, 9, 0)), Fields(1, 0, 0))
        self.assertEqual(canonicalize_fields(EXPLICIT, Fields(1, 15, 0b00110)), Fields(0, 15, 1))
        self.assertEqual(canonicalize_fields(EXPLICIT, Fields(1, 15, 0)), Fields(1, 15, 0))

    def test_narrow(self) -> None:
        self.assertEqual(narrow_fields(EXPLICIT, Fields(0, 8, 0b01000)), Fields(0, 7, 0))
        self.assertEqual(narrow_fields(EXPLICIT, Fields(0, 7, 0b11000)), Fields(0, 7, 0b1000))
        self.assertEqual(narrow_fields(EXPLICIT, Fields(0, 0, 0b00011)), Fields(0, 0, 0b0011))

    def test_requires_explicit(self) -> None:
        with self.assertRaises(FpvError):
            canonicalize_fields(E4M4, Fields(0, 7, 0))
        with self.assertRaises(FpvError):
            is_legal_fields(E4M4, Fields(0, 7, 0))

    def test_legal(self) -> None:
        self.assertTrue(is_legal_fields(EXPLICIT, Fields(0, 7, 0b10000)))
        self.assertTrue(is_legal_fields(EXPLICIT, Fields(0, 7, 0b00001)))
        self.assertTrue(is_legal_fields(EXPLICIT, Fields(0, 0, 0b01111)))
        self.assertFalse(is_legal_fields(EXPLICIT, Fields(0, 0, 0b10000)))
        self.assertFalse(is_legal_fields(EXPLICIT, Fields(0, 7, 0)))


class TestExhaustive(unittest.TestCase):
    def test_canonicalize_is_idempotent(self) -> None:
        for value in all_explicit_values():
            if value.is_nan:
                continue
            with self.subTest(value=str(value)):
                canonical = value.canonicalize()
                self.assertEqual(canonical.canonicalize().to_string(), canonical.to_string())
                self.assertEqual(canonical.to_double(), value.to_double())
                if not (canonical.is_zero or canonical.is_infinity):
                    self.assertTrue(canonical.is_legal)

    def test_double_round_trip(self) -> None:
        for value in all_explicit_values():
            if value.is_nan:
                continue
            with self.subTest(value=str(value)):
                back = populator(EXPLICIT).of_double(value.to_double(), RoundingMode.TRUNCATE)
                self.assertEqual(back, value)
                self.assertTrue(back.is_legal or back.is_zero or back.is_infinity)

    def test_implicit_partner_agrees(self) -> None:
        for value in all_explicit_values():
            if value.is_nan:
                continue
            with self.subTest(value=str(value)):
                implicit = value.to_implicit()
                self.assertEqual(implicit.format, E4M4)
                self.assertEqual(implicit.to_double(), value.to_double())
                widened = populator(EXPLICIT).of_floating_point_value(implicit)
                self.assertEqual(widened, value)


class TestExplicitValues(unittest.TestCase):
    def test_unnormalized_forms(self) -> None:
        value = populator(EXPLICIT).of_spaced_binary_string("0 0111 00110")
        self.assertEqual(value.to_double(), 0.375)
        self.assertEqual(value.canonicalize().to_string(), "0 0101 11000")
        self.assertEqual(value.to_implicit().to_string(), "0 0101 1000")
        self.assertFalse(value.is_normal)
        self.assertTrue(value.canonicalize().is_normal)

    def test_explicit_ordering(self) -> None:
        a = populator(EXPLICIT).of_spaced_binary_string("0 0111 00110")
        b = populator(EXPLICIT).of_spaced_binary_string("0 0110 10000")
        self.assertTrue(a < b)
        self.assertEqual(b.to_double(), 0.5)


if __name__ == "__main__":
    unittest.main()
