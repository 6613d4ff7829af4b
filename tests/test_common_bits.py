from __future__ import annotations

import sys
from pathlib import Path
import unittest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from fpv_bits import BitVector, pack_bits, unpack_bits
from fpv_common import (
    FpvError,
    InvalidBitsError,
    WidthMismatchError,
    check_bit_string,
    check_fits,
    split_spaced_fields,
)


class TestCommon(unittest.TestCase):
    def test_check_bit_string(self) -> None:
        check_bit_string("0101xz")
        with self.assertRaises(FpvError):
            check_bit_string("0102")
        with self.assertRaises(FpvError):
            check_bit_string("")

    def test_check_fits(self) -> None:
        check_fits("Exponent", 15, 4)
        with self.assertRaises(WidthMismatchError):
            check_fits("Exponent", 16, 4)
        with self.assertRaises(WidthMismatchError):
            check_fits("Exponent", -1, 4)

    def test_split_spaced_fields(self) -> None:
        self.assertEqual(split_spaced_fields("0 0111 000"), ("0", "0111", "000"))
        with self.assertRaises(FpvError):
            split_spaced_fields("0 0111")

    def test_errors_are_value_errors(self) -> None:
        self.assertTrue(issubclass(WidthMismatchError, ValueError))


class TestBitVector(unittest.TestCase):
    def test_of_string_and_back(self) -> None:
        bits = BitVector.of_string("1011")
        self.assertEqual(bits.width, 4)
        self.assertEqual(bits.to_int(), 11)
        self.assertEqual(str(bits), "1011")
        self.assertTrue(bits.is_valid)

    def test_unknown_bits(self) -> None:
        bits = BitVector.of_string("1x0z")
        self.assertFalse(bits.is_valid)
        self.assertEqual(bits.bit_string, "1x0x")
        with self.assertRaises(InvalidBitsError):
            bits.to_int()
        self.assertEqual(bits.bit(-1), 1)
        with self.assertRaises(InvalidBitsError):
            bits.bit(2)

    def test_slice_concat(self) -> None:
        packed = BitVector.of_string("0" + "0111" + "010")
        self.assertEqual(packed.slice(7, 7).bit_string, "0")
        self.assertEqual(packed.slice(6, 3).bit_string, "0111")
        self.assertEqual(packed.slice(2, 0).bit_string, "010")
        joined = BitVector.concat(packed.slice(7, 7), packed.slice(6, 3), packed.slice(2, 0))
        self.assertEqual(joined, packed)
        with self.assertRaises(FpvError):
            packed.slice(8, 0)

    def test_shift_and_logic(self) -> None:
        bits = BitVector.of_string("0110")
        self.assertEqual((bits << 1).bit_string, "1100")
        self.assertEqual((bits << 2).bit_string, "1000")
        self.assertEqual((bits >> 1).bit_string, "0011")
        other = BitVector.of_string("0x01")
        self.assertEqual((bits & other).bit_string, "0x00")
        self.assertEqual((bits | other).bit_string, "0111")
        with self.assertRaises(WidthMismatchError):
            bits & BitVector.of_string("01")

    def test_compare_and_reduce(self) -> None:
        a = BitVector(5, 4)
        b = BitVector(9, 4)
        self.assertEqual(a.compare_to(b), -1)
        self.assertEqual(b.compare_to(a), 1)
        self.assertEqual(a.compare_to(BitVector(5, 4)), 0)
        with self.assertRaises(WidthMismatchError):
            a.compare_to(BitVector(5, 5))
        self.assertTrue(a.or_reduce())
        self.assertFalse(BitVector.zeros(3).or_reduce())
        self.assertTrue(BitVector.ones(3).is_all_ones)

    def test_value_must_fit(self) -> None:
        with self.assertRaises(WidthMismatchError):
            BitVector(16, 4)

    def test_zero_extend_and_reverse(self) -> None:
        bits = BitVector.of_string("101")
        self.assertEqual(bits.zero_extend(5).bit_string, "00101")
        self.assertEqual(BitVector.of_string("1100").reversed().bit_string, "0011")
        with self.assertRaises(FpvError):
            bits.zero_extend(2)


class TestPacking(unittest.TestCase):
    def test_pack_unpack_odd_width(self) -> None:
        values = [0, 1, 0x1FF, 0x155, 7]
        packed = pack_bits(values, 9)
        self.assertEqual(len(packed), 6)
        self.assertEqual(unpack_bits(packed, 9, len(values)), values)

    def test_pack_little_endian(self) -> None:
        self.assertEqual(pack_bits([1, 2, 3], 4), bytes([0x21, 0x03]))

    def test_pack_rejects_wide_value(self) -> None:
        with self.assertRaises(WidthMismatchError):
            pack_bits([16], 4)

    def test_unpack_short_payload(self) -> None:
        with self.assertRaises(FpvError):
            unpack_bits(b"\x00", 8, 2)


if __name__ == "__main__":
    unittest.main()
