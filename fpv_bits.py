"""Fixed-width multi-valued bit vectors and bit-stream packing."""
from __future__ import annotations

from typing import Iterable, List, Optional

from fpv_common import FpvError, InvalidBitsError, check_bit_string, check_fits, check_width


class BitVector:
    """An immutable fixed-width vector of 0, 1 and unknown bits.

    Bit 0 is the least significant bit.  Unknown bits are tracked in a
    separate mask; the stored value bit under an unknown position is always 0.
    """

    __slots__ = ("_width", "_value", "_unknown")

    def __init__(self, value: int, width: int, unknown: int = 0):
        """Create a vector of ``width`` bits holding the unsigned ``value``."""
        if width < 0:
            raise FpvError(f"Bit vector width must be non-negative, got {width}")
        check_fits("Bit vector value", value, width)
        check_fits("Bit vector unknown mask", unknown, width)
        self._width = width
        self._value = value & ~unknown
        self._unknown = unknown

    @classmethod
    def of_string(cls, text: str) -> "BitVector":
        """Parse an MSB-first string of 0/1/x/z characters."""
        check_bit_string(text)
        value = 0
        unknown = 0
        for char in text:
            value <<= 1
            unknown <<= 1
            if char == "1":
                value |= 1
            elif char in "xXzZ":
                unknown |= 1
        return cls(value, len(text), unknown)

    @classmethod
    def zeros(cls, width: int) -> "BitVector":
        """Return an all-zero vector."""
        return cls(0, width)

    @classmethod
    def ones(cls, width: int) -> "BitVector":
        """Return an all-one vector."""
        return cls((1 << width) - 1, width)

    @classmethod
    def unknowns(cls, width: int) -> "BitVector":
        """Return a vector whose bits are all unknown."""
        return cls(0, width, (1 << width) - 1)

    @classmethod
    def concat(cls, *parts: "BitVector") -> "BitVector":
        """Concatenate vectors, the first argument ending up most significant."""
        value = 0
        unknown = 0
        width = 0
        for part in parts:
            value = (value << part.width) | part._value
            unknown = (unknown << part.width) | part._unknown
            width += part.width
        return cls(value, width, unknown)

    @property
    def width(self) -> int:
        return self._width

    @property
    def is_valid(self) -> bool:
        """True when no bit is unknown."""
        return self._unknown == 0

    @property
    def is_zero(self) -> bool:
        """True when every bit is a definite 0."""
        return self.is_valid and self._value == 0

    @property
    def is_all_ones(self) -> bool:
        """True when every bit is a definite 1."""
        return self.is_valid and self._value == (1 << self._width) - 1

    @property
    def bit_string(self) -> str:
        """MSB-first string, unknown bits shown as 'x'."""
        chars = []
        for idx in range(self._width - 1, -1, -1):
            if (self._unknown >> idx) & 1:
                chars.append("x")
            else:
                chars.append("1" if (self._value >> idx) & 1 else "0")
        return "".join(chars)

    def to_int(self) -> int:
        """Return the unsigned integer value; fails when any bit is unknown."""
        if not self.is_valid:
            raise InvalidBitsError(f"Bit vector {self.bit_string} has unknown bits")
        return self._value

    def bit(self, index: int) -> int:
        """Return a single bit; negative indexes count from the MSB."""
        if index < 0:
            index += self._width
        if not 0 <= index < self._width:
            raise FpvError(f"Bit index {index} out of range for width {self._width}")
        if (self._unknown >> index) & 1:
            raise InvalidBitsError(f"Bit {index} of {self.bit_string} is unknown")
        return (self._value >> index) & 1

    def slice(self, hi: int, lo: int) -> "BitVector":
        """Return bits hi..lo inclusive."""
        if not 0 <= lo <= hi < self._width:
            raise FpvError(f"Slice [{hi}:{lo}] out of range for width {self._width}")
        width = hi - lo + 1
        mask = (1 << width) - 1
        return BitVector((self._value >> lo) & mask, width, (self._unknown >> lo) & mask)

    def zero_extend(self, width: int) -> "BitVector":
        """Widen with leading zeros; narrowing is an error."""
        if width < self._width:
            raise FpvError(f"Cannot zero-extend width {self._width} to {width}")
        return BitVector(self._value, width, self._unknown)

    def reversed(self) -> "BitVector":
        """Return the vector with bit order reversed."""
        return BitVector.of_string(self.bit_string[::-1])

    def or_reduce(self) -> bool:
        """True when at least one bit is a definite 1."""
        if self._value:
            return True
        if not self.is_valid:
            raise InvalidBitsError(f"Bit vector {self.bit_string} has unknown bits")
        return False

    def compare_to(self, other: "BitVector") -> int:
        """Unsigned magnitude comparison returning -1, 0 or 1."""
        check_width("Compared bit vector", other.width, self._width)
        a = self.to_int()
        b = other.to_int()
        return (a > b) - (a < b)

    def __lshift__(self, amount: int) -> "BitVector":
        mask = (1 << self._width) - 1
        return BitVector((self._value << amount) & mask, self._width, (self._unknown << amount) & mask)

    def __rshift__(self, amount: int) -> "BitVector":
        return BitVector(self._value >> amount, self._width, self._unknown >> amount)

    def __and__(self, other: "BitVector") -> "BitVector":
        check_width("AND operand", other.width, self._width)
        known_zero = (~self._value & ~self._unknown) | (~other._value & ~other._unknown)
        mask = (1 << self._width) - 1
        unknown = (self._unknown | other._unknown) & ~known_zero & mask
        return BitVector(self._value & other._value & ~unknown, self._width, unknown)

    def __or__(self, other: "BitVector") -> "BitVector":
        check_width("OR operand", other.width, self._width)
        known_one = self._value | other._value
        unknown = (self._unknown | other._unknown) & ~known_one
        return BitVector(known_one, self._width, unknown)

    def __len__(self) -> int:
        return self._width

    def __int__(self) -> int:
        return self.to_int()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitVector):
            return NotImplemented
        return (self._width, self._value, self._unknown) == (other._width, other._value, other._unknown)

    def __hash__(self) -> int:
        return hash((self._width, self._value, self._unknown))

    def __str__(self) -> str:
        return self.bit_string

    def __repr__(self) -> str:
        return f"BitVector('{self.bit_string}')"


def pack_bits(values: Iterable[int], bits_per: int) -> bytes:
    """Pack unsigned patterns of bits_per bits into a little-endian bitstream."""
    if bits_per <= 0:
        raise FpvError(f"Invalid packed bit width {bits_per}")
    items: List[int] = [int(v) for v in values]
    out = bytearray((len(items) * bits_per + 7) // 8)
    for idx, raw in enumerate(items):
        check_fits("Packed value", raw, bits_per)
        bit_index = idx * bits_per
        written = 0
        while written < bits_per:
            byte_index = (bit_index + written) // 8
            shift = (bit_index + written) % 8
            take = min(8 - shift, bits_per - written)
            chunk = (raw >> written) & ((1 << take) - 1)
            out[byte_index] |= chunk << shift
            written += take
    return bytes(out)


def unpack_bits(raw: bytes, bits_per: int, count: Optional[int] = None) -> List[int]:
    """Unpack unsigned patterns of bits_per bits from a little-endian bitstream."""
    if bits_per <= 0:
        raise FpvError(f"Invalid packed bit width {bits_per}")
    if count is None:
        count = (len(raw) * 8) // bits_per
    if count * bits_per > len(raw) * 8:
        raise FpvError("Packed payload shorter than requested count")
    out = []
    for idx in range(count):
        bit_index = idx * bits_per
        val = 0
        read = 0
        while read < bits_per:
            byte_index = (bit_index + read) // 8
            shift = (bit_index + read) % 8
            take = min(8 - shift, bits_per - read)
            val |= ((raw[byte_index] >> shift) & ((1 << take) - 1)) << read
            read += take
        out.append(val)
    return out
