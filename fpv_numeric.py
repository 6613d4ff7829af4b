"""Numpy conversions between float arrays and packed format bit patterns."""
from __future__ import annotations

from typing import Optional

import numpy as np

from fpv_bits import pack_bits, unpack_bits
from fpv_common import FpvError
from fpv_constants import constant_fields
from fpv_populator import populator
from fpv_types import FP16, FP32, FP64, FloatFormat, FloatingPointConstant, RoundingMode

NATIVE_DTYPES = {
    FP16: (np.float16, np.uint16),
    FP32: (np.float32, np.uint32),
    FP64: (np.float64, np.uint64),
}


def bits_dtype(fmt: FloatFormat) -> np.dtype:
    """Smallest unsigned dtype holding a packed value of the format."""
    for dtype in (np.uint8, np.uint16, np.uint32, np.uint64):
        if fmt.width <= np.dtype(dtype).itemsize * 8:
            return np.dtype(dtype)
    raise FpvError(f"Format {fmt.name} is wider than 64 bits")


def _native(fmt: FloatFormat, rounding_mode: RoundingMode):
    if rounding_mode != RoundingMode.ROUND_NEAREST_EVEN:
        return None
    return NATIVE_DTYPES.get(fmt)


def _nan_bits(fmt: FloatFormat) -> int:
    sign, exponent, mantissa = constant_fields(fmt, FloatingPointConstant.NAN)
    return (sign << (fmt.width - 1)) | (exponent << fmt.mantissa_width) | mantissa


def float_to_bits(
    value: float,
    fmt: FloatFormat,
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
    clamp: bool = False,
) -> int:
    """Convert a float to the packed bit pattern of the format."""
    fpv = populator(fmt).of_double(float(value), rounding_mode=rounding_mode, clamp=clamp)
    return fpv.value.to_int()


def bits_to_float(bits: int, fmt: FloatFormat) -> float:
    """Convert a packed bit pattern of the format to a float."""
    return populator(fmt).of_int(int(bits)).to_double()


def encode_array(
    values: np.ndarray,
    fmt: FloatFormat,
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
    clamp: bool = False,
) -> np.ndarray:
    """Convert a float array to an array of packed bit patterns."""
    arr = np.asarray(values, dtype=np.float64)
    native = _native(fmt, rounding_mode)
    if native is not None:
        float_dtype, uint_dtype = native
        with np.errstate(over="ignore"):
            bits = arr.astype(float_dtype).view(uint_dtype).copy()
        bits[np.isnan(arr)] = _nan_bits(fmt)
        return bits
    vec = np.vectorize(
        lambda v: float_to_bits(v, fmt, rounding_mode, clamp), otypes=[bits_dtype(fmt)]
    )
    return vec(arr)


def decode_array(bits: np.ndarray, fmt: FloatFormat) -> np.ndarray:
    """Convert an array of packed bit patterns to float64."""
    raw = np.asarray(bits)
    native = _native(fmt, RoundingMode.ROUND_NEAREST_EVEN)
    if native is not None:
        float_dtype, uint_dtype = native
        return raw.astype(uint_dtype).view(float_dtype).astype(np.float64)
    vec = np.vectorize(lambda b: bits_to_float(b, fmt), otypes=[np.float64])
    return vec(raw.astype(bits_dtype(fmt)))


def quantize_array(
    values: np.ndarray,
    fmt: FloatFormat,
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
    clamp: bool = False,
) -> np.ndarray:
    """Round every element to the nearest value representable in the format."""
    return decode_array(encode_array(values, fmt, rounding_mode, clamp), fmt)


def pack_array(
    values: np.ndarray,
    fmt: FloatFormat,
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST_EVEN,
) -> bytes:
    """Encode a float array and pack the patterns into a little-endian bitstream."""
    bits = encode_array(values, fmt, rounding_mode)
    return pack_bits(bits.ravel().tolist(), fmt.width)


def unpack_array(raw: bytes, fmt: FloatFormat, count: Optional[int] = None) -> np.ndarray:
    """Unpack a bitstream of format patterns and decode it to float64."""
    patterns = unpack_bits(raw, fmt.width, count)
    return decode_array(np.array(patterns, dtype=bits_dtype(fmt)), fmt)
