#!/usr/bin/env python3
"""
Quantize a random activation tensor to low-precision formats and report the error.
"""

from __future__ import annotations

from pathlib import Path
import sys

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from fpv_format import histogram_string  # noqa: E402
from fpv_numeric import pack_array, quantize_array, unpack_array  # noqa: E402
from fpv_rounding import max_value  # noqa: E402
from fpv_types import BF16, FP16, FP8_E4M3, FP8_E5M2  # noqa: E402


def build_activations() -> np.ndarray:
    rng = np.random.default_rng(6)
    return rng.normal(0.0, 4.0, size=(8, 32)).astype(np.float32)


def main() -> None:
    x = build_activations()
    for fmt in (FP16, BF16, FP8_E5M2, FP8_E4M3):
        limit = max_value(fmt)
        q = quantize_array(np.clip(x, -limit, limit), fmt, clamp=True)
        err = np.abs(q - x.astype(np.float64))
        packed = pack_array(q, fmt)
        restored = unpack_array(packed, fmt, count=q.size).reshape(q.shape)
        assert np.array_equal(restored, q)
        print(f"{fmt.name}: {len(packed)} bytes, max err {err.max():.6g}, mean err {err.mean():.6g}")
        print(f"- hist: {histogram_string(err)}")


if __name__ == "__main__":
    main()
