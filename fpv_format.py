"""Pretty-print helpers for floating-point value reports."""
from __future__ import annotations

import math
from typing import Any, Dict

import numpy as np

from fpv_value import FloatingPointValue


def format_scalar(value: object) -> str:
    """Format a scalar value for display."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "nan"
        if math.isinf(value):
            return "-inf" if value < 0 else "inf"
        return f"{value:.9g}"
    return str(value)


def classify(fpv: FloatingPointValue) -> str:
    """Name the class of a value."""
    if fpv.is_nan:
        return "nan"
    if fpv.is_infinity:
        return "infinity"
    if fpv.is_zero:
        return "zero"
    if fpv.is_subnormal:
        return "subnormal"
    return "normal"


def describe(fpv: FloatingPointValue) -> Dict[str, Any]:
    """Collect the fields, class and double value of a value."""
    sign, exponent, mantissa = fpv.fields()
    return {
        "format": fpv.format.name,
        "bits": fpv.to_string(),
        "hex": f"0x{fpv.value.to_int():0{(fpv.format.width + 3) // 4}x}",
        "sign": sign,
        "exponent": exponent,
        "unbiased": max(exponent, 1) - fpv.bias,
        "mantissa": mantissa,
        "class": classify(fpv),
        "double": fpv.to_double(),
    }


def format_description(fpv: FloatingPointValue) -> str:
    """One-line report of a value."""
    info = describe(fpv)
    return (
        f"{info['bits']} ({info['hex']}) = {format_scalar(info['double'])}"
        f" [{info['class']}, exp {info['unbiased']}]"
    )


def format_values_1d(values: np.ndarray, edge: int = 5) -> str:
    """Format an array as one flat list, keeping ``edge`` items at each end."""
    flat = np.ravel(values)
    items = [format_scalar(v.item()) for v in flat]
    if flat.size > 2 * edge:
        items = items[:edge] + ["..."] + items[-edge:]
    return "{ " + ", ".join(items) + " }"


def histogram_string(values: np.ndarray, bins: int = 10) -> str:
    """Build a compact histogram string over the finite entries of a float array."""
    numeric = np.asarray(values, dtype=np.float64)
    finite = numeric[np.isfinite(numeric)]
    if finite.size == 0:
        return "{(empty)}"
    vmin = float(np.min(finite))
    vmax = float(np.max(finite))
    entries = []
    if vmin == vmax:
        entries.append(f"([{vmin:.6g}, {vmax:.6g}], {finite.size})")
    else:
        hist, edges = np.histogram(finite, bins=bins, range=(vmin, vmax))
        for i in range(bins):
            count = int(hist[i])
            if count:
                entries.append(f"([{edges[i]:.6g}, {edges[i + 1]:.6g}], {count})")
    return "{" + ", ".join(entries) + "}"
