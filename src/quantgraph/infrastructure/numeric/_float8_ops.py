"""
8-bit floating-point arithmetic (E4M3, finite-only variant).

NumPy has no native 8-bit float, so storage uses `ml_dtypes.float8_e4m3fn`.
Operations are evaluated in float32 and rounded back to E4M3 after every
operation. The format has no infinities; values whose magnitude exceeds the
largest finite value (448) saturate to ±448 and a `RuntimeWarning` is issued.
NaN is preserved.
"""

from __future__ import annotations

import warnings
from typing import Any

import ml_dtypes
import numpy as np

from ._float_ops import _FloatArithmetic

FLOAT8_MAX = 448.0


class Float8Ops(_FloatArithmetic):
    """
    E4M3 8-bit float arithmetic with saturating conversion.
    """

    name = "float8"
    dtype = np.dtype(ml_dtypes.float8_e4m3fn)
    compute_dtype = np.dtype(np.float32)

    def cast(self, values: Any) -> np.ndarray:
        arr = np.asarray(values)
        if arr.dtype == self.dtype:
            return arr
        f = arr.astype(np.float64)
        over = np.abs(f) > FLOAT8_MAX
        if np.any(over):
            warnings.warn(
                f"float8: {int(np.count_nonzero(over))} value(s) outside "
                f"±{FLOAT8_MAX:g} saturated",
                RuntimeWarning,
                stacklevel=2,
            )
            f = np.clip(f, -FLOAT8_MAX, FLOAT8_MAX)
        return f.astype(self.dtype)


__all__ = [
    Float8Ops.__name__,
]
