"""
Dequantization of packed 4-bit weight buffers into an element type.

These functions compose unpacking and dequantization in one pass and produce
arrays in the target arithmetic's storage dtype directly; they are the
numerical core of `MatMulNBits`.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ._config import SYMMETRIC_ZERO_POINT, QuantizationConfig
from ._packing import unpack_4bit_array
from ...domain._arithmetic import IArithmetic
from ...domain._errors import ShapeMismatchError


def dequantize_4bit_weights(
    packed: Any, config: QuantizationConfig, arithmetic: IArithmetic
) -> np.ndarray:
    """
    Unpack a packed 4-bit buffer and dequantize it with a single config.

    Parameters
    ----------
    packed : array-like of uint8
        Packed bytes (low nibble first). The last axis doubles in length.
    config : QuantizationConfig
        Scale / zero point applied to every code.
    arithmetic : IArithmetic
        Element type of the result.

    Returns
    -------
    numpy.ndarray
        Dequantized values in ``arithmetic.dtype``.
    """
    return config.dequantize_4bit_weights(packed, arithmetic)


def dequantize_4bit_matrix(
    packed: Any,
    scale: Any,
    zero_point: Optional[Any],
    symmetric: bool,
    arithmetic: IArithmetic,
) -> np.ndarray:
    """
    Dequantize a packed ``(rows, cols // 2)`` weight matrix row by row.

    Row ``r`` is dequantized as ``scale[r] * (code - zp[r])`` where `scale`
    and `zero_point` are either per-row (length ``rows``) or global
    (length 1). In symmetric mode the zero point is 128 and `zero_point` is
    ignored; in asymmetric mode a missing zero point means 0.

    The code difference is formed exactly in integers, converted into the
    element type, and multiplied by the scale with the element type's own
    multiplication.

    Raises
    ------
    ShapeMismatchError
        If `packed` is not 2-D or `scale` / `zero_point` lengths fit neither
        the per-row nor the global layout.
    """
    q = np.asarray(packed)
    if q.ndim != 2:
        raise ShapeMismatchError(f"quantized weights must be 2D, got shape {q.shape}")
    codes = unpack_4bit_array(q).astype(np.int64)
    rows = codes.shape[0]

    s = np.asarray(scale).reshape(-1)
    if s.size not in (rows, 1):
        raise ShapeMismatchError(
            f"scale shape [{s.size}] incompatible with weight matrix rows {rows}"
        )

    if symmetric:
        zp = np.full((1,), SYMMETRIC_ZERO_POINT, dtype=np.int64)
    elif zero_point is None:
        zp = np.zeros((1,), dtype=np.int64)
    else:
        zp = np.asarray(zero_point).reshape(-1).astype(np.int64)
        if zp.size not in (rows, 1):
            raise ShapeMismatchError(
                f"zero point shape [{zp.size}] incompatible with weight matrix rows {rows}"
            )

    diff = arithmetic.cast(codes - zp.reshape(-1, 1))
    scale_col = arithmetic.cast(s).reshape(-1, 1)
    return np.asarray(arithmetic.mul(scale_col, diff))


__all__ = [
    dequantize_4bit_weights.__name__,
    dequantize_4bit_matrix.__name__,
]
