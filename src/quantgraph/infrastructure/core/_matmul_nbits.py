"""
Matrix multiplication with packed N-bit quantized weights.

`MatMulNBits` computes

    y = x @ dequantize(W_q)

where ``W_q`` is a ``(rows, cols // 2)`` uint8 matrix of packed 4-bit codes
(low nibble first) and row ``r`` dequantizes as
``scale[r] * (code - zero_point[r])``. `scale` and `zero_point` are either
per-row (length ``rows``) or global (length 1). In symmetric mode the zero
point is fixed at 128 and any zero-point tensor is ignored.

Dequantized-weight cache
------------------------
The dequantized matrix is computed on first use and the same `Tensor`
instance is returned until the cache is invalidated. Replacing the packed
weights, the scale or the zero point invalidates it synchronously. The cache
is guarded by a re-entrant lock; the rest of the node follows the usual
single-owner rule of `Node`.

The quantized weights are frozen: backward returns only the input gradient
and the node owns no trainable parameters.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from typing_extensions import Self

from .._node import Node
from .._parameter import Parameter
from ..quantization import dequantize_4bit_matrix
from ..tensor._tensor import Tensor
from ...domain._arithmetic import IArithmetic
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._engine import IEngine
from ...domain._errors import (
    QuantizationConfigError,
    ShapeMismatchError,
    UnsupportedBitWidthError,
    ValidationError,
)
from ...domain._tensor import ITensor

SUPPORTED_NBITS = (4,)


def _as_array(values: Any, what: str) -> np.ndarray:
    if values is None:
        raise ValidationError(f"MatMulNBits: {what} cannot be None")
    return np.asarray(values.to_numpy() if isinstance(values, ITensor) else values)


def _first_non_byte(arr: np.ndarray) -> Optional[Any]:
    """Return the first element that is not an integer in [0, 255], if any."""
    if arr.dtype == np.uint8 or arr.size == 0:
        return None
    if arr.dtype.kind not in "iuf":
        return arr.reshape(-1)[0]
    flat = arr.reshape(-1)
    with np.errstate(invalid="ignore"):
        bad = ~np.isfinite(flat) | (flat != np.floor(flat)) | (flat < 0) | (flat > 0xFF)
    idx = np.flatnonzero(bad)
    return flat[idx[0]].item() if idx.size else None


class MatMulNBits(Node):
    """
    Linear transform with frozen 4-bit quantized weights.

    Parameters
    ----------
    name : str
        Layer name.
    engine : IEngine
        Compute engine.
    quantized_weights : ITensor | array-like of uint8
        Packed codes of shape ``(rows, cols // 2)``.
    scale : ITensor | array-like
        1-D scale of length ``rows`` or 1, in the node's element type.
    zero_point : ITensor | array-like of uint8, optional
        1-D zero point matching the scale length. Only used when not
        symmetric; a missing zero point means 0.
    nbits : int, optional
        Bit width of each code. Only 4 is supported.
    symmetric : bool, optional
        Use the fixed zero point 128.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.

    Raises
    ------
    UnsupportedBitWidthError
        If `nbits` is not 4.
    ValidationError
        If the weights or the scale are missing, or a packed weight is not a
        byte value.
    QuantizationConfigError
        If a zero-point entry is not an integer in ``[0, 255]``.
    ShapeMismatchError
        If the weights are not 2-D, or the scale / zero point are not 1-D
        or do not fit the row count.
    """

    OP_TYPE = "MatMulNBits"

    def __init__(
        self,
        name: str,
        engine: IEngine,
        quantized_weights: Any,
        scale: Any,
        zero_point: Optional[Any] = None,
        *,
        nbits: int = 4,
        symmetric: bool = False,
        arithmetic: Optional[IArithmetic] = None,
    ) -> None:
        super().__init__(name, engine, arithmetic)
        if int(nbits) not in SUPPORTED_NBITS:
            raise UnsupportedBitWidthError(int(nbits), SUPPORTED_NBITS)
        self.nbits = int(nbits)
        self.symmetric = bool(symmetric)

        self._cache_lock = threading.RLock()
        self._dequantized: Optional[Tensor] = None

        self._quantized_weights = self._check_weights(quantized_weights)
        self._scale = self._check_scale(scale, self.rows)
        self._zero_point = self._check_zero_point(zero_point, self._scale.shape[0])

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    @staticmethod
    def _check_weights(quantized_weights: Any) -> Tensor:
        arr = _as_array(quantized_weights, "quantized weights")
        bad = _first_non_byte(arr)
        if bad is not None:
            raise ValidationError(
                f"MatMulNBits: quantized weights must hold bytes in [0, 255], got {bad!r}"
            )
        q = Tensor.from_numpy(arr, dtype=np.uint8)
        if q.ndim != 2:
            raise ShapeMismatchError(
                f"quantized weights must be 2D, got shape {tuple(q.shape)}"
            )
        return q

    def _check_scale(self, scale: Any, rows: int) -> Tensor:
        if scale is None:
            raise ValidationError("MatMulNBits: scale tensor cannot be None")
        arr = scale.to_numpy() if isinstance(scale, ITensor) else np.asarray(scale)
        if arr.ndim != 1:
            raise ShapeMismatchError(f"scale must be 1D, got shape {arr.shape}")
        if arr.shape[0] not in (rows, 1):
            raise ShapeMismatchError(
                f"scale shape [{arr.shape[0]}] incompatible with weight matrix rows {rows}"
            )
        return self.engine.from_numpy(arr)

    def _check_zero_point(self, zero_point: Any, scale_len: int) -> Optional[Tensor]:
        if zero_point is None:
            return None
        arr = _as_array(zero_point, "zero point")
        bad = _first_non_byte(arr)
        if bad is not None:
            raise QuantizationConfigError(
                f"zero point must be in range [0, 255], got {bad!r}",
                float(self._scale.to_numpy().reshape(-1)[0]),
                bad,
            )
        zp = Tensor.from_numpy(arr, dtype=np.uint8)
        if not self.symmetric:
            if zp.ndim != 1:
                raise ShapeMismatchError(
                    f"zero point must be 1D, got shape {tuple(zp.shape)}"
                )
            if zp.shape[0] != scale_len:
                raise ShapeMismatchError(
                    f"zero point shape [{zp.shape[0]}] must match scale shape [{scale_len}]"
                )
        return zp

    # ------------------------------------------------------------------
    # Quantization state
    # ------------------------------------------------------------------
    @property
    def rows(self) -> int:
        return int(self._quantized_weights.shape[0])

    @property
    def cols(self) -> int:
        return int(self._quantized_weights.shape[1]) * 2

    @property
    def quantized_weights(self) -> Tensor:
        return self._quantized_weights

    @property
    def scale(self) -> Tensor:
        return self._scale

    @property
    def zero_point(self) -> Optional[Tensor]:
        return self._zero_point

    def set_quantized_weights(self, quantized_weights: Any) -> None:
        """
        Replace the packed weights and invalidate the cache.

        The row count must still fit the current scale.
        """
        q = self._check_weights(quantized_weights)
        self._check_scale(self._scale, int(q.shape[0]))
        with self._cache_lock:
            self._quantized_weights = q
            self._dequantized = None

    def set_scale(self, scale: Any) -> None:
        """Replace the scale and invalidate the cache."""
        s = self._check_scale(scale, self.rows)
        if self._zero_point is not None:
            self._check_zero_point(self._zero_point, s.shape[0])
        with self._cache_lock:
            self._scale = s
            self._dequantized = None

    def set_zero_point(self, zero_point: Optional[Any]) -> None:
        """Replace (or clear) the zero point and invalidate the cache."""
        zp = self._check_zero_point(zero_point, self._scale.shape[0])
        with self._cache_lock:
            self._zero_point = zp
            self._dequantized = None

    def invalidate_cache(self) -> None:
        """Drop the cached dequantized weights."""
        with self._cache_lock:
            self._dequantized = None

    def get_dequantized_weights(self) -> Tensor:
        """
        Return the dequantized ``(rows, cols)`` weight matrix.

        Consecutive calls return the same instance until the cache is
        invalidated.
        """
        with self._cache_lock:
            if self._dequantized is None:
                values = dequantize_4bit_matrix(
                    self._quantized_weights.to_numpy(),
                    self._scale.to_numpy(),
                    None if self._zero_point is None else self._zero_point.to_numpy(),
                    self.symmetric,
                    self.arithmetic,
                )
                self._dequantized = Tensor(
                    values.shape, values, dtype=self.arithmetic.dtype
                )
            return self._dequantized

    def buffers(self) -> Dict[str, Tensor]:
        """Return the frozen tensors that define this node."""
        out = {"quantized_weights": self._quantized_weights, "scale": self._scale}
        if self._zero_point is not None:
            out["zero_point"] = self._zero_point
        return out

    def quantization_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "nbits": self.nbits,
            "symmetric": self.symmetric,
            "has_scale": self._scale is not None,
            "has_zero_point": self._zero_point is not None,
            "scale_shape": tuple(self._scale.shape),
            "quantized_shape": tuple(self._quantized_weights.shape),
            "actual_weight_shape": (self.rows, self.cols),
        }
        if self._zero_point is not None:
            info["zero_point_shape"] = tuple(self._zero_point.shape)
        return info

    # ------------------------------------------------------------------
    # Node contract
    # ------------------------------------------------------------------
    @classmethod
    def build(
        cls,
        engine: IEngine,
        arithmetic: IArithmetic,
        name: str,
        params: Mapping[str, Parameter],
        attrs: Mapping[str, Any],
    ) -> Self:
        """
        Registry builder.

        The frozen tensors arrive as non-trainable parameters named
        ``quantized_weights``, ``scale`` and optionally ``zero_point``.
        """
        missing = [k for k in ("quantized_weights", "scale") if k not in params]
        if missing:
            raise ValidationError(f"MatMulNBits {name!r} is missing tensors {missing}")
        zp = params.get("zero_point")
        return cls(
            name,
            engine,
            params["quantized_weights"].value,
            params["scale"].value,
            None if zp is None else zp.value,
            nbits=int(attrs.get("nbits", 4)),
            symmetric=bool(attrs.get("symmetric", False)),
            arithmetic=arithmetic,
        )

    def attributes(self) -> Dict[str, Any]:
        return {"nbits": self.nbits, "symmetric": self.symmetric}

    def _static_output_shape(self) -> Tuple[int, ...]:
        return (1, self.cols)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        weights = self.get_dequantized_weights()
        shape = tuple(x.shape)
        if len(shape) < 2:
            raise ShapeMismatchError(f"input must be at least 2D, got shape {shape}")
        if shape[-1] != self.rows:
            raise ShapeMismatchError(
                f"input last dimension {shape[-1]} must match weights first "
                f"dimension {self.rows}"
            )
        return self.engine.matmul(x, weights, token=token)

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        weights = self.get_dequantized_weights()
        w_t = self.engine.transpose(weights, (1, 0), token=token)
        return [self.engine.matmul(output_gradient, w_t, token=token)]

    def __repr__(self) -> str:
        return (
            f"MatMulNBits({self.rows}x{self.cols}, {self.nbits}-bit, "
            f"symmetric={self.symmetric})"
        )


__all__ = [
    MatMulNBits.__name__,
]
