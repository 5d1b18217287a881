"""
Byte-integer arithmetics (int8, uint8).

Integer semantics
-----------------
- add / sub / mul / abs / sum are computed in int64 and wrapped back into the
  storage type (two's complement modular arithmetic).
- Division truncates toward zero; division by zero yields zero.
- Conversion from floating point truncates toward zero, saturates at the
  type bounds and maps NaN to zero.
- Transcendental functions and activation derivatives are evaluated in
  float64 and converted with the truncating conversion, so e.g.
  ``tanh_grad(0) == 1`` while ``sigmoid_grad(0) == 0``.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ._base import _ArithmeticBase
from ...domain._arithmetic import Axis


class _IntegerArithmetic(_ArithmeticBase):
    """
    Common implementation of `IArithmetic` for byte-integer element types.
    """

    compute_dtype = np.dtype(np.int64)

    def cast(self, values: Any) -> np.ndarray:
        arr = np.asarray(values)
        if arr.dtype == self.dtype:
            return arr
        if arr.dtype.kind in "biu":
            # modular wrap-around
            return arr.astype(np.int64).astype(self.dtype)
        info = np.iinfo(self.dtype)
        f = np.nan_to_num(
            arr.astype(np.float64), nan=0.0, posinf=info.max, neginf=info.min
        )
        return np.clip(np.trunc(f), info.min, info.max).astype(self.dtype)

    def _via_float(self, fn, *args: Any) -> Any:
        floats = [np.asarray(self.cast(a)).astype(np.float64) for a in args]
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return self._out(fn(*floats))

    # ---- basic binary operations ----
    def add(self, a: Any, b: Any) -> Any:
        return self._out(self._lift(a) + self._lift(b))

    def sub(self, a: Any, b: Any) -> Any:
        return self._out(self._lift(a) - self._lift(b))

    def mul(self, a: Any, b: Any) -> Any:
        return self._out(self._lift(a) * self._lift(b))

    def div(self, a: Any, b: Any) -> Any:
        a = self._lift(a)
        b = self._lift(b)
        zero_den = b == 0
        safe = np.where(zero_den, 1, b)
        q = (np.abs(a) // np.abs(safe)) * np.sign(a) * np.sign(safe)
        return self._out(np.where(zero_den, 0, q))

    # ---- activations ----
    def tanh(self, x: Any) -> Any:
        return self._via_float(np.tanh, x)

    def sigmoid(self, x: Any) -> Any:
        return self._via_float(_stable_sigmoid, x)

    def relu(self, x: Any) -> Any:
        x = self._lift(x)
        return self._out(np.where(x > 0, x, 0))

    def leaky_relu(self, x: Any, alpha: float) -> Any:
        return self._via_float(lambda v: np.where(v > 0, v, v * alpha), x)

    def tanh_grad(self, x: Any) -> Any:
        return self._via_float(lambda v: 1.0 - np.tanh(v) ** 2, x)

    def sigmoid_grad(self, x: Any) -> Any:
        def _grad(v):
            s = _stable_sigmoid(v)
            return s * (1.0 - s)

        return self._via_float(_grad, x)

    def relu_grad(self, x: Any) -> Any:
        x = self._lift(x)
        return self._out(np.where(x > 0, 1, 0))

    def leaky_relu_grad(self, x: Any, alpha: float) -> Any:
        return self._via_float(lambda v: np.where(v > 0, 1.0, alpha), x)

    # ---- misc math ----
    def abs(self, x: Any) -> Any:
        return self._out(np.abs(self._lift(x)))

    def sqrt(self, x: Any) -> Any:
        return self._via_float(np.sqrt, x)

    def exp(self, x: Any) -> Any:
        return self._via_float(np.exp, x)

    def log(self, x: Any) -> Any:
        return self._via_float(np.log, x)

    def pow(self, base: Any, exponent: Any) -> Any:
        return self._via_float(np.power, base, exponent)

    def sum(self, values: Any, axis: Axis = None, keepdims: bool = False) -> Any:
        return self._out(np.sum(self._lift(values), axis=axis, keepdims=keepdims))


def _stable_sigmoid(v: np.ndarray) -> np.ndarray:
    e = np.exp(-np.abs(v))
    return np.where(v >= 0, 1.0 / (1.0 + e), e / (1.0 + e))


class Int8Ops(_IntegerArithmetic):
    """Signed 8-bit integer arithmetic with wrap-around."""

    name = "int8"
    dtype = np.dtype(np.int8)


class Uint8Ops(_IntegerArithmetic):
    """Unsigned 8-bit integer arithmetic with wrap-around."""

    name = "uint8"
    dtype = np.dtype(np.uint8)


__all__ = [
    Int8Ops.__name__,
    Uint8Ops.__name__,
]
