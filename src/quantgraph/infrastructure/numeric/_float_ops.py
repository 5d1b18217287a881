"""
IEEE floating-point arithmetics (float64, float32, float16).

Each operation is evaluated with NumPy in the storage dtype, so results are
rounded to nearest-even once per operation exactly as the element type
would. Activation gradients reuse the type's own activation and the type's
own `sub`/`mul`, i.e. ``tanh_grad(x) = 1 - t*t`` with ``t = tanh(x)`` rounded
into the element type first.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ._base import _ArithmeticBase
from ...domain._arithmetic import Axis


class _FloatArithmetic(_ArithmeticBase):
    """
    Common implementation of `IArithmetic` for floating-point element types.
    """

    def cast(self, values: Any) -> np.ndarray:
        return np.asarray(values).astype(self.dtype, copy=False)

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
        safe = np.where(zero_den, np.ones_like(b), b)
        return self._out(np.where(zero_den, 0, a / safe))

    # ---- activations ----
    def tanh(self, x: Any) -> Any:
        return self._out(np.tanh(self._lift(x)))

    def sigmoid(self, x: Any) -> Any:
        x = self._lift(x)
        # exp(-|x|) never overflows; pick the branch by sign
        e = np.exp(-np.abs(x))
        return self._out(np.where(x >= 0, 1 / (1 + e), e / (1 + e)))

    def relu(self, x: Any) -> Any:
        x = self._lift(x)
        return self._out(np.where(x > 0, x, 0))

    def leaky_relu(self, x: Any, alpha: float) -> Any:
        x = self._lift(x)
        return self._out(np.where(x > 0, x, x * alpha))

    def tanh_grad(self, x: Any) -> Any:
        t = self.tanh(x)
        return self.sub(self.one(), self.mul(t, t))

    def sigmoid_grad(self, x: Any) -> Any:
        s = self.sigmoid(x)
        return self.mul(s, self.sub(self.one(), s))

    def relu_grad(self, x: Any) -> Any:
        x = self._lift(x)
        return self._out(np.where(x > 0, 1, 0))

    def leaky_relu_grad(self, x: Any, alpha: float) -> Any:
        x = self._lift(x)
        return self._out(np.where(x > 0, 1.0, alpha))

    # ---- misc math ----
    def abs(self, x: Any) -> Any:
        return self._out(np.abs(self._lift(x)))

    def sqrt(self, x: Any) -> Any:
        with np.errstate(invalid="ignore"):
            return self._out(np.sqrt(self._lift(x)))

    def exp(self, x: Any) -> Any:
        with np.errstate(over="ignore"):
            return self._out(np.exp(self._lift(x)))

    def log(self, x: Any) -> Any:
        with np.errstate(divide="ignore", invalid="ignore"):
            return self._out(np.log(self._lift(x)))

    def pow(self, base: Any, exponent: Any) -> Any:
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            return self._out(np.power(self._lift(base), self._lift(exponent)))

    def sum(self, values: Any, axis: Axis = None, keepdims: bool = False) -> Any:
        return self._out(
            np.sum(
                self._lift(values),
                axis=axis,
                keepdims=keepdims,
                dtype=self.compute_dtype,
            )
        )


class Float64Ops(_FloatArithmetic):
    """Double-precision arithmetic."""

    name = "float64"
    dtype = np.dtype(np.float64)
    compute_dtype = np.dtype(np.float64)


class Float32Ops(_FloatArithmetic):
    """Single-precision arithmetic (the default element type)."""

    name = "float32"
    dtype = np.dtype(np.float32)
    compute_dtype = np.dtype(np.float32)


class Float16Ops(_FloatArithmetic):
    """
    IEEE half-precision arithmetic.

    Notes
    -----
    Values above 65504 round to infinity, as IEEE half does; no saturation is
    applied.
    """

    name = "float16"
    dtype = np.dtype(np.float16)
    compute_dtype = np.dtype(np.float16)


__all__ = [
    Float64Ops.__name__,
    Float32Ops.__name__,
    Float16Ops.__name__,
]
