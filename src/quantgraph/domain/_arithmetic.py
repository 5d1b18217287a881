"""
Arithmetic capability interface definitions.

This module defines the domain-level contract every numeric element type must
satisfy so that kernels (activations, reductions, dequantization) can be
written once and instantiated for any supported representation.

The contract is structural (`typing.Protocol`): any object exposing the listed
operations is a valid arithmetic. Operations accept Python scalars or NumPy
arrays and return values in the implementation's own storage dtype, which is
where all rounding and saturation behavior lives.

Notes
-----
- No operation is fallible. Division by the additive identity returns the
  additive identity instead of raising or producing NaN/inf.
- Callers must never assume promotion to a wider type: the value returned by
  a gradient function is already rounded into the element type.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Tuple, Union, runtime_checkable

import numpy as np

Axis = Optional[Union[int, Tuple[int, ...]]]


@runtime_checkable
class IArithmetic(Protocol):
    """
    Domain-level arithmetic capability for one element type.

    Attributes
    ----------
    name : str
        Canonical element type name (e.g. ``"float16"``).
    dtype : numpy.dtype
        Storage dtype used for every value this arithmetic returns.
    """

    name: str
    dtype: np.dtype

    # ---- basic binary operations ----
    def add(self, a: Any, b: Any) -> Any:
        """Return ``a + b`` in the element type."""
        ...

    def sub(self, a: Any, b: Any) -> Any:
        """Return ``a - b`` in the element type."""
        ...

    def mul(self, a: Any, b: Any) -> Any:
        """Return ``a * b`` in the element type."""
        ...

    def div(self, a: Any, b: Any) -> Any:
        """Return ``a / b``; positions where ``b`` is zero yield zero."""
        ...

    # ---- activations and their derivatives ----
    def tanh(self, x: Any) -> Any:
        """Hyperbolic tangent."""
        ...

    def sigmoid(self, x: Any) -> Any:
        """Logistic sigmoid."""
        ...

    def relu(self, x: Any) -> Any:
        """Rectified linear unit."""
        ...

    def leaky_relu(self, x: Any, alpha: float) -> Any:
        """Leaky rectified linear unit with negative slope ``alpha``."""
        ...

    def tanh_grad(self, x: Any) -> Any:
        """Derivative of `tanh` evaluated at ``x``."""
        ...

    def sigmoid_grad(self, x: Any) -> Any:
        """Derivative of `sigmoid` evaluated at ``x``."""
        ...

    def relu_grad(self, x: Any) -> Any:
        """Derivative of `relu` evaluated at ``x``."""
        ...

    def leaky_relu_grad(self, x: Any, alpha: float) -> Any:
        """Derivative of `leaky_relu` evaluated at ``x``."""
        ...

    # ---- conversions and identities ----
    def from_float32(self, f: Any) -> Any:
        """Convert float32 value(s) into the element type."""
        ...

    def from_float64(self, f: Any) -> Any:
        """Convert float64 value(s) into the element type."""
        ...

    def to_float32(self, x: Any) -> Any:
        """Convert element value(s) to float32."""
        ...

    def to_float64(self, x: Any) -> Any:
        """Convert element value(s) to float64."""
        ...

    def cast(self, values: Any) -> np.ndarray:
        """Convert an arbitrary numeric array into the element type."""
        ...

    def zero(self) -> Any:
        """Additive identity."""
        ...

    def one(self) -> Any:
        """Multiplicative identity."""
        ...

    def is_zero(self, x: Any) -> Any:
        """Return True where ``x`` equals the additive identity."""
        ...

    # ---- misc math ----
    def abs(self, x: Any) -> Any:
        """Absolute value."""
        ...

    def sqrt(self, x: Any) -> Any:
        """Square root."""
        ...

    def exp(self, x: Any) -> Any:
        """Natural exponential."""
        ...

    def log(self, x: Any) -> Any:
        """Natural logarithm."""
        ...

    def pow(self, base: Any, exponent: Any) -> Any:
        """``base ** exponent``."""
        ...

    def sum(self, values: Any, axis: Axis = None, keepdims: bool = False) -> Any:
        """Sum a sequence (or reduce along ``axis``) in the element type."""
        ...

    def greater_than(self, a: Any, b: Any) -> Any:
        """Ordering comparison ``a > b``."""
        ...
