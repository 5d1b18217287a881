"""
Concrete trainable parameter implementation.

This module defines `Parameter`, an infrastructure-level implementation of the
domain contract `IParameter`. A `Parameter` pairs a named value tensor with a
gradient tensor. It is owned by exactly one node: the node writes the
gradient during its backward pass, external optimizers mutate the value.

Design notes
------------
- The gradient starts absent (None) and is created by the first backward.
- `set_gradient` overwrites and `add_gradient` sums. Each node documents
  which one it uses; most overwrite, the recurrent cell sums its bias
  gradient across steps.
- Gradient summation goes through the arithmetic of the value's element
  type so it rounds like every other operation on that type.
- The `requires_grad` flag freezes a parameter without changing node
  structure; frozen parameters ignore incoming gradients.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..domain._arithmetic import IArithmetic
from ..domain._errors import ShapeMismatchError, ValidationError
from ..domain._parameter import IParameter
from ..domain._tensor import ITensor
from .numeric import arithmetic_for
from .tensor._tensor import Tensor


class Parameter(IParameter):
    """
    Named trainable tensor with a gradient slot.

    Parameters
    ----------
    name : str
        Non-empty parameter name.
    value : ITensor
        Initial value.
    requires_grad : bool, optional
        Whether backward passes should write a gradient. Defaults to True.
    arithmetic : Optional[IArithmetic]
        Arithmetic used to sum gradients. Defaults to the one matching the
        value's dtype.

    Raises
    ------
    ValidationError
        If `name` is empty or `value` is None.
    """

    def __init__(
        self,
        name: str,
        value: ITensor,
        *,
        requires_grad: bool = True,
        arithmetic: Optional[IArithmetic] = None,
    ) -> None:
        if not isinstance(name, str) or not name:
            raise ValidationError("parameter name cannot be empty")
        if value is None:
            raise ValidationError(f"parameter {name!r}: value cannot be None")
        self._name = name
        self._value: ITensor = value
        self._gradient: Optional[ITensor] = None
        self._requires_grad = bool(requires_grad)
        self._arithmetic = (
            arithmetic if arithmetic is not None else arithmetic_for(value.dtype)
        )

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not isinstance(value, str) or not value:
            raise ValidationError("parameter name cannot be empty")
        self._name = value

    @property
    def value(self) -> ITensor:
        return self._value

    @value.setter
    def value(self, new_value: ITensor) -> None:
        """
        Replace the value tensor.

        Raises
        ------
        ShapeMismatchError
            If the new value's shape differs from the current one.
        """
        if tuple(new_value.shape) != tuple(self._value.shape):
            raise ShapeMismatchError(
                f"parameter {self._name!r}: value shape {tuple(self._value.shape)} "
                f"cannot be replaced by {tuple(new_value.shape)}"
            )
        self._value = new_value

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self._value.shape)

    @property
    def gradient(self) -> Optional[ITensor]:
        return self._gradient

    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)

    def _check_shape(self, grad: ITensor) -> None:
        if tuple(grad.shape) != tuple(self._value.shape):
            raise ShapeMismatchError(
                f"parameter {self._name!r}: gradient shape {tuple(grad.shape)} "
                f"does not match value shape {tuple(self._value.shape)}"
            )

    def set_gradient(self, grad: Optional[ITensor]) -> None:
        """
        Overwrite the stored gradient (None clears it).

        Raises
        ------
        ShapeMismatchError
            If `grad` is not shaped like the value.
        """
        if grad is None:
            self._gradient = None
            return
        if not self._requires_grad:
            return
        self._check_shape(grad)
        self._gradient = grad

    def add_gradient(self, grad: ITensor) -> None:
        """
        Sum `grad` into the stored gradient.

        If no gradient is stored yet, `grad` becomes the gradient.

        Raises
        ------
        ShapeMismatchError
            If `grad` is not shaped like the value.
        """
        if not self._requires_grad:
            return
        self._check_shape(grad)
        if self._gradient is None:
            self._gradient = grad
            return
        total = self._arithmetic.add(
            np.asarray(self._gradient.to_numpy()), np.asarray(grad.to_numpy())
        )
        arr = np.asarray(total)
        self._gradient = Tensor(arr.shape, arr, dtype=self._arithmetic.dtype)

    def zero_grad(self) -> None:
        """Clear the stored gradient."""
        self._gradient = None

    def __repr__(self) -> str:
        return (
            f"Parameter(name={self._name!r}, shape={tuple(self._value.shape)}, "
            f"requires_grad={self._requires_grad})"
        )


__all__ = [
    Parameter.__name__,
]
