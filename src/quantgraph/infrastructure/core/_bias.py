"""
Bias node: adds a learnable vector to the last axis of its input.

- Forward: ``y = x + b`` with ``b`` of shape ``(size,)`` broadcast over every
  leading axis.
- Backward: the input gradient is the output gradient unchanged; the bias
  gradient is the output gradient summed over every leading axis (the batch
  sum for 2-D input). It is overwritten on every call.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from typing_extensions import Self

from .._node import Node
from .._parameter import Parameter
from ..utils.weight_initializer import WeightInitializer
from ...domain._arithmetic import IArithmetic
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._engine import IEngine
from ...domain._errors import ShapeMismatchError, ValidationError
from ...domain._tensor import ITensor


class Bias(Node):
    """
    Learnable additive bias.

    Parameters
    ----------
    name : str
        Layer name; the parameter is named ``f"{name}_biases"``.
    engine : IEngine
        Compute engine.
    size : int
        Length of the bias vector (the input's last axis).
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.
    initializer : str, optional
        Registered initializer name, ``"zeros"`` by default.

    Raises
    ------
    ValidationError
        If the name is empty or `size` is not positive.
    """

    OP_TYPE = "Bias"

    def __init__(
        self,
        name: str,
        engine: IEngine,
        size: int,
        *,
        arithmetic: Optional[IArithmetic] = None,
        initializer: str = "zeros",
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(name, engine, arithmetic)
        if int(size) <= 0:
            raise ValidationError(f"Bias expects a positive size, got {size}")
        self.size = int(size)
        b = self.engine.zeros((self.size,))
        WeightInitializer(initializer)(b, arithmetic=self.arithmetic, rng=rng)
        self.biases = Parameter(f"{name}_biases", b, arithmetic=self.arithmetic)

    @classmethod
    def from_parameters(
        cls,
        name: str,
        engine: IEngine,
        biases: Parameter,
        *,
        arithmetic: Optional[IArithmetic] = None,
    ) -> Self:
        """
        Build a Bias node around an existing 1-D parameter.
        """
        shape = tuple(biases.value.shape)
        if len(shape) != 1:
            raise ShapeMismatchError(f"Bias parameter must be 1D, got shape {shape}")
        obj = cls(name, engine, shape[0], arithmetic=arithmetic)
        obj.biases = biases
        return obj

    @classmethod
    def build(
        cls,
        engine: IEngine,
        arithmetic: IArithmetic,
        name: str,
        params: Mapping[str, Parameter],
        attrs: Mapping[str, Any],
    ) -> Self:
        """Registry builder: prefer an existing ``biases`` parameter."""
        if "biases" in params:
            return cls.from_parameters(
                name, engine, params["biases"], arithmetic=arithmetic
            )
        if "size" not in attrs:
            raise ValidationError(
                f"Bias {name!r} needs a 'biases' parameter or a 'size' attribute"
            )
        return cls(name, engine, int(attrs["size"]), arithmetic=arithmetic)

    def attributes(self) -> Dict[str, Any]:
        return {"size": self.size}

    def _static_output_shape(self) -> Tuple[int, ...]:
        return (1, self.size)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        shape = tuple(x.shape)
        if len(shape) < 1 or shape[-1] != self.size:
            raise ShapeMismatchError(
                f"Bias expects last dimension {self.size}, got input shape {shape}"
            )
        return self.engine.add(x, self.biases.value, token=token)

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        flat = self.engine.reshape(output_gradient, (-1, self.size), token=token)
        self.biases.set_gradient(self.engine.sum(flat, axis=0, token=token))
        return [output_gradient]


__all__ = [
    Bias.__name__,
]
