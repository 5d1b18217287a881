"""
Linear transform node.

`Linear` performs a bias-free projection of batch-major inputs:

    y = x @ W

Shape conventions
-----------------
- x : (..., in_features)   (at least 2-D)
- W : (in_features, out_features)
- y : (..., out_features)

Backward
--------
- dW = x2ᵀ · dY2, where x2 / dY2 flatten every leading axis into one batch
  axis. The weight gradient is overwritten on every call.
- dX = dY · Wᵀ
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


class Linear(Node):
    """
    Bias-free linear transform ``y = x @ W``.

    Parameters
    ----------
    name : str
        Layer name; the weight parameter is named ``f"{name}_weights"``.
    engine : IEngine
        Compute engine.
    in_features : int
        Size of the input's last axis.
    out_features : int
        Size of the output's last axis.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.
    initializer : str, optional
        Name of a registered weight initializer (``"xavier"`` by default,
        ``"he"``, ``"uniform"``, ...).
    initializer_options : Optional[dict]
        Options for the initializer (e.g. ``{"scale": 0.05}`` for uniform).
    rng : Optional[numpy.random.Generator]
        Random generator used for initialization.

    Raises
    ------
    ValidationError
        If the name is empty or a feature size is not positive.
    """

    OP_TYPE = "Linear"

    def __init__(
        self,
        name: str,
        engine: IEngine,
        in_features: int,
        out_features: int,
        *,
        arithmetic: Optional[IArithmetic] = None,
        initializer: str = "xavier",
        initializer_options: Optional[Dict[str, Any]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(name, engine, arithmetic)
        if int(in_features) <= 0 or int(out_features) <= 0:
            raise ValidationError(
                f"Linear expects positive feature sizes, got in_features={in_features}, "
                f"out_features={out_features}"
            )
        self.in_features = int(in_features)
        self.out_features = int(out_features)

        w = self.engine.zeros((self.in_features, self.out_features))
        WeightInitializer(initializer, **(initializer_options or {}))(
            w, arithmetic=self.arithmetic, rng=rng
        )
        self.weights = Parameter(f"{name}_weights", w, arithmetic=self.arithmetic)

    @classmethod
    def from_parameters(
        cls,
        name: str,
        engine: IEngine,
        weights: Parameter,
        *,
        arithmetic: Optional[IArithmetic] = None,
    ) -> Self:
        """
        Build a Linear node around an existing weight parameter.

        Raises
        ------
        ShapeMismatchError
            If `weights` is not 2-D.
        """
        shape = tuple(weights.value.shape)
        if len(shape) != 2:
            raise ShapeMismatchError(
                f"Linear weights must be 2D (in_features, out_features), got {shape}"
            )
        obj = cls(
            name,
            engine,
            shape[0],
            shape[1],
            arithmetic=arithmetic,
            initializer="zeros",
        )
        obj.weights = weights
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
        """Registry builder: prefer an existing ``weights`` parameter."""
        if "weights" in params:
            return cls.from_parameters(
                name, engine, params["weights"], arithmetic=arithmetic
            )
        try:
            in_f, out_f = int(attrs["in_features"]), int(attrs["out_features"])
        except KeyError as e:
            raise ValidationError(
                f"Linear {name!r} needs a 'weights' parameter or "
                f"in_features/out_features attributes (missing {e})"
            ) from e
        return cls(name, engine, in_f, out_f, arithmetic=arithmetic)

    def attributes(self) -> Dict[str, Any]:
        return {"in_features": self.in_features, "out_features": self.out_features}

    def _static_output_shape(self) -> Tuple[int, ...]:
        return (1, self.out_features)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        shape = tuple(x.shape)
        if len(shape) < 2:
            raise ShapeMismatchError(f"Linear: input must be at least 2D, got {shape}")
        if shape[-1] != self.in_features:
            raise ShapeMismatchError(
                f"Linear expects in_features={self.in_features}, got input shape {shape}"
            )
        return self.engine.matmul(x, self.weights.value, token=token)

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        (x,) = inputs
        e = self.engine
        x2 = e.reshape(x, (-1, self.in_features), token=token)
        dy2 = e.reshape(output_gradient, (-1, self.out_features), token=token)
        d_weights = e.matmul(e.transpose(x2, token=token), dy2, token=token)
        self.weights.set_gradient(d_weights)

        w_t = e.transpose(self.weights.value, (1, 0), token=token)
        return [e.matmul(output_gradient, w_t, token=token)]


__all__ = [
    Linear.__name__,
]
