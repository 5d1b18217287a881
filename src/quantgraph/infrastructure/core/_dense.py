"""
Dense (fully connected) node: Linear, optional Bias, optional activation.

    y = act(x @ W + b)

Backward runs the pieces in reverse order (activation, bias, linear); each
child node writes its own parameter gradients.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
from typing_extensions import Self

from ._bias import Bias
from ._linear import Linear
from .._node import Node
from .._parameter import Parameter
from ..activations import ACTIVATIONS, BaseActivation
from ...domain._arithmetic import IArithmetic
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._engine import IEngine
from ...domain._errors import ValidationError
from ...domain._tensor import ITensor


def _make_activation(
    activation: Union[str, BaseActivation, None],
    engine: IEngine,
    arithmetic: IArithmetic,
    name: str,
    options: Optional[Mapping[str, Any]] = None,
) -> Optional[BaseActivation]:
    if activation is None or isinstance(activation, BaseActivation):
        return activation
    cls = ACTIVATIONS.get(str(activation))
    if cls is None:
        raise ValidationError(
            f"Dense: unknown activation {activation!r}; "
            f"available: {sorted(ACTIVATIONS)}"
        )
    return cls.build(engine, arithmetic, f"{name}_{cls.OP_TYPE.lower()}", {}, options or {})


class Dense(Node):
    """
    Fully connected layer.

    Parameters
    ----------
    name : str
        Layer name; children are named ``f"{name}_linear"`` and
        ``f"{name}_bias"``.
    engine : IEngine
        Compute engine.
    in_features, out_features : int
        Input and output feature sizes.
    bias : bool, optional
        Whether to add a learnable bias. Defaults to True.
    activation : str | BaseActivation | None, optional
        Activation applied last: an activation node, or one of ``"Tanh"``,
        ``"Sigmoid"``, ``"ReLU"``, ``"LeakyReLU"``.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.
    initializer : str, optional
        Weight initializer for the linear part.
    rng : Optional[numpy.random.Generator]
        Random generator used for initialization.
    """

    OP_TYPE = "Dense"

    def __init__(
        self,
        name: str,
        engine: IEngine,
        in_features: int,
        out_features: int,
        *,
        bias: bool = True,
        activation: Union[str, BaseActivation, None] = None,
        arithmetic: Optional[IArithmetic] = None,
        initializer: str = "xavier",
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(name, engine, arithmetic)
        self.linear = Linear(
            f"{name}_linear",
            engine,
            in_features,
            out_features,
            arithmetic=self.arithmetic,
            initializer=initializer,
            rng=rng,
        )
        self.bias = (
            Bias(f"{name}_bias", engine, out_features, arithmetic=self.arithmetic)
            if bias
            else None
        )
        self.activation = _make_activation(activation, engine, self.arithmetic, name)

    @property
    def in_features(self) -> int:
        return self.linear.in_features

    @property
    def out_features(self) -> int:
        return self.linear.out_features

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

        Feature sizes come from the ``linear.weights`` parameter when present,
        otherwise from the ``in_features`` / ``out_features`` attributes.
        """
        weights = params.get("linear.weights")
        if weights is not None:
            in_f, out_f = tuple(weights.value.shape)
        elif "in_features" in attrs and "out_features" in attrs:
            in_f, out_f = int(attrs["in_features"]), int(attrs["out_features"])
        else:
            raise ValidationError(
                f"Dense {name!r} needs a 'linear.weights' parameter or "
                "in_features/out_features attributes"
            )
        has_bias = bool(attrs.get("bias", "bias.biases" in params))
        obj = cls(
            name,
            engine,
            in_f,
            out_f,
            bias=has_bias,
            arithmetic=arithmetic,
            initializer="zeros",
        )
        obj.activation = _make_activation(
            attrs.get("activation"),
            engine,
            arithmetic,
            name,
            attrs.get("activation_attributes"),
        )
        if weights is not None:
            obj.linear.weights = weights
        if obj.bias is not None and "bias.biases" in params:
            obj.bias.biases = params["bias.biases"]
        return obj

    def attributes(self) -> Dict[str, Any]:
        attrs: Dict[str, Any] = {
            "bias": self.bias is not None,
            "activation": None if self.activation is None else self.activation.op_type,
        }
        if self.activation is not None and self.activation.attributes():
            attrs["activation_attributes"] = self.activation.attributes()
        return attrs

    def _static_output_shape(self) -> Tuple[int, ...]:
        return (1, self.out_features)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        y = self.linear.forward(x, token=token)
        if self.bias is not None:
            y = self.bias.forward(y, token=token)
        if self.activation is not None:
            y = self.activation.forward(y, token=token)
        return y

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        grad = output_gradient
        if self.activation is not None:
            (grad,) = self.activation.backward(mode, grad, token=token)
        if self.bias is not None:
            (grad,) = self.bias.backward(mode, grad, token=token)
        return self.linear.backward(mode, grad, *inputs, token=token)


__all__ = [
    Dense.__name__,
]
