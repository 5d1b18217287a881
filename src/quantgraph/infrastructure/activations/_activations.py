"""
Concrete element-wise activation nodes: Tanh, Sigmoid, ReLU, LeakyReLU.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from typing_extensions import Self

from ._base_activation import BaseActivation
from .._parameter import Parameter
from ...domain._arithmetic import IArithmetic
from ...domain._engine import IEngine


class Tanh(BaseActivation):
    """Hyperbolic tangent; derivative ``1 - tanh(x)^2``."""

    OP_TYPE = "Tanh"

    def _activate(self, x: Any) -> Any:
        return self.arithmetic.tanh(x)

    def _derivative(self, x: Any) -> Any:
        return self.arithmetic.tanh_grad(x)


class Sigmoid(BaseActivation):
    """Logistic sigmoid; derivative ``s * (1 - s)``."""

    OP_TYPE = "Sigmoid"

    def _activate(self, x: Any) -> Any:
        return self.arithmetic.sigmoid(x)

    def _derivative(self, x: Any) -> Any:
        return self.arithmetic.sigmoid_grad(x)


class ReLU(BaseActivation):
    """Rectified linear unit; derivative 1 for ``x > 0`` else 0."""

    OP_TYPE = "ReLU"

    def _activate(self, x: Any) -> Any:
        return self.arithmetic.relu(x)

    def _derivative(self, x: Any) -> Any:
        return self.arithmetic.relu_grad(x)


class LeakyReLU(BaseActivation):
    """
    Leaky ReLU with negative slope `alpha`.

    Parameters
    ----------
    engine : IEngine
        Compute engine.
    arithmetic : Optional[IArithmetic]
        Element type.
    alpha : float, optional
        Slope for ``x <= 0``. Defaults to 0.01.
    name : Optional[str]
        Node name.
    """

    OP_TYPE = "LeakyReLU"
    DEFAULT_ALPHA = 0.01

    def __init__(
        self,
        engine: IEngine,
        arithmetic: Optional[IArithmetic] = None,
        *,
        alpha: float = DEFAULT_ALPHA,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(engine, arithmetic, name=name)
        self.alpha = float(alpha)

    @classmethod
    def build(
        cls,
        engine: IEngine,
        arithmetic: IArithmetic,
        name: str,
        params: Mapping[str, Parameter],
        attrs: Mapping[str, Any],
    ) -> Self:
        return cls(
            engine,
            arithmetic,
            alpha=float(attrs.get("alpha", cls.DEFAULT_ALPHA)),
            name=name,
        )

    def attributes(self) -> Dict[str, Any]:
        return {"alpha": self.alpha}

    def _activate(self, x: Any) -> Any:
        return self.arithmetic.leaky_relu(x, self.alpha)

    def _derivative(self, x: Any) -> Any:
        return self.arithmetic.leaky_relu_grad(x, self.alpha)


ACTIVATIONS = {
    cls.OP_TYPE: cls for cls in (Tanh, Sigmoid, ReLU, LeakyReLU)
}


__all__ = [
    Tanh.__name__,
    Sigmoid.__name__,
    ReLU.__name__,
    LeakyReLU.__name__,
]
