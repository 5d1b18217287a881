"""
Shared implementation for element-wise activation nodes.

An activation pairs an element function ``f`` with its derivative ``f'``,
both taken from the node's arithmetic so they round in the element type:

- forward:  ``y = unary_op(x, f)``
- backward: ``dx = dy * unary_op(x, f')``

Activations own no parameters and ignore the backward mode.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from typing_extensions import Self

from .._node import Node
from .._parameter import Parameter
from ...domain._arithmetic import IArithmetic
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._engine import IEngine
from ...domain._tensor import ITensor


class BaseActivation(Node):
    """
    Base class for unary activation nodes.

    Subclasses implement `_activate` and `_derivative` in terms of
    ``self.arithmetic``.

    Parameters
    ----------
    engine : IEngine
        Compute engine.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.
    name : Optional[str]
        Node name; defaults to the lower-cased operation tag.
    """

    def __init__(
        self,
        engine: IEngine,
        arithmetic: Optional[IArithmetic] = None,
        *,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name or self.OP_TYPE.lower(), engine, arithmetic)

    @classmethod
    def build(
        cls,
        engine: IEngine,
        arithmetic: IArithmetic,
        name: str,
        params: Mapping[str, Parameter],
        attrs: Mapping[str, Any],
    ) -> Self:
        return cls(engine, arithmetic, name=name)

    def _activate(self, x: Any) -> Any:
        raise NotImplementedError

    def _derivative(self, x: Any) -> Any:
        raise NotImplementedError

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        return self.engine.unary_op(x, self._activate, token=token)

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        (x,) = inputs
        derivative = self.engine.unary_op(x, self._derivative, token=token)
        return [self.engine.mul(output_gradient, derivative, token=token)]


__all__ = [
    BaseActivation.__name__,
]
