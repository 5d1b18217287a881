"""
Gated feed-forward block.

    h1 = Dense_w1(x)                    (..., hidden)
    h3 = Dense_w3(x)                    (..., hidden)
    g  = SwiGLU(concat(h1, h3, -1))     (..., hidden)
    y  = Dense_w2(g)                    (..., output)

`x` feeds both `w1` and `w3`, so their input gradients are summed in
backward.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from typing_extensions import Self

from ._dense import Dense
from .._node import Node
from .._parameter import Parameter
from ..activations import SwiGLU
from ...domain._arithmetic import IArithmetic
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._engine import IEngine
from ...domain._errors import ValidationError
from ...domain._tensor import ITensor


class FFN(Node):
    """
    Feed-forward block with a SwiGLU gate.

    Parameters
    ----------
    name : str
        Layer name; sublayers are named ``f"{name}_w1"``, ``f"{name}_w3"``
        and ``f"{name}_w2"``.
    engine : IEngine
        Compute engine.
    input_dim, hidden_dim, output_dim : int
        Feature sizes.
    with_bias : bool, optional
        Whether the three dense sublayers carry a bias. Defaults to True.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.
    initializer : str, optional
        Weight initializer for the three sublayers.
    rng : Optional[numpy.random.Generator]
        Random generator used for initialization.
    """

    OP_TYPE = "FFN"

    def __init__(
        self,
        name: str,
        engine: IEngine,
        input_dim: int,
        hidden_dim: int,
        output_dim: int,
        *,
        with_bias: bool = True,
        arithmetic: Optional[IArithmetic] = None,
        initializer: str = "xavier",
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(name, engine, arithmetic)
        self.input_dim = int(input_dim)
        self.hidden_dim = int(hidden_dim)
        self.output_dim = int(output_dim)
        self.with_bias = bool(with_bias)

        def dense(suffix: str, n_in: int, n_out: int) -> Dense:
            return Dense(
                f"{name}_{suffix}",
                engine,
                n_in,
                n_out,
                bias=self.with_bias,
                arithmetic=self.arithmetic,
                initializer=initializer,
                rng=rng,
            )

        self.w1 = dense("w1", self.input_dim, self.hidden_dim)
        self.w3 = dense("w3", self.input_dim, self.hidden_dim)
        self.w2 = dense("w2", self.hidden_dim, self.output_dim)
        self.swiglu = SwiGLU(engine, self.arithmetic, name=f"{name}_swiglu")

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

        Dimensions come from the attributes; existing parameters (keyed by
        attribute path, e.g. ``"w1.linear.weights"``) replace the freshly
        initialized ones.
        """
        try:
            dims = (
                int(attrs["input_dim"]),
                int(attrs["hidden_dim"]),
                int(attrs["output_dim"]),
            )
        except KeyError as e:
            raise ValidationError(f"FFN {name!r} is missing attribute {e}") from e
        obj = cls(
            name,
            engine,
            *dims,
            with_bias=bool(attrs.get("with_bias", True)),
            arithmetic=arithmetic,
            initializer="zeros",
        )
        for path, param in params.items():
            sub, _, rest = path.partition(".")
            child = obj.children().get(sub)
            owner, _, attr = rest.rpartition(".")
            if child is None or not attr:
                raise ValidationError(f"FFN {name!r}: unexpected parameter {path!r}")
            target = child.children().get(owner) if owner else child
            if target is None:
                raise ValidationError(f"FFN {name!r}: unexpected parameter {path!r}")
            setattr(target, attr, param)
        return obj

    def attributes(self) -> Dict[str, Any]:
        return {
            "input_dim": self.input_dim,
            "hidden_dim": self.hidden_dim,
            "output_dim": self.output_dim,
            "with_bias": self.with_bias,
        }

    def _static_output_shape(self) -> Tuple[int, ...]:
        return (1, self.output_dim)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        h1 = self.w1.forward(x, token=token)
        h3 = self.w3.forward(x, token=token)
        gated = self.engine.concat([h1, h3], len(h1.shape) - 1, token=token)
        return self.w2.forward(self.swiglu.forward(gated, token=token), token=token)

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        e = self.engine
        (d_gated,) = self.w2.backward(mode, output_gradient, token=token)
        (d_concat,) = self.swiglu.backward(mode, d_gated, token=token)
        d_h1, d_h3 = e.split(d_concat, 2, len(d_concat.shape) - 1, token=token)
        (d_x1,) = self.w1.backward(mode, d_h1, token=token)
        (d_x3,) = self.w3.backward(mode, d_h3, token=token)
        return [e.add(d_x1, d_x3, token=token)]


__all__ = [
    FFN.__name__,
]
