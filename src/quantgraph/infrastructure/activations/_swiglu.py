"""
SwiGLU gated activation.

The input's last axis (length ``2H``) is split into halves ``x1`` and ``x2``:

    y = x1 * sigmoid(x2)            shape (..., H)

Backward, with ``g = sigmoid(x2)``:

    dx1 = dy * g
    dx2 = dy * x1 * g * (1 - g)
    dx  = concat(dx1, dx2, axis=-1)
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ._base_activation import BaseActivation
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._errors import ShapeMismatchError
from ...domain._tensor import ITensor


class SwiGLU(BaseActivation):
    """
    Swish-gated linear unit over the last axis.

    Raises
    ------
    ShapeMismatchError
        (at forward) If the last axis is missing or has odd length.
    """

    OP_TYPE = "SwiGLU"

    @staticmethod
    def infer_output_shape(input_shape: Tuple[int, ...]) -> Tuple[int, ...]:
        """
        Return the output shape for an input shape.

        Raises
        ------
        ShapeMismatchError
            If the input has no axes or an odd last axis.
        """
        shape = tuple(input_shape)
        if len(shape) < 1:
            raise ShapeMismatchError("SwiGLU input must have at least one dimension")
        if shape[-1] % 2 != 0:
            raise ShapeMismatchError(
                f"last dimension of input ({shape[-1]}) must be even for SwiGLU"
            )
        return shape[:-1] + (shape[-1] // 2,)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        (x,) = inputs
        self.infer_output_shape(tuple(x.shape))
        axis = len(x.shape) - 1
        x1, x2 = self.engine.split(x, 2, axis, token=token)
        gate = self.engine.unary_op(x2, self.arithmetic.sigmoid, token=token)
        return self.engine.mul(x1, gate, token=token)

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        (x,) = inputs
        e = self.engine
        ops = self.arithmetic
        axis = len(x.shape) - 1
        x1, x2 = e.split(x, 2, axis, token=token)
        gate = e.unary_op(x2, ops.sigmoid, token=token)

        d_x1 = e.mul(output_gradient, gate, token=token)
        d_gate = e.mul(output_gradient, x1, token=token)
        one_minus_gate = e.unary_op(gate, lambda g: ops.sub(ops.one(), g), token=token)
        sigmoid_grad = e.mul(gate, one_minus_gate, token=token)
        d_x2 = e.mul(d_gate, sigmoid_grad, token=token)
        return [e.concat([d_x1, d_x2], axis, token=token)]


__all__ = [
    SwiGLU.__name__,
]
