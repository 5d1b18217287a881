"""
Elman recurrent cell.

    a_t = x_t @ W_x + h_{t-1} @ W_h + b
    h_t = tanh(a_t)

The cell keeps its hidden state between calls. `forward(x_t)` reads the
stored state; `forward(x_t, h_prev)` uses an explicit previous state (the
form an external unroller drives). Either way the new state is stored.

Backward consults the `BackwardMode`:

- ``FULL_BACKPROP`` returns ``dh_{t-1} = da_t @ W_hᵀ`` so an unroller can
  chain it to the previous step.
- ``ONE_STEP_APPROXIMATION`` truncates the chain with a zero gradient.

The hidden-state gradient is always stored on `last_hidden_gradient`; it is
also returned when the previous state was an explicit input.
"""

from __future__ import annotations

import warnings
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from typing_extensions import Self

from .._node import Node
from .._parameter import Parameter
from ..core._linear import Linear
from ...domain._arithmetic import IArithmetic
from ...domain._backward_mode import BackwardMode
from ...domain._cancellation import CancellationToken
from ...domain._engine import IEngine
from ...domain._errors import ShapeMismatchError, ValidationError
from ...domain._tensor import ITensor


class SimpleRNN(Node):
    """
    Single-layer tanh recurrent cell.

    Parameters
    ----------
    name : str
        Layer name; children are ``f"{name}_input_weights"`` and
        ``f"{name}_hidden_weights"``, the bias is ``f"{name}_bias"``.
    engine : IEngine
        Compute engine.
    input_dim : int
        Size of ``x_t``'s last axis.
    hidden_dim : int
        Size of the hidden state.
    arithmetic : Optional[IArithmetic]
        Element type; defaults to ``engine.arithmetic``.
    initializer : str, optional
        Initializer for both weight matrices.
    rng : Optional[numpy.random.Generator]
        Random generator used for initialization.

    Notes
    -----
    The bias gradient is accumulated across backward calls (one per time
    step) until `zero_grad`; the weight gradients describe the most recent
    step only.
    """

    OP_TYPE = "SimpleRNN"
    INPUT_ARITY = (1, 2)

    def __init__(
        self,
        name: str,
        engine: IEngine,
        input_dim: int,
        hidden_dim: int,
        *,
        arithmetic: Optional[IArithmetic] = None,
        initializer: str = "xavier",
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(name, engine, arithmetic)
        if int(input_dim) <= 0 or int(hidden_dim) <= 0:
            raise ValidationError(
                f"SimpleRNN expects positive sizes, got input_dim={input_dim}, "
                f"hidden_dim={hidden_dim}"
            )
        self.input_dim = int(input_dim)
        self.hidden_dim = int(hidden_dim)

        self.input_weights = Linear(
            f"{name}_input_weights",
            engine,
            self.input_dim,
            self.hidden_dim,
            arithmetic=self.arithmetic,
            initializer=initializer,
            rng=rng,
        )
        self.hidden_weights = Linear(
            f"{name}_hidden_weights",
            engine,
            self.hidden_dim,
            self.hidden_dim,
            arithmetic=self.arithmetic,
            initializer=initializer,
            rng=rng,
        )
        self.bias = Parameter(
            f"{name}_bias",
            self.engine.zeros((1, self.hidden_dim)),
            arithmetic=self.arithmetic,
        )

        self.hidden_state: Optional[ITensor] = None
        self.last_hidden_gradient: Optional[ITensor] = None
        self._pre_activation: Optional[ITensor] = None

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

        Sizes come from ``input_weights.weights`` when present, otherwise from
        the ``input_dim`` / ``hidden_dim`` attributes.
        """
        w_x = params.get("input_weights.weights")
        if w_x is not None:
            input_dim, hidden_dim = tuple(w_x.value.shape)
        elif "input_dim" in attrs and "hidden_dim" in attrs:
            input_dim, hidden_dim = int(attrs["input_dim"]), int(attrs["hidden_dim"])
        else:
            raise ValidationError(
                f"SimpleRNN {name!r} needs an 'input_weights.weights' parameter or "
                "input_dim/hidden_dim attributes"
            )
        obj = cls(
            name, engine, input_dim, hidden_dim, arithmetic=arithmetic, initializer="zeros"
        )
        if w_x is not None:
            obj.input_weights.weights = w_x
        if "hidden_weights.weights" in params:
            obj.hidden_weights.weights = params["hidden_weights.weights"]
        if "bias" in params:
            obj.bias = params["bias"]
        return obj

    def attributes(self) -> Dict[str, Any]:
        return {"input_dim": self.input_dim, "hidden_dim": self.hidden_dim}

    def _static_output_shape(self) -> Tuple[int, ...]:
        return (1, self.hidden_dim)

    def reset_state(self) -> None:
        """Forget the stored hidden state (the next step starts from zeros)."""
        self.hidden_state = None
        self.last_hidden_gradient = None

    def _stored_state(self, batch: int) -> ITensor:
        h = self.hidden_state
        if h is not None and tuple(h.shape) != (batch, self.hidden_dim):
            warnings.warn(
                f"SimpleRNN {self.name!r}: batch size changed from {h.shape[0]} to "
                f"{batch}; resetting the hidden state",
                RuntimeWarning,
                stacklevel=4,
            )
            h = None
        if h is None:
            h = self.engine.zeros((batch, self.hidden_dim))
        return h

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        x = inputs[0]
        shape = tuple(x.shape)
        if len(shape) != 2 or shape[1] != self.input_dim:
            raise ShapeMismatchError(
                f"SimpleRNN expects input of shape (batch, {self.input_dim}), got {shape}"
            )
        if len(inputs) == 2:
            h_prev = inputs[1]
            if tuple(h_prev.shape) != (shape[0], self.hidden_dim):
                raise ShapeMismatchError(
                    f"SimpleRNN expects hidden state of shape "
                    f"({shape[0]}, {self.hidden_dim}), got {tuple(h_prev.shape)}"
                )
        else:
            h_prev = self._stored_state(shape[0])

        e = self.engine
        a = e.add(
            self.input_weights.forward(x, token=token),
            self.hidden_weights.forward(h_prev, token=token),
            token=token,
        )
        a = e.add(a, self.bias.value, token=token)
        self._pre_activation = a

        h = e.tanh(a, token=token)
        self.hidden_state = h
        return h

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        e = self.engine
        d_a = e.tanh_prime(self._pre_activation, output_gradient, token=token)
        self.bias.add_gradient(e.sum(d_a, axis=0, keepdims=True, token=token))

        (d_x,) = self.input_weights.backward(mode, d_a, token=token)
        (d_h,) = self.hidden_weights.backward(mode, d_a, token=token)
        if mode is BackwardMode.ONE_STEP_APPROXIMATION:
            d_h = e.zeros_like(d_h, token=token)
        self.last_hidden_gradient = d_h

        if len(inputs) == 2:
            return [d_x, d_h]
        return [d_x]


__all__ = [
    SimpleRNN.__name__,
]
