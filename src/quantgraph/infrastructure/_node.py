"""
Infrastructure node base class.

This module provides a concrete `Node` implementation that satisfies the
domain-level `INode` protocol. It implements the conveniences shared by every
layer:

- parameter and child-node registration (explicit or via attribute
  assignment), with recursive traversal (`parameters`, `named_parameters`)
- input arity validation
- the forward cache guard: `backward` is only valid after a `forward` and
  only for the inputs of the latest forward (same objects, or equal values)
- `__call__` forwarding to `forward`

Subclasses implement `_forward` and `_backward`; the public `forward` and
`backward` wrap them with validation and cache bookkeeping.

Thread safety
-------------
A node caches per-call state between `forward` and `backward`. Concurrent use
of the *same* node instance must be serialized by the caller; distinct
instances are independent.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..domain._arithmetic import IArithmetic
from ..domain._backward_mode import BackwardMode
from ..domain._cancellation import CancellationToken
from ..domain._engine import IEngine
from ..domain._errors import (
    BackwardBeforeForwardError,
    InvalidInputCountError,
    ShapeMismatchError,
    StaleCacheError,
    ValidationError,
)
from ..domain._node import INode
from ..domain._tensor import ITensor
from ._parameter import Parameter


def _same_values(given: ITensor, seen: ITensor) -> bool:
    if given is seen:
        return True
    a, b = np.asarray(given.to_numpy()), np.asarray(seen.to_numpy())
    if a.dtype != b.dtype:
        return False
    return bool(
        np.array_equal(a.astype(np.float64), b.astype(np.float64), equal_nan=True)
    )


class Node(INode):
    """
    Base class for computation-graph nodes.

    Class attributes
    ----------------
    OP_TYPE : str
        Operation tag used for serialization and registry lookup.
    INPUT_ARITY : tuple[int, ...]
        Accepted input counts for `forward`.

    Parameters
    ----------
    name : str
        Non-empty node name; parameter names are derived from it.
    engine : IEngine
        Compute engine all numeric work is delegated to.
    arithmetic : Optional[IArithmetic]
        Element-type arithmetic. Defaults to ``engine.arithmetic``.

    Raises
    ------
    ValidationError
        If `name` is empty.
    """

    OP_TYPE: ClassVar[str] = "Node"
    INPUT_ARITY: ClassVar[Tuple[int, ...]] = (1,)

    def __init__(
        self,
        name: str,
        engine: IEngine,
        arithmetic: Optional[IArithmetic] = None,
    ) -> None:
        # Use object.__setattr__ to avoid triggering our __setattr__ logic.
        object.__setattr__(self, "_parameters", {})
        object.__setattr__(self, "_nodes", {})
        if not isinstance(name, str) or not name:
            raise ValidationError(f"{self.OP_TYPE}: layer name cannot be empty")
        self.name = name
        self.engine = engine
        self.arithmetic = arithmetic if arithmetic is not None else engine.arithmetic
        self._cached_inputs: Optional[Tuple[ITensor, ...]] = None
        self._cached_output_shape: Optional[Tuple[int, ...]] = None

    def __setattr__(self, name: str, value: Any) -> None:
        """
        Intercept attribute assignment to auto-register Parameters and child
        Nodes.
        """
        if name in {"_parameters", "_nodes"}:
            object.__setattr__(self, name, value)
            return

        if value is None:
            self._parameters.pop(name, None)
            self._nodes.pop(name, None)
        elif isinstance(value, Parameter):
            self._parameters[name] = value
        elif isinstance(value, Node):
            self._nodes[name] = value

        object.__setattr__(self, name, value)

    # ------------------------------------------------------------------
    # Registration / traversal
    # ------------------------------------------------------------------
    def register_parameter(self, name: str, param: Optional[Parameter]) -> None:
        """
        Register a parameter under `name` (None is ignored).
        """
        if param is None:
            return
        self._parameters[name] = param
        object.__setattr__(self, name, param)

    def register_node(self, name: str, node: Optional["Node"]) -> None:
        """
        Register a child node under `name` (None is ignored).
        """
        if node is None:
            return
        self._nodes[name] = node
        object.__setattr__(self, name, node)

    def parameters(self) -> List[Parameter]:
        """
        Return this node's parameters followed by its children's (recursive).
        """
        return [p for _, p in self.named_parameters()]

    def named_parameters(self, prefix: str = "") -> Iterator[tuple[str, Parameter]]:
        """
        Yield ``(qualified_attribute_path, parameter)`` pairs (recursive).
        """
        base = prefix + "." if prefix else ""

        for name, p in self._parameters.items():
            yield (f"{base}{name}", p)

        for child_name, child in self._nodes.items():
            yield from child.named_parameters(f"{base}{child_name}")

    def children(self) -> Dict[str, "Node"]:
        """Return the directly registered child nodes."""
        return dict(self._nodes)

    def zero_grad(self) -> None:
        """Clear the gradients of every parameter (recursive)."""
        for p in self.parameters():
            p.zero_grad()

    # ------------------------------------------------------------------
    # Description
    # ------------------------------------------------------------------
    @property
    def op_type(self) -> str:
        return self.OP_TYPE

    @property
    def input_arity(self) -> Tuple[int, ...]:
        return self.INPUT_ARITY

    def attributes(self) -> Dict[str, Any]:
        """
        Return the node's non-tensor attributes (JSON serializable).
        """
        return {}

    def output_shape(self) -> Tuple[int, ...]:
        """
        Return the shape of the most recent output, or the statically known
        output shape before the first forward.
        """
        if self._cached_output_shape is not None:
            return self._cached_output_shape
        return self._static_output_shape()

    def _static_output_shape(self) -> Tuple[int, ...]:
        return ()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # ------------------------------------------------------------------
    # Forward / backward
    # ------------------------------------------------------------------
    def _check_arity(self, inputs: Sequence[ITensor]) -> None:
        if len(inputs) not in self.INPUT_ARITY:
            raise InvalidInputCountError(self.OP_TYPE, self.INPUT_ARITY, len(inputs))

    def forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """
        Validate arity, compute the output and cache the inputs.

        Raises
        ------
        InvalidInputCountError
            If the number of inputs is not accepted by this node.
        ShapeMismatchError
            If input shapes are incompatible with the node.
        """
        self._check_arity(inputs)
        output = self._forward(*inputs, token=token)
        self._cached_inputs = tuple(inputs)
        self._cached_output_shape = tuple(output.shape)
        return output

    def backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        """
        Compute one gradient per input of the last `forward` call.

        Parameters
        ----------
        mode : BackwardMode
            Backward policy. Only recurrent nodes act on it.
        output_gradient : ITensor
            Gradient of the loss with respect to this node's output; must be
            shaped like the last output.
        *inputs : ITensor
            The inputs of the matching forward call. When omitted, the cached
            inputs are used.
        token : Optional[CancellationToken]
            Forwarded to the engine.

        Raises
        ------
        BackwardBeforeForwardError
            If no forward pass has been cached.
        StaleCacheError
            If `inputs` differ in count, shape, dtype or values from the
            inputs of the last forward.
        ShapeMismatchError
            If `output_gradient` is not shaped like the last output.
        """
        if not isinstance(mode, BackwardMode):
            raise ValidationError(
                f"{self.OP_TYPE}: mode must be a BackwardMode, got {mode!r}"
            )
        if self._cached_inputs is None:
            raise BackwardBeforeForwardError(self.OP_TYPE)

        if inputs:
            self._check_matches_cache(inputs)
        else:
            inputs = self._cached_inputs

        if tuple(output_gradient.shape) != self._cached_output_shape:
            raise ShapeMismatchError(
                f"{self.OP_TYPE}: output gradient shape {tuple(output_gradient.shape)} "
                f"does not match forward output shape {self._cached_output_shape}"
            )
        return self._backward(mode, output_gradient, *inputs, token=token)

    def _check_matches_cache(self, inputs: Sequence[ITensor]) -> None:
        cached = self._cached_inputs or ()
        if len(inputs) != len(cached):
            raise StaleCacheError(
                f"{self.OP_TYPE}: backward received {len(inputs)} input(s) but the "
                f"last forward received {len(cached)}"
            )
        for i, (given, seen) in enumerate(zip(inputs, cached)):
            if tuple(given.shape) != tuple(seen.shape):
                raise StaleCacheError(
                    f"{self.OP_TYPE}: backward input {i} has shape "
                    f"{tuple(given.shape)} but the last forward saw {tuple(seen.shape)}"
                )
            if not _same_values(given, seen):
                raise StaleCacheError(
                    f"{self.OP_TYPE}: backward input {i} differs from the input of "
                    "the last forward; run forward again before backward"
                )

    def __call__(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        return self.forward(*inputs, token=token)

    def _forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """
        Compute the output. Subclasses must implement this.
        """
        raise NotImplementedError

    def _backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        """
        Compute input gradients and write parameter gradients. Subclasses must
        implement this.
        """
        raise NotImplementedError


__all__ = [
    Node.__name__,
]
