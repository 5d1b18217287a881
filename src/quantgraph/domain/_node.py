"""
Node (layer) interface definitions.

A node is a unit in the computation graph exposing a forward (value) and a
backward (gradient) computation. This module defines the structural contract
using `typing.Protocol` so that any object implementing the methods can take
part in a graph, independent of inheritance.

Contract
--------
- ``forward(*inputs)`` validates arity, computes the output and caches what
  backward will need.
- ``backward(mode, output_gradient, *inputs)`` returns exactly one gradient per
  input accepted by the matching forward call, each shaped like its input,
  and writes the gradients of the node's own parameters.
- ``op_type`` and ``attributes()`` describe the node for serialization.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ._backward_mode import BackwardMode
from ._cancellation import CancellationToken
from ._parameter import IParameter
from ._tensor import ITensor


@runtime_checkable
class INode(Protocol):
    """
    Domain-level node interface.

    Notes
    -----
    Nodes cache per-call state and are therefore not safe to share between
    threads without external serialization.
    """

    @property
    def op_type(self) -> str:
        """Operation tag, e.g. ``"Dense"``."""
        ...

    def attributes(self) -> Dict[str, Any]:
        """Non-tensor attributes, JSON serializable."""
        ...

    def forward(
        self, *inputs: ITensor, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """
        Compute the output of the node.

        Parameters
        ----------
        *inputs : ITensor
            Input tensors; the count must match the node's declared arity.
        token : Optional[CancellationToken]
            Cancellation token forwarded to the engine.

        Returns
        -------
        ITensor
            Output tensor.
        """
        ...

    def backward(
        self,
        mode: BackwardMode,
        output_gradient: ITensor,
        *inputs: ITensor,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        """
        Compute gradients with respect to the inputs of the last forward.

        Returns
        -------
        list[ITensor]
            One gradient per forward input, in the same order.
        """
        ...

    def parameters(self) -> Sequence[IParameter]:
        """Trainable parameters owned by this node (recursively)."""
        ...

    def output_shape(self) -> Sequence[int]:
        """Shape of the most recent output (or the static shape if known)."""
        ...
