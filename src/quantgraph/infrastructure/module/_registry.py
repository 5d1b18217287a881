"""
Operation-tag registry used to rebuild nodes from serialized attributes.

A `NodeRegistry` maps an operation tag (``node.op_type``) to a builder

    builder(engine, arithmetic, name, parameters, attributes) -> Node

where `parameters` maps attribute paths (``"weights"``,
``"linear.weights"``, ...) to `Parameter` objects. Registries are explicit
objects: populate one, `freeze` it, then hand it to whatever loads graphs.
`default_registry()` returns a frozen registry covering every node type in
this package.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from .._node import Node
from .._parameter import Parameter
from ..activations import LeakyReLU, ReLU, Sigmoid, SwiGLU, Tanh
from ..core import FFN, Bias, Dense, Linear, MatMulNBits
from ..recurrent import SimpleRNN
from ...domain._arithmetic import IArithmetic
from ...domain._engine import IEngine
from ...domain._errors import (
    RegistryFrozenError,
    UnknownNodeTypeError,
    ValidationError,
)


class NodeBuilder(Protocol):
    def __call__(
        self,
        engine: IEngine,
        arithmetic: IArithmetic,
        name: str,
        params: Mapping[str, Parameter],
        attrs: Mapping[str, Any],
    ) -> Node: ...


class NodeRegistry:
    """
    Mutable-until-frozen mapping from operation tag to node builder.

    Examples
    --------
    >>> registry = NodeRegistry()
    >>> registry.register("Linear", Linear.build)
    >>> @registry.register("Custom")
    ... def build_custom(engine, arithmetic, name, params, attrs): ...
    >>> registry.freeze()
    """

    def __init__(self) -> None:
        self._builders: Dict[str, NodeBuilder] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self, op_type: str, builder: Optional[NodeBuilder] = None
    ) -> Any:
        """
        Register `builder` under `op_type`.

        When `builder` is omitted, return a decorator.

        Raises
        ------
        RegistryFrozenError
            If the registry has been frozen.
        ValidationError
            If `op_type` is empty or already registered.
        """
        if builder is None:

            def deco(fn: NodeBuilder) -> NodeBuilder:
                self.register(op_type, fn)
                return fn

            return deco

        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"cannot register {op_type!r}: registry is frozen"
                )
            if not op_type:
                raise ValidationError("operation tag cannot be empty")
            if op_type in self._builders:
                raise ValidationError(f"operation tag {op_type!r} is already registered")
            self._builders[op_type] = builder
        return builder

    def freeze(self) -> "NodeRegistry":
        """Reject further registrations; returns self."""
        with self._lock:
            self._frozen = True
        return self

    def op_types(self) -> tuple[str, ...]:
        """Return the registered operation tags (sorted)."""
        return tuple(sorted(self._builders))

    def __contains__(self, op_type: object) -> bool:
        return op_type in self._builders

    def get(self, op_type: str) -> NodeBuilder:
        """
        Raises
        ------
        UnknownNodeTypeError
            If nothing is registered under `op_type`.
        """
        try:
            return self._builders[op_type]
        except KeyError:
            raise UnknownNodeTypeError(op_type, self.op_types()) from None

    def build(
        self,
        op_type: str,
        engine: IEngine,
        arithmetic: IArithmetic,
        name: str,
        params: Optional[Mapping[str, Parameter]] = None,
        attrs: Optional[Mapping[str, Any]] = None,
    ) -> Node:
        """Build a node with the builder registered under `op_type`."""
        return self.get(op_type)(engine, arithmetic, name, params or {}, attrs or {})

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"NodeRegistry({len(self._builders)} op types, {state})"


_NODE_TYPES = (
    Linear,
    Bias,
    Dense,
    FFN,
    MatMulNBits,
    SimpleRNN,
    Tanh,
    Sigmoid,
    ReLU,
    LeakyReLU,
    SwiGLU,
)


def default_registry() -> NodeRegistry:
    """Return a frozen registry covering every built-in node type."""
    registry = NodeRegistry()
    for cls in _NODE_TYPES:
        registry.register(cls.OP_TYPE, cls.build)
    return registry.freeze()


__all__ = [
    NodeRegistry.__name__,
    default_registry.__name__,
]
