"""
Weight initializer registry and dispatch utilities.

This module defines the concrete `WeightInitializer` used by the nodes to
apply registered weight initialization strategies (Xavier, He, uniform, ...)
to `Tensor` instances.

Design
------
- Initializers are registered by string name via a decorator-based registry.
- Each initializer is a callable ``fn(tensor, *, arithmetic, rng, **options)``
  that overwrites a tensor in-place and returns it.
- Sampled values are drawn in float64 and converted into the tensor's element
  type with the arithmetic's `from_float32`, so byte-integer and float8
  weights round exactly like any other value of that type.
- The dispatcher resolves an initializer by name at construction time and
  invokes it via `__call__`.

Usage example
-------------
Registering an initializer:

    @WeightInitializer.register_initializer("xavier")
    def xavier(tensor, *, arithmetic, rng): ...

Applying an initializer:

    init = WeightInitializer("xavier")
    init(weight_tensor, arithmetic=ops)
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional, TypeVar

import numpy as np

from ....domain._arithmetic import IArithmetic
from ....domain.utils._weight_initialization import _WeightInitializer
from ...numeric import arithmetic_for
from ...tensor._tensor import Tensor

T = TypeVar("T", bound=Callable[..., Tensor])


def _fill(tensor: Tensor, values: np.ndarray, arithmetic: IArithmetic) -> Tensor:
    """Convert float samples into the element type and copy them into `tensor`."""
    converted = np.asarray(arithmetic.from_float32(values.astype(np.float32)))
    tensor.copy_from_numpy(converted.reshape(tensor.shape))
    return tensor


class WeightInitializer(_WeightInitializer):
    """
    Registry-backed weight initializer dispatcher.

    Parameters
    ----------
    initializer_name : str
        Registry key of the strategy.
    **options
        Strategy options forwarded on every call (e.g. ``scale`` for
        ``"uniform"``).

    Raises
    ------
    ValueError
        If `initializer_name` is not registered.
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., Tensor]]] = {}

    def __init__(self, initializer_name: str, **options: Any) -> None:
        try:
            self._initializer: Callable[..., Tensor] = self.INITIALIZERS[
                initializer_name
            ]
        except KeyError as e:
            available = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            ) from e
        self.name = initializer_name
        self.options = dict(options)

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Decorator to register a weight initializer under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the initializer later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.INITIALIZERS:
                raise ValueError(f"Initializer already registered: {name!r}")
            cls.INITIALIZERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    def __call__(
        self,
        tensor: Tensor,
        *,
        arithmetic: Optional[IArithmetic] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> Tensor:
        ops = arithmetic if arithmetic is not None else arithmetic_for(tensor.dtype)
        gen = rng if rng is not None else np.random.default_rng()
        return self._initializer(tensor, arithmetic=ops, rng=gen, **self.options)

    def __repr__(self) -> str:
        return f"WeightInitializer({self.name!r})"
