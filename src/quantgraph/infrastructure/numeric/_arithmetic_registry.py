"""
Element-type lookup.

Maps canonical element type names to their arithmetic implementation. The
set is closed: an unknown name is rejected here, when a graph is being set
up, never in the middle of a computation.
"""

from __future__ import annotations

from typing import Callable, Dict, Union

import numpy as np

from ._float8_ops import Float8Ops
from ._float_ops import Float16Ops, Float32Ops, Float64Ops
from ._integer_ops import Int8Ops, Uint8Ops
from ...domain._arithmetic import IArithmetic

_ARITHMETICS: Dict[str, Callable[[], IArithmetic]] = {
    Float32Ops.name: Float32Ops,
    Float64Ops.name: Float64Ops,
    Float16Ops.name: Float16Ops,
    Float8Ops.name: Float8Ops,
    Int8Ops.name: Int8Ops,
    Uint8Ops.name: Uint8Ops,
}


def available_arithmetics() -> tuple[str, ...]:
    """Return the supported element type names (sorted)."""
    return tuple(sorted(_ARITHMETICS))


def arithmetic_for(name: Union[str, np.dtype, IArithmetic]) -> IArithmetic:
    """
    Resolve an element type into its arithmetic implementation.

    Parameters
    ----------
    name : str | numpy.dtype | IArithmetic
        Canonical name (``"float32"``, ``"float8"``, ...), a storage dtype, or
        an arithmetic instance (returned unchanged).

    Returns
    -------
    IArithmetic
        A fresh arithmetic instance.

    Raises
    ------
    ValueError
        If the element type is not supported.
    """
    if isinstance(name, IArithmetic):
        return name
    if not isinstance(name, str):
        dt = np.dtype(name)
        for factory in _ARITHMETICS.values():
            if factory.dtype == dt:  # type: ignore[attr-defined]
                return factory()
        key = str(dt)
    else:
        key = name
    try:
        return _ARITHMETICS[key]()
    except KeyError as e:
        available = ", ".join(available_arithmetics())
        raise ValueError(
            f"Unsupported element type: {key!r}. Available: {available}"
        ) from e


__all__ = [
    arithmetic_for.__name__,
    available_arithmetics.__name__,
]
