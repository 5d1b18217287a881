"""
Uniform and constant weight initializers.

Provided initializers
---------------------
- ``uniform``:
    ``U(-scale, +scale)``; `scale` defaults to 0.1.
- ``zeros``:
    All elements zero (the default for biases).
- ``ones``:
    All elements one.
"""

import numpy as np

from ._base import WeightInitializer, _fill
from ...tensor._tensor import Tensor
from ....domain._arithmetic import IArithmetic

DEFAULT_UNIFORM_SCALE = 0.1


@WeightInitializer.register_initializer("uniform")
def uniform(
    tensor: Tensor,
    *,
    arithmetic: IArithmetic,
    rng: np.random.Generator,
    scale: float = DEFAULT_UNIFORM_SCALE,
) -> Tensor:
    """
    Initialize a tensor from ``U(-scale, +scale)``.

    Raises
    ------
    ValueError
        If `scale` is negative.
    """
    if scale < 0:
        raise ValueError(f"uniform initializer scale must be >= 0, got {scale}")
    w = rng.uniform(-1.0, 1.0, size=tensor.shape) * float(scale)
    return _fill(tensor, w, arithmetic)


@WeightInitializer.register_initializer("zeros")
def zeros(
    tensor: Tensor, *, arithmetic: IArithmetic, rng: np.random.Generator
) -> Tensor:
    """Initialize a tensor with all elements set to zero."""
    return _fill(tensor, np.zeros(tensor.shape), arithmetic)


@WeightInitializer.register_initializer("ones")
def ones(
    tensor: Tensor, *, arithmetic: IArithmetic, rng: np.random.Generator
) -> Tensor:
    """Initialize a tensor with all elements set to one."""
    return _fill(tensor, np.ones(tensor.shape), arithmetic)
