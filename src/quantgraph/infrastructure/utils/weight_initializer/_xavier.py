"""
Xavier/Glorot weight initializers.

Implemented variants
--------------------
- ``xavier``:
    Xavier uniform initialization, ``U(-limit, +limit)`` with
    ``limit = sqrt(6 / (fan_in + fan_out))``. This is the default for
    linear transforms.
- ``xavier_normal``:
    Xavier normal initialization using ``std = sqrt(2 / (fan_in + fan_out))``.

Notes
-----
- Fan-in and fan-out are computed from the weight tensor shape via
  ``_calculate_fan_in_and_fan_out``; weights are stored ``(in, out)``.
- Initializers mutate the provided tensor in-place and return it.
"""

import math

import numpy as np

from ._base import WeightInitializer, _fill
from ...tensor._tensor import Tensor
from ....domain._arithmetic import IArithmetic
from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out


@WeightInitializer.register_initializer("xavier")
def xavier(
    tensor: Tensor, *, arithmetic: IArithmetic, rng: np.random.Generator
) -> Tensor:
    """
    Apply Xavier (Glorot) uniform initialization.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.
    arithmetic:
        Element-type arithmetic used to convert the samples.
    rng:
        Random generator.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tuple(tensor.shape))
    fan_in = max(1, int(fan_in))
    fan_out = max(1, int(fan_out))

    limit = math.sqrt(6.0 / float(fan_in + fan_out))
    w = rng.uniform(-limit, limit, size=tensor.shape)
    return _fill(tensor, w, arithmetic)


@WeightInitializer.register_initializer("xavier_normal")
def xavier_normal(
    tensor: Tensor, *, arithmetic: IArithmetic, rng: np.random.Generator
) -> Tensor:
    """
    Apply Xavier (Glorot) normal initialization with
    ``std = sqrt(2 / (fan_in + fan_out))``.
    """
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tuple(tensor.shape))
    fan_in = max(1, int(fan_in))
    fan_out = max(1, int(fan_out))

    std = math.sqrt(2.0 / float(fan_in + fan_out))
    w = rng.standard_normal(size=tensor.shape) * std
    return _fill(tensor, w, arithmetic)
