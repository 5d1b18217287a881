"""
He (Kaiming) weight initializer.

- ``he``:
    Normal initialization with ``std = sqrt(2 / fan_in)``, intended for
    weights feeding ReLU-family activations.
"""

import math

import numpy as np

from ._base import WeightInitializer, _fill
from ...tensor._tensor import Tensor
from ....domain._arithmetic import IArithmetic
from ....domain.utils._weight_initialization import _calculate_fan_in


@WeightInitializer.register_initializer("he")
def he(tensor: Tensor, *, arithmetic: IArithmetic, rng: np.random.Generator) -> Tensor:
    """
    Apply He normal initialization.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    fan_in = _calculate_fan_in(tuple(tensor.shape))
    fan_in = max(1, int(fan_in))

    std = math.sqrt(2.0 / float(fan_in))
    w = rng.standard_normal(size=tensor.shape) * std
    return _fill(tensor, w, arithmetic)
