"""
Abstract interfaces and utilities for weight initialization.

Declares the initializer dispatcher contract used by `Linear` and `Bias`
and the fan-in / fan-out helpers the Xavier and He strategies share.

Weight matrices in this package are stored input-major, i.e. a linear
transform from `in_features` to `out_features` owns a weight of shape
``(in_features, out_features)`` and computes ``y = x @ W``. The fan helpers
follow that convention.
"""

from typing import Callable, Dict, TypeVar
from abc import ABC, abstractmethod

from .._tensor import ITensor


T = TypeVar("T", bound=Callable[..., ITensor])


class _WeightInitializer(ABC):
    """
    Contract for a by-name weight initializer.

    A dispatcher is constructed from a registered strategy name and, when
    called on a tensor, overwrites its storage with freshly sampled values
    expressed in the tensor's element type. Registration happens through a
    class-level decorator; storage of the registry is left to subclasses.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    @classmethod
    @abstractmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Return a decorator registering an initializer under `name`.
        """
        ...

    @classmethod
    @abstractmethod
    def available(cls) -> tuple[str, ...]:
        """Return the names of all registered initializers (sorted)."""
        ...

    @abstractmethod
    def __call__(self, tensor: ITensor, *args, **kwargs) -> ITensor:
        """
        Apply the initializer to a tensor.

        Parameters
        ----------
        tensor:
            The tensor to be initialized.
        *args, **kwargs:
            Optional arguments forwarded to the initializer.

        Returns
        -------
        ITensor
            The initialized tensor.
        """
        ...


def _calculate_fan_in(shape: tuple[int, ...]) -> int:
    """
    Compute the fan-in value for a weight shape.

    Parameters
    ----------
    shape:
        Shape of the weight tensor, ``(in_features, out_features)`` for
        matrices.

    Returns
    -------
    int
        The computed fan-in value.
    """
    if len(shape) == 0:
        return 1  # scalar
    # vectors are bias-like; matrices are (in, out)
    return int(shape[0])


def _calculate_fan_in_and_fan_out(shape: tuple[int, ...]) -> tuple[int, int]:
    """
    Compute both fan-in and fan-out values for a weight shape.

    Parameters
    ----------
    shape:
        Shape of the weight tensor.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    if len(shape) == 0:
        return 1, 1
    if len(shape) == 1:
        return int(shape[0]), int(shape[0])
    fan_in = int(shape[0])
    fan_out = 1
    for d in shape[1:]:
        fan_out *= int(d)
    return fan_in, fan_out
