"""
Tensor interface definitions.

QuantGraph does not own tensor storage; it consumes any tensor-like object
that satisfies this structural contract. The NumPy-backed
`quantgraph.infrastructure.tensor.Tensor` is the reference implementation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class ITensor(Protocol):
    """
    Minimal tensor contract consumed by nodes and the quantization engine.

    Notes
    -----
    - `data()` returns a flat copy in row-major order.
    - `to_numpy()` returns an array shaped like `shape` in the storage dtype.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the shape of the tensor.

        Returns
        -------
        tuple[int, ...]
            The tensor's shape.
        """
        ...

    @property
    def dtype(self) -> np.dtype:
        """
        Return the storage dtype of the tensor elements.
        """
        ...

    @property
    def size(self) -> int:
        """
        Return the total number of elements.
        """
        ...

    def data(self) -> np.ndarray:
        """
        Return the flat element data.
        """
        ...

    def to_numpy(self) -> np.ndarray:
        """
        Return the tensor contents as a NumPy array.
        """
        ...
