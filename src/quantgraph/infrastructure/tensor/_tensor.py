"""
Concrete Tensor implementation (NumPy backend).

This module provides a concrete `Tensor` implementation that satisfies the
domain-level `ITensor` protocol. Storage is a NumPy ndarray of a fixed dtype
and shape; nodes never touch it directly but go through a compute engine
(`quantgraph.infrastructure.compute.NumpyEngine`).

Design notes
------------
- Tensors are plain value holders: no autograd context is attached. Gradient
  routing is owned by the nodes.
- Identity matters: nodes that cache derived tensors (e.g. dequantized
  weights) hand out the same `Tensor` instance until the cache is
  invalidated, so callers may compare with ``is``.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from ...domain._errors import ShapeMismatchError
from ...domain._tensor import ITensor


def _normalize_shape(shape: Sequence[int]) -> tuple[int, ...]:
    out = tuple(int(d) for d in shape)
    if any(d < 0 for d in out):
        raise ShapeMismatchError(f"Tensor shape must be non-negative, got {out}")
    return out


class Tensor(ITensor):
    """
    NumPy-backed tensor.

    Parameters
    ----------
    shape : Sequence[int]
        Tensor shape.
    data : Optional[array-like]
        Flat (row-major) element data, or an array of matching size. When
        omitted the tensor is zero-filled.
    dtype : numpy.dtype, optional
        Storage dtype. Defaults to float32.

    Raises
    ------
    ShapeMismatchError
        If `data` does not hold exactly ``prod(shape)`` elements.
    """

    def __init__(
        self,
        shape: Sequence[int],
        data: Optional[Any] = None,
        dtype: Any = np.float32,
    ) -> None:
        self._shape = _normalize_shape(shape)
        self._dtype = np.dtype(dtype)
        if data is None:
            self._data = np.zeros(self._shape, dtype=self._dtype)
            return

        arr = np.asarray(data)
        expected = int(np.prod(self._shape, dtype=np.int64))
        if arr.size != expected:
            raise ShapeMismatchError(
                f"Tensor data length {arr.size} does not match shape "
                f"{self._shape} (expected {expected} elements)"
            )
        self._data = arr.astype(self._dtype, copy=True).reshape(self._shape)

    # ---- alternate constructors ----
    @classmethod
    def from_numpy(cls, arr: Any, dtype: Optional[Any] = None) -> "Tensor":
        """
        Construct a tensor holding a copy of `arr`.

        Parameters
        ----------
        arr : array-like
            Source data; its shape becomes the tensor shape.
        dtype : Optional[numpy.dtype]
            Storage dtype. Defaults to the dtype of `arr`.
        """
        a = np.asarray(arr)
        return cls(a.shape, a, dtype=a.dtype if dtype is None else dtype)

    @classmethod
    def zeros(cls, shape: Sequence[int], dtype: Any = np.float32) -> "Tensor":
        """Construct a zero-filled tensor."""
        return cls(shape, None, dtype=dtype)

    # ---- properties ----
    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def ndim(self) -> int:
        return len(self._shape)

    # ---- data access ----
    def data(self) -> np.ndarray:
        """
        Return a flat row-major copy of the elements.
        """
        return self._data.reshape(-1).copy()

    def to_numpy(self) -> np.ndarray:
        """
        Return a copy of the tensor contents shaped like `shape`.
        """
        return self._data.copy()

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Overwrite the tensor contents from an array-like value.

        The input is converted to the tensor dtype and must match `shape`
        exactly.

        Raises
        ------
        ShapeMismatchError
            If the shape of `arr` does not match `self.shape`.
        """
        a = np.asarray(arr)
        if a.shape != self._shape:
            raise ShapeMismatchError(
                f"copy_from_numpy shape mismatch: expected {self._shape}, got {a.shape}"
            )
        self._data = a.astype(self._dtype, copy=True)

    def copy(self) -> "Tensor":
        """Return a deep copy."""
        return Tensor(self._shape, self._data, dtype=self._dtype)

    def __repr__(self) -> str:
        return f"Tensor(shape={self._shape}, dtype={self._dtype})"


__all__ = [
    Tensor.__name__,
]
