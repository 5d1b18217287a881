"""
Shared plumbing for the concrete arithmetic implementations.

Every arithmetic in `quantgraph.infrastructure.numeric` follows the same
two-step pattern:

1. *lift* the operands into a compute representation (the storage dtype
   itself for IEEE floats, float32 for float8, int64 for byte integers);
2. compute with NumPy and *finish* the result back into the storage dtype,
   which is where rounding, saturation or wrap-around happens.

Scalars in, NumPy scalars out; arrays in, arrays out.
"""

from __future__ import annotations

from typing import Any

import numpy as np


class _ArithmeticBase:
    """
    Base class implementing the dtype-independent parts of `IArithmetic`.

    Subclasses set `name`, `dtype` and `compute_dtype` and implement
    `cast`, which converts arbitrary numeric input into the storage dtype.
    """

    name: str = ""
    dtype: np.dtype = np.dtype(np.float32)
    compute_dtype: np.dtype = np.dtype(np.float32)

    def cast(self, values: Any) -> np.ndarray:
        raise NotImplementedError

    def _lift(self, x: Any) -> np.ndarray:
        return np.asarray(self.cast(x)).astype(self.compute_dtype, copy=False)

    def _out(self, result: Any) -> Any:
        out = np.asarray(self.cast(result))
        return out[()] if out.ndim == 0 else out

    # ---- identities ----
    def zero(self) -> Any:
        return self.dtype.type(0)

    def one(self) -> Any:
        return self.dtype.type(1)

    def is_zero(self, x: Any) -> Any:
        return self._lift(x) == 0

    def greater_than(self, a: Any, b: Any) -> Any:
        return self._lift(a) > self._lift(b)

    # ---- conversions ----
    def from_float32(self, f: Any) -> Any:
        return self._out(np.asarray(f, dtype=np.float32))

    def from_float64(self, f: Any) -> Any:
        return self._out(np.asarray(f, dtype=np.float64))

    def to_float32(self, x: Any) -> Any:
        out = np.asarray(self.cast(x)).astype(np.float32)
        return out[()] if out.ndim == 0 else out

    def to_float64(self, x: Any) -> Any:
        out = np.asarray(self.cast(x)).astype(np.float64)
        return out[()] if out.ndim == 0 else out

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _ArithmeticBase) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)
