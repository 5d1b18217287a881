"""
NumPy-backed compute engine.

`NumpyEngine` implements the bulk tensor operations consumed by the nodes
(`quantgraph.domain._engine.IEngine`). It is parameterized by one arithmetic
and routes every element-wise computation through it, so results carry the
element type's rounding, saturation or wrap-around.

Matrix multiplication accumulates in a wider type (float32 for sub-32-bit
floats, float64 for float64, int64 for byte integers) and converts the
result back with the arithmetic's `cast`.

Every public method checks the cancellation token on entry; this is the only
place cancellation is observed.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from ...domain._arithmetic import IArithmetic
from ...domain._cancellation import CancellationToken, check_token
from ...domain._errors import ShapeMismatchError
from ...domain._tensor import ITensor
from ..numeric import arithmetic_for
from ..tensor._tensor import Tensor


def _array(t: ITensor) -> np.ndarray:
    """Return the storage array of `t` without copying when possible."""
    if isinstance(t, Tensor):
        return t._data
    return np.asarray(t.to_numpy())


def _accumulator_dtype(dtype: np.dtype) -> np.dtype:
    if dtype.kind in "iu":
        return np.dtype(np.int64)
    if dtype == np.float64:
        return np.dtype(np.float64)
    return np.dtype(np.float32)


class NumpyEngine:
    """
    Reference compute engine for a single element type.

    Parameters
    ----------
    arithmetic : IArithmetic | str
        Element-type arithmetic, or its name (resolved via `arithmetic_for`).

    Notes
    -----
    The engine is stateless apart from its arithmetic and may be shared
    between nodes and threads.
    """

    def __init__(self, arithmetic: Any = "float32") -> None:
        self.arithmetic: IArithmetic = arithmetic_for(arithmetic)

    @property
    def dtype(self) -> np.dtype:
        return self.arithmetic.dtype

    def __repr__(self) -> str:
        return f"NumpyEngine(arithmetic={self.arithmetic.name!r})"

    def _wrap(self, values: Any) -> Tensor:
        arr = np.asarray(self.arithmetic.cast(values))
        return Tensor(arr.shape, arr, dtype=self.arithmetic.dtype)

    @staticmethod
    def _broadcast_shape(op: str, a: np.ndarray, b: np.ndarray) -> tuple[int, ...]:
        try:
            return np.broadcast_shapes(a.shape, b.shape)
        except ValueError as e:
            raise ShapeMismatchError(
                f"{op}: shapes {a.shape} and {b.shape} are not broadcastable"
            ) from e

    # ---- construction ----
    def from_data(
        self,
        shape: Sequence[int],
        data: Optional[Any] = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        """
        Construct a tensor in this engine's element type.

        Raises
        ------
        ShapeMismatchError
            If `data` does not hold exactly ``prod(shape)`` elements.
        """
        check_token(token)
        if data is None:
            return Tensor(shape, None, dtype=self.arithmetic.dtype)
        return Tensor(shape, self.arithmetic.cast(data), dtype=self.arithmetic.dtype)

    def from_numpy(
        self, arr: Any, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        """Construct a tensor from an array, converting into the element type."""
        check_token(token)
        return self._wrap(arr)

    def zeros(
        self, shape: Sequence[int], *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        check_token(token)
        return Tensor(shape, None, dtype=self.arithmetic.dtype)

    def zeros_like(
        self, t: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        check_token(token)
        return Tensor(t.shape, None, dtype=self.arithmetic.dtype)

    # ---- element-wise ----
    def add(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        check_token(token)
        x, y = _array(a), _array(b)
        self._broadcast_shape("add", x, y)
        return self._wrap(self.arithmetic.add(x, y))

    def sub(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        check_token(token)
        x, y = _array(a), _array(b)
        self._broadcast_shape("sub", x, y)
        return self._wrap(self.arithmetic.sub(x, y))

    def mul(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        check_token(token)
        x, y = _array(a), _array(b)
        self._broadcast_shape("mul", x, y)
        return self._wrap(self.arithmetic.mul(x, y))

    def div(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        """Element-wise division; zero denominators yield zero."""
        check_token(token)
        x, y = _array(a), _array(b)
        self._broadcast_shape("div", x, y)
        return self._wrap(self.arithmetic.div(x, y))

    def unary_op(
        self,
        t: ITensor,
        fn: Callable[[Any], Any],
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        """
        Apply `fn` to the whole storage array.

        `fn` is expected to be vectorized (every arithmetic method is).
        """
        check_token(token)
        x = _array(t)
        out = np.asarray(fn(x))
        if out.shape != x.shape:
            out = np.broadcast_to(out, x.shape)
        return self._wrap(out)

    def tanh(
        self, t: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        return self.unary_op(t, self.arithmetic.tanh, token=token)

    def sigmoid(
        self, t: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        return self.unary_op(t, self.arithmetic.sigmoid, token=token)

    def tanh_prime(
        self,
        t: ITensor,
        upstream: ITensor,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        """
        Return ``upstream * tanh'(t)``, i.e. the gradient through a tanh whose
        pre-activation was `t`.
        """
        check_token(token)
        x, up = _array(t), _array(upstream)
        if x.shape != up.shape:
            raise ShapeMismatchError(
                f"tanh_prime: pre-activation shape {x.shape} does not match "
                f"upstream gradient shape {up.shape}"
            )
        return self._wrap(self.arithmetic.mul(up, self.arithmetic.tanh_grad(x)))

    # ---- linear algebra ----
    def matmul(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> Tensor:
        """
        Matrix multiply over the last two axes, broadcasting leading axes.

        Raises
        ------
        ShapeMismatchError
            If either operand has fewer than 2 dimensions or the inner
            dimensions disagree.
        """
        check_token(token)
        x, y = _array(a), _array(b)
        if x.ndim < 2 or y.ndim < 2:
            raise ShapeMismatchError(
                f"matmul: operands must be at least 2-D, got {x.shape} and {y.shape}"
            )
        if x.shape[-1] != y.shape[-2]:
            raise ShapeMismatchError(
                f"matmul: inner dimensions differ, {x.shape} @ {y.shape}"
            )
        acc = _accumulator_dtype(self.arithmetic.dtype)
        try:
            out = np.matmul(x.astype(acc), y.astype(acc))
        except ValueError as e:
            raise ShapeMismatchError(
                f"matmul: cannot broadcast batch dimensions of {x.shape} and {y.shape}"
            ) from e
        return self._wrap(out)

    def transpose(
        self,
        t: ITensor,
        axes: Optional[Sequence[int]] = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        check_token(token)
        x = _array(t)
        if axes is not None and sorted(int(a) % max(x.ndim, 1) for a in axes) != list(
            range(x.ndim)
        ):
            raise ShapeMismatchError(
                f"transpose: axes {tuple(axes)} are not a permutation of a "
                f"{x.ndim}-D tensor"
            )
        return self._wrap(np.transpose(x, axes))

    # ---- shape ----
    def reshape(
        self,
        t: ITensor,
        shape: Sequence[int],
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        check_token(token)
        x = _array(t)
        try:
            return self._wrap(x.reshape(tuple(int(d) for d in shape)))
        except ValueError as e:
            raise ShapeMismatchError(
                f"reshape: cannot reshape {x.shape} into {tuple(shape)}"
            ) from e

    def concat(
        self,
        tensors: Sequence[ITensor],
        axis: int,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        check_token(token)
        if len(tensors) == 0:
            raise ShapeMismatchError("concat: at least one tensor is required")
        arrays = [_array(t) for t in tensors]
        try:
            return self._wrap(np.concatenate(arrays, axis=axis))
        except ValueError as e:
            shapes = ", ".join(str(a.shape) for a in arrays)
            raise ShapeMismatchError(
                f"concat: cannot concatenate shapes [{shapes}] along axis {axis}"
            ) from e

    def split(
        self,
        t: ITensor,
        num_splits: int,
        axis: int,
        *,
        token: Optional[CancellationToken] = None,
    ) -> List[Tensor]:
        """
        Split `t` along `axis` into `num_splits` equally sized parts.

        Raises
        ------
        ShapeMismatchError
            If the axis length is not divisible by `num_splits`.
        """
        check_token(token)
        x = _array(t)
        if num_splits <= 0:
            raise ShapeMismatchError(f"split: num_splits must be > 0, got {num_splits}")
        if not -x.ndim <= axis < x.ndim:
            raise ShapeMismatchError(
                f"split: axis {axis} out of range for a {x.ndim}-D tensor"
            )
        if x.shape[axis] % num_splits != 0:
            raise ShapeMismatchError(
                f"split: axis {axis} of length {x.shape[axis]} is not divisible "
                f"into {num_splits} equal parts"
            )
        return [self._wrap(part) for part in np.split(x, num_splits, axis=axis)]

    # ---- reductions ----
    def sum(
        self,
        t: ITensor,
        axis: Optional[int] = None,
        keepdims: bool = False,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        check_token(token)
        x = _array(t)
        if axis is not None and not -x.ndim <= axis < x.ndim:
            raise ShapeMismatchError(
                f"sum: axis {axis} out of range for a {x.ndim}-D tensor"
            )
        return self._wrap(self.arithmetic.sum(x, axis=axis, keepdims=keepdims))

    def sum_to_shape(
        self,
        t: ITensor,
        shape: Sequence[int],
        *,
        token: Optional[CancellationToken] = None,
    ) -> Tensor:
        """
        Reduce a broadcast result back to `shape` by summing the broadcast axes.
        """
        check_token(token)
        x = _array(t)
        target = tuple(int(d) for d in shape)
        lead = x.ndim - len(target)
        if lead < 0:
            raise ShapeMismatchError(f"sum_to_shape: cannot reduce {x.shape} to {target}")
        axes = list(range(lead))
        for i, d in enumerate(target):
            if d == 1 and x.shape[lead + i] != 1:
                axes.append(lead + i)
            elif d != x.shape[lead + i]:
                raise ShapeMismatchError(
                    f"sum_to_shape: cannot reduce {x.shape} to {target}"
                )
        out = self.arithmetic.sum(x, axis=tuple(axes), keepdims=True) if axes else x
        return self._wrap(np.reshape(out, target))


__all__ = [
    NumpyEngine.__name__,
]
