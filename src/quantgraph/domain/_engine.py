"""
Compute engine interface definitions.

The engine is the bulk-tensor collaborator that every node delegates numeric
work to. It is parameterized by one `IArithmetic` so every result carries the
element type's rounding behavior. This module only describes the consumed
surface; `quantgraph.infrastructure.compute.NumpyEngine` is the reference
implementation.

Every method takes a keyword-only ``token`` (an optional
`CancellationToken`). Engines check the token at the call boundary; that is
the only place cancellation is observed.

Engines fail only on shape or argument mismatch (`ShapeMismatchError`), never
by silently miscomputing.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from ._arithmetic import IArithmetic
from ._cancellation import CancellationToken
from ._tensor import ITensor


@runtime_checkable
class IEngine(Protocol):
    """
    Domain-level compute engine contract.

    Attributes
    ----------
    arithmetic : IArithmetic
        The element-type operation set this engine computes with.
    """

    arithmetic: IArithmetic

    def from_data(
        self,
        shape: Sequence[int],
        data: Optional[Any] = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Construct a tensor from a shape and flat data (zeros if omitted)."""
        ...

    def from_numpy(
        self, arr: Any, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Construct a tensor from an array, converting into the element type."""
        ...

    def zeros(
        self, shape: Sequence[int], *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Return a zero tensor of `shape`."""
        ...

    def zeros_like(
        self, t: ITensor, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Return a zero tensor with the shape of `t`."""
        ...

    def add(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Element-wise addition (broadcasting)."""
        ...

    def sub(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Element-wise subtraction (broadcasting)."""
        ...

    def mul(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Element-wise multiplication (broadcasting)."""
        ...

    def matmul(
        self, a: ITensor, b: ITensor, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Matrix multiply over the last two axes."""
        ...

    def transpose(
        self,
        t: ITensor,
        axes: Optional[Sequence[int]] = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Permute axes (reverse them when `axes` is None)."""
        ...

    def reshape(
        self,
        t: ITensor,
        shape: Sequence[int],
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Reshape without changing element count."""
        ...

    def concat(
        self,
        tensors: Sequence[ITensor],
        axis: int,
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Concatenate along `axis`."""
        ...

    def split(
        self,
        t: ITensor,
        num_splits: int,
        axis: int,
        *,
        token: Optional[CancellationToken] = None,
    ) -> List[ITensor]:
        """Split along `axis` into `num_splits` equal parts."""
        ...

    def sum(
        self,
        t: ITensor,
        axis: Optional[int] = None,
        keepdims: bool = False,
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Sum-reduce along `axis` (all axes when None)."""
        ...

    def unary_op(
        self,
        t: ITensor,
        fn: Callable[[Any], Any],
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Apply a vectorized element function."""
        ...

    def tanh(
        self, t: ITensor, *, token: Optional[CancellationToken] = None
    ) -> ITensor:
        """Element-wise hyperbolic tangent."""
        ...

    def tanh_prime(
        self,
        t: ITensor,
        upstream: ITensor,
        *,
        token: Optional[CancellationToken] = None,
    ) -> ITensor:
        """Return ``upstream * tanh'(t)`` for a pre-activation `t`."""
        ...
