"""
Error taxonomy for QuantGraph.

Every failure the library can report is a subclass of `QuantGraphError`.
The concrete classes additionally inherit from the closest built-in exception
(`ValueError`, `RuntimeError`, `KeyError`) so callers that already catch the
built-in types keep working.

Categories
----------
- Construction-time validation: `ValidationError` and its subclasses
  (`QuantizationConfigError`, `UnsupportedBitWidthError`).
- Call-time shape problems: `ShapeMismatchError`, `InvalidInputCountError`.
- Packing / quantization usage errors: `PackingError`, `QuantizationError`.
- Forward-cache consistency: `BackwardBeforeForwardError`, `StaleCacheError`.
- Cooperative cancellation: `OperationCancelledError`.
- Node registry: `UnknownNodeTypeError`, `RegistryFrozenError`.

None of these are fatal; they always propagate to the immediate caller.
"""

from __future__ import annotations

from typing import Sequence


class QuantGraphError(Exception):
    """Base class for all QuantGraph errors."""


class ValidationError(QuantGraphError, ValueError):
    """
    Raised when a node, parameter or configuration is constructed with
    invalid arguments (empty name, non-positive size, ...).
    """


class QuantizationConfigError(ValidationError):
    """
    Raised when a quantization configuration violates its invariants.

    Attributes
    ----------
    scale : float
        The scale that was requested.
    zero_point : int
        The zero point that was requested.
    """

    def __init__(self, message: str, scale: float, zero_point: int) -> None:
        super().__init__(message)
        self.scale = scale
        self.zero_point = zero_point


class UnsupportedBitWidthError(ValidationError):
    """
    Raised when an N-bit quantized node is built with a bit width other than
    the supported ones.

    Attributes
    ----------
    nbits : int
        The requested bit width.
    supported : tuple[int, ...]
        Bit widths the node can handle.
    """

    def __init__(self, nbits: int, supported: Sequence[int] = (4,)) -> None:
        self.nbits = nbits
        self.supported = tuple(supported)
        allowed = ", ".join(str(b) for b in self.supported)
        super().__init__(
            f"only {allowed}-bit quantization is currently supported, got {nbits} bits"
        )


class ShapeMismatchError(QuantGraphError, ValueError):
    """Raised when tensor shapes are incompatible for the requested operation."""


class InvalidInputCountError(QuantGraphError, ValueError):
    """
    Raised when a node receives a different number of inputs than it declares.

    Attributes
    ----------
    op : str
        Operation tag of the node that rejected the call.
    expected : tuple[int, ...]
        Accepted input counts.
    got : int
        Number of inputs actually passed.
    """

    def __init__(self, op: str, expected: Sequence[int], got: int) -> None:
        self.op = op
        self.expected = tuple(expected)
        self.got = got
        wanted = " or ".join(str(e) for e in self.expected)
        super().__init__(
            f"{op}: invalid number of inputs, expected {wanted}, got {got}"
        )


class PackingError(QuantGraphError, ValueError):
    """Raised on invalid sub-byte packing input (odd length, code out of range)."""


class QuantizationError(QuantGraphError, ValueError):
    """Raised when quantization parameters cannot be derived or a round trip fails."""


class BackwardBeforeForwardError(QuantGraphError, RuntimeError):
    """
    Raised when `backward` is called on a node that has no cached forward pass.
    """

    def __init__(self, op: str) -> None:
        self.op = op
        super().__init__(f"{op}: backward called before forward")


class StaleCacheError(QuantGraphError, RuntimeError):
    """
    Raised when the inputs handed to `backward` do not match the inputs the
    node cached during its last `forward`.
    """


class OperationCancelledError(QuantGraphError, RuntimeError):
    """Raised at an engine call boundary once the caller cancelled the token."""


class UnknownNodeTypeError(QuantGraphError, KeyError):
    """Raised when a registry is asked to build an operation tag it does not know."""

    def __init__(self, op_type: str, available: Sequence[str]) -> None:
        self.op_type = op_type
        self.available = tuple(available)
        listing = ", ".join(self.available) or "<none>"
        super().__init__(f"Unknown node type '{op_type}'. Available: {listing}")

    def __str__(self) -> str:
        # KeyError repr-quotes its argument; keep the message readable.
        return str(self.args[0])


class RegistryFrozenError(QuantGraphError, RuntimeError):
    """Raised when registering into a registry that has already been frozen."""
