"""
Domain layer: structural contracts shared by every QuantGraph component.

Nothing in this package depends on NumPy-backed implementations; it only
describes the element-type arithmetic, the tensor and engine surfaces the
nodes consume, the node and parameter contracts, and the error taxonomy.
"""

from ._arithmetic import Axis, IArithmetic
from ._backward_mode import BackwardMode
from ._cancellation import CancellationToken, check_token
from ._engine import IEngine
from ._errors import (
    BackwardBeforeForwardError,
    InvalidInputCountError,
    OperationCancelledError,
    PackingError,
    QuantGraphError,
    QuantizationConfigError,
    QuantizationError,
    RegistryFrozenError,
    ShapeMismatchError,
    StaleCacheError,
    UnknownNodeTypeError,
    UnsupportedBitWidthError,
    ValidationError,
)
from ._node import INode
from ._parameter import IParameter
from ._tensor import ITensor

__all__ = [
    "Axis",
    IArithmetic.__name__,
    BackwardMode.__name__,
    CancellationToken.__name__,
    check_token.__name__,
    IEngine.__name__,
    INode.__name__,
    IParameter.__name__,
    ITensor.__name__,
    QuantGraphError.__name__,
    ValidationError.__name__,
    QuantizationConfigError.__name__,
    UnsupportedBitWidthError.__name__,
    ShapeMismatchError.__name__,
    InvalidInputCountError.__name__,
    PackingError.__name__,
    QuantizationError.__name__,
    BackwardBeforeForwardError.__name__,
    StaleCacheError.__name__,
    OperationCancelledError.__name__,
    UnknownNodeTypeError.__name__,
    RegistryFrozenError.__name__,
]
