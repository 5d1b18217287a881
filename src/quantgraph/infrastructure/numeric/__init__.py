"""
Concrete arithmetics, one per supported element type.

Exports
-------
- Float32Ops, Float64Ops, Float16Ops, Float8Ops, Int8Ops, Uint8Ops
- arithmetic_for / available_arithmetics: name-based lookup
"""

from ._float_ops import Float16Ops, Float32Ops, Float64Ops
from ._float8_ops import FLOAT8_MAX, Float8Ops
from ._integer_ops import Int8Ops, Uint8Ops
from ._arithmetic_registry import arithmetic_for, available_arithmetics

__all__ = [
    Float32Ops.__name__,
    Float64Ops.__name__,
    Float16Ops.__name__,
    Float8Ops.__name__,
    Int8Ops.__name__,
    Uint8Ops.__name__,
    "FLOAT8_MAX",
    arithmetic_for.__name__,
    available_arithmetics.__name__,
]
