"""
Quantization and N-bit packing engine.

Pure functions and immutable records over raw byte buffers; nothing here
depends on the node graph.
"""

from ._config import (
    SYMMETRIC_ZERO_POINT,
    QuantizationConfig,
    compute_quantization_params,
)
from ._dequantize import dequantize_4bit_matrix, dequantize_4bit_weights
from ._packing import pack_4bit, pack_4bit_array, unpack_4bit, unpack_4bit_array

__all__ = [
    "SYMMETRIC_ZERO_POINT",
    QuantizationConfig.__name__,
    compute_quantization_params.__name__,
    dequantize_4bit_weights.__name__,
    dequantize_4bit_matrix.__name__,
    pack_4bit.__name__,
    unpack_4bit.__name__,
    pack_4bit_array.__name__,
    unpack_4bit_array.__name__,
]
