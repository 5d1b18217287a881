"""
Core layer nodes: linear transforms, bias, dense blocks and the 4-bit
quantized matrix multiplication.
"""

from ._linear import Linear
from ._bias import Bias
from ._dense import Dense
from ._ffn import FFN
from ._matmul_nbits import MatMulNBits

__all__ = [
    Linear.__name__,
    Bias.__name__,
    Dense.__name__,
    FFN.__name__,
    MatMulNBits.__name__,
]
