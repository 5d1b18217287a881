"""
Infrastructure layer: NumPy-backed implementations of the domain contracts.

- `numeric`: one arithmetic per element type
- `tensor`, `compute`: the reference tensor and engine
- `quantization`: 4-bit packing and (de)quantization
- `core`, `activations`, `recurrent`: the nodes
- `module`: node registry and (de)serialization
"""

from ._parameter import Parameter
from ._node import Node
from .activations import BaseActivation, LeakyReLU, ReLU, Sigmoid, SwiGLU, Tanh
from .compute import NumpyEngine
from .core import FFN, Bias, Dense, Linear, MatMulNBits
from .module import NodeRegistry, default_registry, node_from_config, node_to_config
from .recurrent import SimpleRNN
from .tensor import Tensor
from .utils import WeightInitializer

__all__ = [
    Parameter.__name__,
    Node.__name__,
    Tensor.__name__,
    NumpyEngine.__name__,
    WeightInitializer.__name__,
    Linear.__name__,
    Bias.__name__,
    Dense.__name__,
    FFN.__name__,
    MatMulNBits.__name__,
    BaseActivation.__name__,
    Tanh.__name__,
    Sigmoid.__name__,
    ReLU.__name__,
    LeakyReLU.__name__,
    SwiGLU.__name__,
    SimpleRNN.__name__,
    NodeRegistry.__name__,
    default_registry.__name__,
    node_to_config.__name__,
    node_from_config.__name__,
]
