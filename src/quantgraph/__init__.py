"""
QuantGraph: element-type generic autodiff layers with 4-bit quantized
matrix multiplication.

Typical use::

    from quantgraph import BackwardMode, Dense, NumpyEngine

    engine = NumpyEngine("float16")
    layer = Dense("fc", engine, 8, 4, activation="ReLU")
    y = layer(engine.from_numpy(x))
    (dx,) = layer.backward(BackwardMode.FULL_BACKPROP, engine.from_numpy(dy))
"""

from .domain import (
    BackwardBeforeForwardError,
    BackwardMode,
    CancellationToken,
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
from .infrastructure import (
    FFN,
    BaseActivation,
    Bias,
    Dense,
    LeakyReLU,
    Linear,
    MatMulNBits,
    Node,
    NodeRegistry,
    NumpyEngine,
    Parameter,
    ReLU,
    Sigmoid,
    SimpleRNN,
    SwiGLU,
    Tanh,
    Tensor,
    WeightInitializer,
    default_registry,
    node_from_config,
    node_to_config,
)
from .infrastructure.numeric import arithmetic_for, available_arithmetics
from .infrastructure.quantization import (
    QuantizationConfig,
    compute_quantization_params,
    pack_4bit,
    unpack_4bit,
)

__version__ = "0.1.0"

__all__ = [
    "BackwardMode",
    "CancellationToken",
    "QuantGraphError",
    "ValidationError",
    "QuantizationConfigError",
    "UnsupportedBitWidthError",
    "ShapeMismatchError",
    "InvalidInputCountError",
    "PackingError",
    "QuantizationError",
    "BackwardBeforeForwardError",
    "StaleCacheError",
    "OperationCancelledError",
    "UnknownNodeTypeError",
    "RegistryFrozenError",
    "Tensor",
    "NumpyEngine",
    "Parameter",
    "Node",
    "WeightInitializer",
    "Linear",
    "Bias",
    "Dense",
    "FFN",
    "MatMulNBits",
    "BaseActivation",
    "Tanh",
    "Sigmoid",
    "ReLU",
    "LeakyReLU",
    "SwiGLU",
    "SimpleRNN",
    "NodeRegistry",
    "default_registry",
    "node_to_config",
    "node_from_config",
    "arithmetic_for",
    "available_arithmetics",
    "QuantizationConfig",
    "compute_quantization_params",
    "pack_4bit",
    "unpack_4bit",
]
