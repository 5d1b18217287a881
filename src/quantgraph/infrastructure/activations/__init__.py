"""
Activation nodes.

Element-wise activations (`Tanh`, `Sigmoid`, `ReLU`, `LeakyReLU`) share
`BaseActivation`; `SwiGLU` gates one half of the last axis with the sigmoid
of the other.
"""

from ._base_activation import BaseActivation
from ._activations import ACTIVATIONS, LeakyReLU, ReLU, Sigmoid, Tanh
from ._swiglu import SwiGLU

__all__ = [
    BaseActivation.__name__,
    Tanh.__name__,
    Sigmoid.__name__,
    ReLU.__name__,
    LeakyReLU.__name__,
    SwiGLU.__name__,
    "ACTIVATIONS",
]
