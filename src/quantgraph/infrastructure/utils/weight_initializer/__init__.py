"""
Weight initialization public API.

This module aggregates all supported weight initialization strategies
(Xavier, He, uniform, constants) and registers them into the global
`WeightInitializer` registry via import side effects.

Importing this module ensures that all built-in initializers are available
for lookup and dispatch through `WeightInitializer`.
"""

from ._xavier import *
from ._he import *
from ._constants import *
from ._base import WeightInitializer

__all__ = [
    WeightInitializer.__name__,
]
