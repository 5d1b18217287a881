from ._numpy_engine import NumpyEngine

__all__ = [
    NumpyEngine.__name__,
]
