from ._b64 import (
    b64_str_to_bytes,
    bytes_to_b64_str,
    ndarray_to_payload,
    payload_to_ndarray,
)

__all__ = [
    bytes_to_b64_str.__name__,
    b64_str_to_bytes.__name__,
    ndarray_to_payload.__name__,
    payload_to_ndarray.__name__,
]
