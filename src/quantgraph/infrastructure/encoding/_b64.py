from __future__ import annotations

import base64
from typing import Any, Dict

import numpy as np

from ..numeric import arithmetic_for, available_arithmetics


def bytes_to_b64_str(b: bytes) -> str:
    """
    Encode raw bytes into a base64 ASCII string (JSON-safe).
    """
    return base64.b64encode(b).decode("ascii")


def b64_str_to_bytes(s: str) -> bytes:
    """
    Decode a base64 ASCII string back into raw bytes.
    """
    return base64.b64decode(s.encode("ascii"))


def _dtype_tag(dtype: np.dtype) -> str:
    # Element types are tagged by arithmetic name; ml_dtypes' float8 has no
    # portable ``dtype.str``.
    for name in available_arithmetics():
        if np.dtype(arithmetic_for(name).dtype) == dtype:
            return name
    return dtype.str


def _dtype_from_tag(tag: str) -> np.dtype:
    if tag in available_arithmetics():
        return np.dtype(arithmetic_for(tag).dtype)
    return np.dtype(tag)


def ndarray_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize a NumPy ndarray into a JSON-safe payload.

    Returns
    -------
    dict
        {
          "b64": "<base64>",
          "dtype": "<element type name, or numpy dtype str>",
          "shape": [...],
          "order": "C"
        }
    """
    a = np.ascontiguousarray(arr)
    return {
        "b64": bytes_to_b64_str(a.tobytes(order="C")),
        "dtype": _dtype_tag(a.dtype),
        "shape": list(a.shape),
        "order": "C",
    }


def payload_to_ndarray(payload: Dict[str, Any]) -> np.ndarray:
    """
    Deserialize a JSON payload back into a NumPy ndarray.

    Notes
    -----
    - Uses np.frombuffer (zero-copy view on the bytes object), then reshape.
    - The resulting array is copied so it owns its memory.

    Raises
    ------
    ValueError
        If the byte count does not match the declared dtype and shape.
    """
    b = b64_str_to_bytes(str(payload["b64"]))
    dtype = _dtype_from_tag(str(payload["dtype"]))
    shape = tuple(int(x) for x in payload["shape"])

    expected = int(np.prod(shape, dtype=np.int64)) * dtype.itemsize
    if len(b) != expected:
        raise ValueError(
            f"payload holds {len(b)} bytes, expected {expected} for dtype "
            f"{payload['dtype']} and shape {list(shape)}"
        )

    arr = np.frombuffer(b, dtype=dtype)
    arr = arr.reshape(shape)

    return np.array(arr, copy=True, order="C")
