"""
4-bit (nibble) packing utilities.

Two 4-bit codes are stored per byte, low nibble first:

    byte = (high << 4) | low

so element ``2*i`` of an unpacked sequence is the low nibble of byte ``i``
and element ``2*i + 1`` is its high nibble. Unpacking is total; packing
rejects codes outside ``[0, 15]`` and odd-length input rather than
truncating.
"""

from __future__ import annotations

from typing import Any, Tuple

import numpy as np

from ...domain._errors import PackingError

NIBBLE_MAX = 15


def pack_4bit(low: int, high: int) -> int:
    """
    Pack two 4-bit codes into one byte.

    Parameters
    ----------
    low : int
        Code stored in bits 0-3.
    high : int
        Code stored in bits 4-7.

    Returns
    -------
    int
        The packed byte value.

    Raises
    ------
    PackingError
        If either code is outside ``[0, 15]``.
    """
    low, high = int(low), int(high)
    if not 0 <= low <= NIBBLE_MAX:
        raise PackingError(f"low 4-bit value must be in range [0, 15], got {low}")
    if not 0 <= high <= NIBBLE_MAX:
        raise PackingError(f"high 4-bit value must be in range [0, 15], got {high}")
    return (high << 4) | low


def unpack_4bit(packed: int) -> Tuple[int, int]:
    """
    Split a byte into its ``(low, high)`` nibbles.

    Raises
    ------
    PackingError
        If `packed` is not a byte value.
    """
    packed = int(packed)
    if not 0 <= packed <= 0xFF:
        raise PackingError(f"packed value must be a byte in [0, 255], got {packed}")
    return packed & 0x0F, packed >> 4


def pack_4bit_array(values: Any) -> np.ndarray:
    """
    Pack a flat sequence of 4-bit codes into bytes.

    Parameters
    ----------
    values : array-like of int
        Codes in ``[0, 15]``; the length must be even.

    Returns
    -------
    numpy.ndarray
        uint8 array of length ``len(values) // 2``.

    Raises
    ------
    PackingError
        On odd length, or naming the offending pair of indices when a code is
        out of range.
    """
    codes = np.asarray(values).reshape(-1)
    if codes.size % 2 != 0:
        raise PackingError(
            f"input length must be even for 4-bit packing, got {codes.size}"
        )
    if codes.size and codes.dtype.kind not in "iub":
        if not np.all(np.equal(np.mod(codes, 1), 0)):
            raise PackingError("4-bit codes must be integers")
    as_int = codes.astype(np.int64)
    bad = np.flatnonzero((as_int < 0) | (as_int > NIBBLE_MAX))
    if bad.size:
        i = int(bad[0]) - int(bad[0]) % 2
        raise PackingError(
            f"failed to pack values at indices {i},{i + 1}: value "
            f"{int(as_int[bad[0]])} is outside [0, 15]"
        )
    low = as_int[0::2]
    high = as_int[1::2]
    return ((high << 4) | low).astype(np.uint8)


def unpack_4bit_array(packed: Any) -> np.ndarray:
    """
    Unpack bytes into 4-bit codes.

    The last axis doubles in length; leading axes are preserved, so a packed
    ``(rows, cols // 2)`` matrix unpacks to ``(rows, cols)``.

    Parameters
    ----------
    packed : array-like of uint8

    Returns
    -------
    numpy.ndarray
        uint8 codes, low nibble first within each byte.
    """
    b = np.asarray(packed)
    if b.dtype != np.uint8:
        as_int = b.astype(np.int64)
        if as_int.size and (as_int.min() < 0 or as_int.max() > 0xFF):
            raise PackingError("packed values must be bytes in [0, 255]")
        b = as_int.astype(np.uint8)
    if b.ndim == 0:
        b = b.reshape(1)
    out = np.empty(b.shape[:-1] + (b.shape[-1] * 2,), dtype=np.uint8)
    out[..., 0::2] = b & 0x0F
    out[..., 1::2] = b >> 4
    return out


__all__ = [
    pack_4bit.__name__,
    unpack_4bit.__name__,
    pack_4bit_array.__name__,
    unpack_4bit_array.__name__,
]
