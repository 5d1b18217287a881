"""
Linear 8-bit quantization configuration.

A `QuantizationConfig` maps real values to unsigned byte codes:

    quantize(v)   = clamp(round(v / scale + zp), 0, 255)
    dequantize(q) = scale * (q - zp)

where ``zp`` is the configured zero point in asymmetric mode and is fixed at
128 (the middle of the byte range) in symmetric mode. Rounding is half away
from zero. All arithmetic is carried out in float32.

`compute_quantization_params` derives a configuration from an observed data
range for dynamic quantization.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from ._packing import unpack_4bit_array
from ...domain._arithmetic import IArithmetic
from ...domain._errors import QuantizationConfigError, QuantizationError

CODE_MIN = 0
CODE_MAX = 255
SYMMETRIC_ZERO_POINT = 128


def _round_half_away(x: np.ndarray) -> np.ndarray:
    return np.sign(x) * np.floor(np.abs(x) + 0.5)


@dataclass(frozen=True)
class QuantizationConfig:
    """
    Immutable quantization parameters.

    Parameters
    ----------
    scale : float
        Step between adjacent codes; must be strictly positive.
    zero_point : int
        Code representing real zero. Validated to ``[0, 255]`` only in
        asymmetric mode; ignored (treated as 128) when symmetric.
    symmetric : bool
        Whether the zero point is fixed at the middle of the code range.

    Raises
    ------
    QuantizationConfigError
        If `scale` is not strictly positive, or the zero point is out of range
        in asymmetric mode.
    """

    scale: float
    zero_point: int = 0
    symmetric: bool = False

    def __post_init__(self) -> None:
        scale = float(self.scale)
        if not scale > 0 or not math.isfinite(scale):
            raise QuantizationConfigError(
                f"quantization scale must be positive, got {scale}",
                scale,
                self.zero_point,
            )
        zp = int(self.zero_point)
        if not self.symmetric and not CODE_MIN <= zp <= CODE_MAX:
            raise QuantizationConfigError(
                "zero point must be in range [0, 255] for asymmetric "
                f"quantization, got {zp}",
                scale,
                zp,
            )
        object.__setattr__(self, "scale", float(np.float32(scale)))
        object.__setattr__(self, "zero_point", zp)
        object.__setattr__(self, "symmetric", bool(self.symmetric))

    @property
    def effective_zero_point(self) -> int:
        """Zero point actually used by `quantize` / `dequantize`."""
        return SYMMETRIC_ZERO_POINT if self.symmetric else self.zero_point

    # ---- scalar API ----
    def quantize(self, value: float) -> int:
        """Quantize one real value to a byte code."""
        return int(self.quantize_array(np.asarray([value]))[0])

    def dequantize(self, code: int) -> float:
        """Dequantize one byte code to a real value."""
        return float(self.dequantize_array(np.asarray([code]))[0])

    # ---- array API ----
    def quantize_array(self, values: Any) -> np.ndarray:
        """
        Quantize an array of real values.

        Returns
        -------
        numpy.ndarray
            uint8 codes with the shape of `values`.
        """
        v = np.asarray(values, dtype=np.float32)
        with np.errstate(over="ignore", invalid="ignore"):
            q = v / np.float32(self.scale) + np.float32(self.effective_zero_point)
        q = np.nan_to_num(q, nan=0.0, posinf=CODE_MAX, neginf=CODE_MIN)
        return np.clip(_round_half_away(q), CODE_MIN, CODE_MAX).astype(np.uint8)

    def dequantize_array(
        self, codes: Any, arithmetic: Optional[IArithmetic] = None
    ) -> np.ndarray:
        """
        Dequantize an array of byte codes.

        Parameters
        ----------
        codes : array-like
            Codes in ``[0, 255]``.
        arithmetic : Optional[IArithmetic]
            When given, the float32 result is converted into that element type.

        Returns
        -------
        numpy.ndarray
            Real values (float32, or the arithmetic's dtype).
        """
        q = np.asarray(codes).astype(np.float32)
        out = np.float32(self.scale) * (q - np.float32(self.effective_zero_point))
        if arithmetic is not None:
            return np.asarray(arithmetic.from_float32(out))
        return out

    def dequantize_4bit_weights(
        self, packed: Any, arithmetic: Optional[IArithmetic] = None
    ) -> np.ndarray:
        """
        Unpack 4-bit codes and dequantize them in one pass.

        The last axis of `packed` doubles in length.
        """
        return self.dequantize_array(unpack_4bit_array(packed), arithmetic)

    # ---- diagnostics ----
    def quantization_error(self, values: Any) -> float:
        """
        Root-mean-square error of the quantize / dequantize round trip.

        Returns 0.0 for empty input.
        """
        v = np.asarray(values, dtype=np.float32).reshape(-1)
        if v.size == 0:
            return 0.0
        back = self.dequantize_array(self.quantize_array(v))
        diff = (v - back).astype(np.float64)
        return float(np.sqrt(np.mean(diff * diff)))

    def validate_round_trip(self, values: Any, tolerance: float) -> None:
        """
        Check that every value survives the round trip within `tolerance`.

        Raises
        ------
        QuantizationError
            Naming the first offending index.
        """
        v = np.asarray(values, dtype=np.float32).reshape(-1)
        back = self.dequantize_array(self.quantize_array(v))
        diff = np.abs((v - back).astype(np.float64))
        bad = np.flatnonzero(diff > tolerance)
        if bad.size:
            i = int(bad[0])
            raise QuantizationError(
                f"quantization round-trip failed at index {i}: "
                f"original={v[i]:.6f}, dequantized={back[i]:.6f}, "
                f"error={diff[i]:.6f} > tolerance={tolerance:.6f}"
            )

    @classmethod
    def from_values(cls, values: Any, symmetric: bool = False) -> "QuantizationConfig":
        """
        Derive a configuration covering the range of `values`.
        """
        v = np.asarray(values, dtype=np.float32)
        if v.size == 0:
            raise QuantizationError("cannot derive quantization parameters from no values")
        return compute_quantization_params(float(v.min()), float(v.max()), symmetric)


def compute_quantization_params(
    min_val: float, max_val: float, symmetric: bool = False
) -> QuantizationConfig:
    """
    Derive scale and zero point so that ``[min_val, max_val]`` maps into the
    byte code range.

    - Symmetric: ``[-absmax, absmax]`` maps onto codes ``[1, 255]`` centered at
      128, with ``scale = absmax / 127``.
    - Asymmetric: ``[min_val, max_val]`` maps onto ``[0, 255]`` with
      ``scale = (max - min) / 255`` and ``zp = round(-min / scale)`` clamped to
      the byte range.

    A degenerate range (``min_val == max_val``) cannot determine a scale; it
    yields ``scale = 1.0, zero_point = 128`` and a `RuntimeWarning`.

    Raises
    ------
    QuantizationError
        If ``min_val > max_val`` or either bound is not finite.
    """
    lo = np.float32(min_val)
    hi = np.float32(max_val)
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise QuantizationError(
            f"quantization range must be finite, got [{min_val}, {max_val}]"
        )
    if lo > hi:
        raise QuantizationError(
            f"min value ({float(lo):f}) cannot be greater than max value ({float(hi):f})"
        )

    if lo == hi:
        warnings.warn(
            f"degenerate quantization range [{float(lo)}, {float(hi)}]; "
            "falling back to scale=1.0, zero_point=128",
            RuntimeWarning,
            stacklevel=2,
        )
        return QuantizationConfig(1.0, SYMMETRIC_ZERO_POINT, symmetric)

    if symmetric:
        abs_max = max(abs(lo), abs(hi))
        return QuantizationConfig(float(abs_max / np.float32(127.0)), 0, True)

    scale = (hi - lo) / np.float32(255.0)
    zp = int(_round_half_away(np.asarray(-lo / scale)))
    zp = min(max(zp, CODE_MIN), CODE_MAX)
    return QuantizationConfig(float(scale), zp, False)


__all__ = [
    QuantizationConfig.__name__,
    compute_quantization_params.__name__,
]
