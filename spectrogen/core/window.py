"""
Analysis window functions.

Each window maps a sample index ``i`` in a frame of length ``n`` to a
real weighting coefficient. Vectorized coefficient arrays are cached per
(kind, length) and handed out read-only.
"""

import math
from functools import lru_cache
from typing import Callable, Dict, Union

import numpy as np

from spectrogen.core.models import WindowType
from spectrogen.utils.errors import InvalidInputError


def _check_index(i: int, n: int) -> None:
    if not 0 <= i < n:
        raise InvalidInputError(f"Window index {i} outside frame of length {n}", value=i)


def _check_tapered_length(n: int) -> None:
    # hann/hamming divide by n - 1
    if n < 2:
        raise InvalidInputError(f"Tapered windows need at least 2 samples, got {n}", value=n)


class WindowFunction:
    """Per-sample window coefficients."""

    @staticmethod
    def hann(i: int, n: int) -> float:
        _check_tapered_length(n)
        _check_index(i, n)
        return 0.5 * (1.0 - math.cos(2.0 * math.pi * i / (n - 1)))

    @staticmethod
    def hamming(i: int, n: int) -> float:
        _check_tapered_length(n)
        _check_index(i, n)
        return 0.54 - 0.46 * math.cos(2.0 * math.pi * i / (n - 1))

    @staticmethod
    def rectangular(i: int, n: int) -> float:
        _check_index(i, n)
        return 1.0

    @classmethod
    def coefficient(cls, kind: Union[str, WindowType], i: int, n: int) -> float:
        """Coefficient of window ``kind`` at index ``i`` of an ``n``-sample frame."""
        return _SCALAR[_resolve(kind)](i, n)

    @staticmethod
    def coefficients(kind: Union[str, WindowType], n: int) -> np.ndarray:
        """All ``n`` coefficients of window ``kind`` as a read-only float64 array."""
        return _coefficients(_resolve(kind), int(n))


_SCALAR: Dict[WindowType, Callable[[int, int], float]] = {
    WindowType.HANN: WindowFunction.hann,
    WindowType.HAMMING: WindowFunction.hamming,
    WindowType.RECTANGULAR: WindowFunction.rectangular,
}


def _resolve(kind: Union[str, WindowType]) -> WindowType:
    try:
        return WindowType(kind)
    except ValueError:
        raise InvalidInputError(f"Unknown window function: {kind!r}", value=kind)


@lru_cache(maxsize=32)
def _coefficients(kind: WindowType, n: int) -> np.ndarray:
    if kind is WindowType.RECTANGULAR:
        if n < 1:
            raise InvalidInputError(f"Window length must be positive, got {n}", value=n)
        window = np.ones(n, dtype=np.float64)
    else:
        _check_tapered_length(n)
        phase = 2.0 * np.pi * np.arange(n, dtype=np.float64) / (n - 1)
        if kind is WindowType.HANN:
            window = 0.5 * (1.0 - np.cos(phase))
        else:
            window = 0.54 - 0.46 * np.cos(phase)
    window.flags.writeable = False
    return window
