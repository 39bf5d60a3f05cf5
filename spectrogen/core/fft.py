"""
Radix-2 fast Fourier transform.

Iterative Cooley-Tukey with butterfly stages of ascending size
(2, 4, ..., N), computed in complex128. Input samples are placed in
bit-reversed order before the first stage so that the stages emit bins
in natural frequency order: bin k is the DFT coefficient at k * fs / N.

Spectra cross the public API interleaved as ``[re0, im0, re1, im1, ...]``.
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np

from spectrogen.utils.errors import InvalidInputError

logger = logging.getLogger(__name__)


def is_power_of_two(n: Any) -> bool:
    """True for 1, 2, 4, 8, ... (integers only)."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        return False
    return n > 0 and (int(n) & (int(n) - 1)) == 0


def bit_reversal_permutation(n: int) -> np.ndarray:
    """Index array mapping position i to the bit-reversed index of i."""
    bits = n.bit_length() - 1
    indices = np.arange(n)
    reversed_indices = np.zeros(n, dtype=np.intp)
    for b in range(bits):
        reversed_indices |= ((indices >> b) & 1) << (bits - 1 - b)
    return reversed_indices


def interleave(spectrum: np.ndarray) -> np.ndarray:
    """Complex bins -> ``[re, im, re, im, ...]`` float64 along the last axis."""
    out = np.empty(spectrum.shape[:-1] + (2 * spectrum.shape[-1],), dtype=np.float64)
    out[..., 0::2] = spectrum.real
    out[..., 1::2] = spectrum.imag
    return out


def deinterleave(spectrum: np.ndarray) -> np.ndarray:
    """Inverse of :func:`interleave`."""
    data = np.asarray(spectrum, dtype=np.float64)
    if data.shape[-1] % 2:
        raise InvalidInputError(
            f"Interleaved spectrum needs an even length, got {data.shape[-1]}",
            value=data.shape[-1],
        )
    return data[..., 0::2] + 1j * data[..., 1::2]


def magnitudes(spectrum: np.ndarray) -> np.ndarray:
    """Per-bin magnitude ``sqrt(re^2 + im^2)`` of an interleaved spectrum."""
    data = np.asarray(spectrum, dtype=np.float64)
    return np.hypot(data[..., 0::2], data[..., 1::2])


class FFTEngine:
    """
    Computes DFTs of power-of-two length frames.

    Permutations and per-stage twiddle factors are cached per size, so one
    engine should be reused across all frames of an analysis.
    """

    def __init__(self) -> None:
        self._plans: Dict[int, Tuple[np.ndarray, List[np.ndarray]]] = {}

    def _plan(self, n: int) -> Tuple[np.ndarray, List[np.ndarray]]:
        plan = self._plans.get(n)
        if plan is None:
            twiddles = []
            length = 2
            while length <= n:
                half = length // 2
                twiddles.append(np.exp(-2j * np.pi * np.arange(half) / length))
                length *= 2
            plan = (bit_reversal_permutation(n), twiddles)
            self._plans[n] = plan
            logger.debug(f"Built FFT plan for N={n} ({len(twiddles)} stages)")
        return plan

    def _check_length(self, n: int) -> None:
        if not is_power_of_two(n):
            raise InvalidInputError(
                f"FFT length must be a power of two, got {n}", value=n
            )

    def transform(self, frames: Any) -> np.ndarray:
        """
        Complex spectra of real frames along the last axis.

        Args:
            frames: Array of shape ``(N,)`` or ``(num_frames, N)``

        Returns:
            complex128 array of the same shape

        Raises:
            InvalidInputError: If N is not a power of two
        """
        data = np.asarray(frames, dtype=np.float64)
        if data.ndim == 0:
            raise InvalidInputError("FFT input must be an array of samples", value=data)
        n = data.shape[-1]
        self._check_length(n)

        permutation, twiddles = self._plan(n)
        lead = data.shape[:-1]
        # imaginary parts start at zero
        buf = data[..., permutation].astype(np.complex128).reshape(-1, n)

        length = 2
        for twiddle in twiddles:
            half = length // 2
            blocks = buf.reshape(buf.shape[0], n // length, length)
            upper = blocks[..., :half]
            t = blocks[..., half:] * twiddle
            buf = np.concatenate((upper + t, upper - t), axis=-1).reshape(-1, n)
            length *= 2

        return buf.reshape(lead + (n,))

    def fft(self, frame: Any) -> np.ndarray:
        """
        Transform one real frame into an interleaved ComplexSpectrum.

        Args:
            frame: Real samples, length N (power of two)

        Returns:
            float64 array of length 2N; bin k lives at ``[2k, 2k+1]``
        """
        data = np.asarray(frame, dtype=np.float64)
        if data.ndim != 1:
            raise InvalidInputError(
                f"fft expects a single 1-D frame, got shape {data.shape}", value=data.shape
            )
        return interleave(self.transform(data))
