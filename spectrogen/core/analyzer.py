"""
Short-time Fourier analysis of a waveform into a decibel matrix.
"""

import logging
import time
from typing import Optional

import numpy as np

from spectrogen.core.fft import FFTEngine
from spectrogen.core.models import AnalysisConfig, SpectrogramMatrix, WaveformBuffer
from spectrogen.core.window import WindowFunction
from spectrogen.utils.errors import InsufficientDataError

# Magnitude floor: 20 * log10(1e-10) = -200 dB instead of -inf
MAGNITUDE_FLOOR: float = 1e-10

# Frames transformed per batch; bounds peak memory on long recordings
DEFAULT_BATCH_FRAMES: int = 256

logger = logging.getLogger(__name__)


def magnitude_to_db(magnitude: np.ndarray) -> np.ndarray:
    """``20 * log10(max(magnitude, 1e-10))`` elementwise."""
    return 20.0 * np.log10(np.maximum(magnitude, MAGNITUDE_FLOOR))


class FrameAnalyzer:
    """
    Slices a waveform into overlapping windowed frames and converts each
    frame's spectrum to decibels.

    Stateless apart from the FFT plan cache; safe to reuse across calls.
    """

    def __init__(
        self,
        fft_engine: Optional[FFTEngine] = None,
        batch_frames: int = DEFAULT_BATCH_FRAMES,
    ):
        """
        Args:
            fft_engine: FFT implementation (creates one if None)
            batch_frames: Number of frames transformed together
        """
        self.fft_engine = fft_engine or FFTEngine()
        self.batch_frames = max(1, int(batch_frames))

    def frame_count(self, total_samples: int, config: AnalysisConfig) -> int:
        """``floor((total - fft_size) / hop) + 1``, never fewer than one."""
        self._validate(total_samples, config)
        return config.frame_count(total_samples)

    def _validate(self, total_samples: int, config: AnalysisConfig) -> None:
        if total_samples <= 0:
            raise InsufficientDataError(
                "Waveform contains no samples",
                sample_count=total_samples,
                fft_size=config.fft_size,
                hop_size=config.hop_size,
            )
        if config.fft_size <= 0 or config.hop_size <= 0:
            raise InsufficientDataError(
                "FFT and hop sizes must be positive",
                sample_count=total_samples,
                fft_size=config.fft_size,
                hop_size=config.hop_size,
            )

    def analyze(
        self, waveform: WaveformBuffer, config: AnalysisConfig
    ) -> SpectrogramMatrix:
        """
        Compute the decibel spectrogram of ``waveform``.

        Args:
            waveform: Single-channel samples and sample rate
            config: FFT size and window function

        Returns:
            SpectrogramMatrix of shape ``(num_frames, fft_size // 2)``

        Raises:
            InsufficientDataError: Empty waveform or non-positive sizes
            InvalidInputError: FFT size is not a power of two
        """
        total = waveform.sample_count
        fft_size = config.fft_size
        hop = config.hop_size
        num_frames = self.frame_count(total, config)
        num_bins = fft_size // 2
        start_time = time.time()

        # Zero-pad so every frame, including a short tail, is full length
        padded_length = max(total, (num_frames - 1) * hop + fft_size)
        padded = np.zeros(padded_length, dtype=np.float64)
        padded[:total] = waveform.samples

        window = WindowFunction.coefficients(config.window_function, fft_size)
        offsets = np.arange(fft_size)
        values = np.empty((num_frames, num_bins), dtype=np.float64)

        for first in range(0, num_frames, self.batch_frames):
            last = min(first + self.batch_frames, num_frames)
            starts = np.arange(first, last) * hop
            frames = padded[starts[:, None] + offsets[None, :]] * window
            spectra = self.fft_engine.transform(frames)[:, :num_bins]
            values[first:last] = magnitude_to_db(np.abs(spectra))

        logger.debug(
            f"Analyzed {total} samples @ {waveform.sample_rate} Hz into "
            f"{num_frames} frames x {num_bins} bins "
            f"({config.window_function.value}, {time.time() - start_time:.3f}s)"
        )

        return SpectrogramMatrix(
            values=values,
            sample_rate=waveform.sample_rate,
            fft_size=fft_size,
            hop_size=hop,
            sample_count=total,
        )
