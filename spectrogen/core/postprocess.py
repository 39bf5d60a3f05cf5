"""
Noise gating and signal enhancement of a decibel spectrogram.

The gate is destructive: cells below the threshold are replaced outright
and can only be recovered by re-analyzing the waveform.
"""

import logging

import numpy as np

from spectrogen.core.models import NoiseSettings, SpectrogramMatrix

logger = logging.getLogger(__name__)

# dB added per unit of contrast boost above 1.0
ENHANCEMENT_DB_PER_BOOST: float = 10.0


class SpectrogramPostProcessor:
    """Applies NoiseSettings to a SpectrogramMatrix, producing a new matrix."""

    def process(
        self, matrix: SpectrogramMatrix, settings: NoiseSettings
    ) -> SpectrogramMatrix:
        """
        Gate and optionally enhance ``matrix``.

        With noise reduction off the input matrix is returned as-is.
        Otherwise every cell below ``noise_threshold`` becomes ``floor_db``;
        with enhancement on, the remaining cells gain
        ``(contrast_boost - 1) * 10`` dB, capped at ``ceiling_db``.
        """
        if not settings.noise_reduction:
            return matrix

        values = matrix.values
        gated = values < settings.noise_threshold

        if settings.signal_enhancement:
            boost = (settings.contrast_boost - 1.0) * ENHANCEMENT_DB_PER_BOOST
            kept = np.minimum(settings.ceiling_db, values + boost)
        else:
            kept = values

        result = np.where(gated, settings.floor_db, kept)

        logger.debug(
            f"Noise gate at {settings.noise_threshold} dB removed "
            f"{int(gated.sum())}/{gated.size} cells"
            + (f", enhanced by {boost:+.1f} dB" if settings.signal_enhancement else "")
        )
        return matrix.with_values(result)
