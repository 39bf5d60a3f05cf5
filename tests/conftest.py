"""Shared fixtures for spectrogram pipeline tests."""

import numpy as np
import pytest
import soundfile as sf

from spectrogen.core.models import (
    AnalysisConfig,
    DisplaySettings,
    WaveformBuffer,
)


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------


def make_sine(
    frequency: float = 1000.0,
    sample_rate: int = 44100,
    duration: float = 1.0,
    amplitude: float = 0.5,
) -> WaveformBuffer:
    """Pure sinusoid as a WaveformBuffer."""
    t = np.arange(int(sample_rate * duration)) / sample_rate
    return WaveformBuffer(
        samples=amplitude * np.sin(2 * np.pi * frequency * t),
        sample_rate=sample_rate,
        file_name="sine.wav",
    )


def write_wav(path, data: np.ndarray, sample_rate: int = 44100) -> None:
    """Write float samples (frames[, channels]) as a 32-bit float WAV."""
    sf.write(str(path), data, sample_rate, subtype="FLOAT")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sine_waveform():
    """One second of a 1 kHz tone at 44.1 kHz."""
    return make_sine()


@pytest.fixture
def analysis_config():
    """2048-point Hann analysis (hop 512)."""
    return AnalysisConfig(fft_size=2048, window_function="hann")


@pytest.fixture
def plain_display():
    """Small canvas without academic chrome, grid, axes or panel label."""
    return DisplaySettings(
        min_db=0.0,
        max_db=1.0,
        colormap="grayscale",
        show_grid=False,
        show_axes=False,
        academic_style=False,
        panel_label="",
        width=84,
        height=64,
    )


@pytest.fixture
def wav_file(tmp_path):
    """Half a second of 440 Hz stereo; right channel is silent."""
    sample_rate = 22050
    t = np.arange(sample_rate // 2) / sample_rate
    left = 0.25 * np.sin(2 * np.pi * 440.0 * t)
    right = np.zeros_like(left)
    path = tmp_path / "tone.wav"
    write_wav(path, np.stack([left, right], axis=1), sample_rate)
    return path
