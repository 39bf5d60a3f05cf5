"""
Audio loading for the Spectrogram Generator.

Decodes audio files or in-memory bytes and hands channel 0 to the
pipeline as a WaveformBuffer. Sample rates are kept as recorded.
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Set

import librosa
import numpy as np
import soundfile as sf

from spectrogen.core.models import WaveformBuffer
from spectrogen.utils.errors import DecodeError, InvalidInputError


SUPPORTED_FORMATS: Dict[str, str] = {
    '.wav': 'soundfile',
    '.aif': 'soundfile',
    '.aiff': 'soundfile',
    '.flac': 'soundfile',
    '.ogg': 'soundfile',
    '.mp3': 'audioread',
}

MAX_FILE_SIZE: int = 524288000  # 500 MB

logger = logging.getLogger(__name__)


class AudioLoader:
    """
    Decodes audio into WaveformBuffer instances.

    Stateless; safe to share between threads.
    """

    def __init__(self, max_file_size: int = MAX_FILE_SIZE):
        """
        Args:
            max_file_size: Maximum accepted file size in bytes
        """
        self.max_file_size = max_file_size
        self.supported_suffixes: Set[str] = set(SUPPORTED_FORMATS.keys())

    def load(self, file_path: Path) -> WaveformBuffer:
        """
        Load an audio file and keep its first channel.

        Raises:
            FileNotFoundError: File doesn't exist
            DecodeError: Unsupported, oversized, empty or undecodable file
        """
        file_path = Path(file_path)
        self._validate_file(file_path)

        try:
            audio_data, sample_rate = librosa.load(
                str(file_path), sr=None, mono=False, dtype=np.float32
            )
        except Exception as e:
            raise DecodeError(
                f"Failed to decode audio from {file_path}: {e}",
                file_path=str(file_path),
            ) from e

        channels = 1 if audio_data.ndim == 1 else audio_data.shape[0]
        logger.info(
            f"Decoded {file_path.name}: {sample_rate} Hz, {channels} ch, "
            f"{audio_data.shape[-1]} samples"
        )
        return self._to_waveform(audio_data, int(sample_rate), file_path.name)

    def load_bytes(self, data: bytes, name: Optional[str] = None) -> WaveformBuffer:
        """
        Decode an in-memory audio file (e.g. an upload).

        Raises:
            DecodeError: Bytes are not a recognised audio container
        """
        if not data:
            raise DecodeError("No audio data received", file_path=name)
        try:
            audio_data, sample_rate = sf.read(
                io.BytesIO(data), dtype="float32", always_2d=True
            )
        except Exception as e:
            raise DecodeError(
                f"Failed to decode audio bytes: {e}", file_path=name
            ) from e

        # soundfile yields (frames, channels)
        return self._to_waveform(audio_data.T, int(sample_rate), name)

    def from_samples(
        self,
        samples: Any,
        sample_rate: int,
        channel_count: int = 1,
        name: Optional[str] = None,
    ) -> WaveformBuffer:
        """
        Wrap samples already decoded by an external collaborator.

        Args:
            samples: Floats in [-1, 1]; 1-D interleaved when channel_count > 1,
                     or 2-D ``(channels, samples)``
            sample_rate: Sample rate in Hz
            channel_count: Number of interleaved channels in a 1-D input
            name: Optional source name
        """
        if channel_count < 1:
            raise InvalidInputError(
                f"channel_count must be >= 1, got {channel_count}", value=channel_count
            )
        data = np.asarray(samples, dtype=np.float64)
        if data.ndim == 1 and channel_count > 1:
            data = data[::channel_count]
        return self._to_waveform(data, sample_rate, name)

    def _validate_file(self, file_path: Path) -> None:
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise DecodeError(
                f"Format {suffix or '(none)'} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                file_path=str(file_path),
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise DecodeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_path=str(file_path),
            )

    def _to_waveform(
        self, audio_data: np.ndarray, sample_rate: int, name: Optional[str]
    ) -> WaveformBuffer:
        waveform = WaveformBuffer.from_channels(audio_data, sample_rate, file_name=name)

        if waveform.sample_count == 0:
            raise DecodeError(f"Audio is empty: {name}", file_path=name)

        peak = float(np.max(np.abs(waveform.samples)))
        if peak < 1e-6:
            logger.warning(f"Audio appears to be silent: {name}")
        elif peak > 1.0:
            logger.warning(f"Audio exceeds full scale (peak {peak:.2f}): {name}")

        return waveform


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create AudioLoader from the ``audio`` config section.
    """
    if config is None:
        config = {}

    return AudioLoader(max_file_size=config.get('max_file_size', MAX_FILE_SIZE))
