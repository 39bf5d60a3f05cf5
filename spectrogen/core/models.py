"""
Core data models for the Spectrogram Generator.

Immutable value objects flowing through the signal-to-image pipeline,
plus the mutable Annotation overlays edited by the user.
"""

from __future__ import annotations

from dataclasses import MISSING, asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from spectrogen.utils.errors import (
    AnnotationError,
    ConfigurationError,
    InsufficientDataError,
    InvalidInputError,
)


DEFAULT_FFT_SIZE: int = 2048
DEFAULT_CANVAS_WIDTH: int = 1000
DEFAULT_CANVAS_HEIGHT: int = 600


class WindowType(str, Enum):
    """Supported analysis window shapes."""

    HANN = "hann"
    HAMMING = "hamming"
    RECTANGULAR = "rectangular"


class PanelLabelPosition(str, Enum):
    """Preset anchor positions for the figure panel label."""

    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CUSTOM = "custom"


class AnnotationType(str, Enum):
    """Overlay annotation kinds."""

    TEXT = "text"
    LINE = "line"
    RECTANGLE = "rectangle"
    ARROW = "arrow"


TIME_UNITS = ("s", "ms")
FREQ_UNITS = ("kHz", "Hz")


def _coerce_enum(enum_cls, value: Any, config_key: str):
    """Convert a raw string into ``enum_cls`` or raise ConfigurationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Invalid value for {config_key}: {value!r} (expected one of: {allowed})",
            config_key=config_key,
        )


def _readonly(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


# =============================================================================
# Signal side
# =============================================================================

@dataclass(frozen=True)
class WaveformBuffer:
    """
    One channel of decoded audio.

    Produced once at load time and read-only afterwards; the sample array
    is copied on construction and marked non-writeable.
    """

    samples: np.ndarray
    sample_rate: int
    file_name: Optional[str] = None

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float64)
        if samples.ndim != 1:
            raise InvalidInputError(
                f"WaveformBuffer expects a single channel, got shape {samples.shape}",
                value=samples.shape,
            )
        if isinstance(self.sample_rate, bool) or int(self.sample_rate) != self.sample_rate \
                or self.sample_rate <= 0:
            raise InvalidInputError(
                f"Sample rate must be a positive integer, got {self.sample_rate!r}",
                value=self.sample_rate,
            )
        object.__setattr__(self, "samples", _readonly(samples))
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @classmethod
    def from_channels(
        cls,
        channels: Any,
        sample_rate: int,
        file_name: Optional[str] = None,
    ) -> "WaveformBuffer":
        """
        Build a buffer from decoder output, keeping channel 0 only.

        Args:
            channels: 1-D mono samples or a 2-D ``(channels, samples)`` array
            sample_rate: Sample rate in Hz
            file_name: Optional source name for display/logging
        """
        data = np.asarray(channels)
        if data.ndim == 2:
            if data.shape[0] == 0:
                raise InvalidInputError("Decoder returned zero channels", value=data.shape)
            data = data[0]
        return cls(samples=data, sample_rate=sample_rate, file_name=file_name)

    @property
    def sample_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.sample_count / self.sample_rate


@dataclass(frozen=True)
class AnalysisConfig:
    """STFT parameters. The hop size is always a quarter of the FFT size."""

    fft_size: int = DEFAULT_FFT_SIZE
    window_function: WindowType = WindowType.HANN

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "window_function",
            _coerce_enum(WindowType, self.window_function, "analysis.window_function"),
        )
        size = self.fft_size
        if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
            raise InvalidInputError(f"FFT size must be an integer, got {size!r}", value=size)
        if size <= 0:
            raise InsufficientDataError(
                f"FFT size must be positive, got {size}", fft_size=int(size)
            )
        if size < 2 or size & (size - 1):
            raise InvalidInputError(
                f"FFT size must be a power of two >= 2, got {size}", value=int(size)
            )
        object.__setattr__(self, "fft_size", int(size))

    @property
    def hop_size(self) -> int:
        return max(1, self.fft_size // 4)

    @property
    def num_bins(self) -> int:
        return self.fft_size // 2

    def frame_count(self, total_samples: int) -> int:
        """Number of analysis frames for ``total_samples`` (at least one)."""
        if total_samples < self.fft_size:
            return 1
        return (total_samples - self.fft_size) // self.hop_size + 1


@dataclass(frozen=True)
class SpectrogramMatrix:
    """
    Decibel magnitudes, one row per frame in chronological order.

    Column 0 is the DC bin. The matrix is a read-only snapshot: consumers
    derive new matrices instead of editing this one.
    """

    values: np.ndarray
    sample_rate: int
    fft_size: int
    hop_size: int
    sample_count: int = 0

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64)
        if values.ndim != 2 or values.shape[0] == 0 or values.shape[1] == 0:
            raise InvalidInputError(
                f"Spectrogram must be a non-empty 2-D matrix, got shape {values.shape}",
                value=values.shape,
            )
        object.__setattr__(self, "values", _readonly(values))

    @property
    def num_frames(self) -> int:
        return int(self.values.shape[0])

    @property
    def num_bins(self) -> int:
        return int(self.values.shape[1])

    @property
    def max_frequency(self) -> float:
        """Nyquist frequency in Hz."""
        return self.sample_rate / 2.0

    @property
    def duration(self) -> float:
        """Duration in seconds of the source waveform."""
        if self.sample_count:
            return self.sample_count / self.sample_rate
        return ((self.num_frames - 1) * self.hop_size + self.fft_size) / self.sample_rate

    def bin_frequency(self, k: int) -> float:
        """Centre frequency in Hz of bin ``k``."""
        return k * self.sample_rate / self.fft_size

    def frame_time(self, f: int) -> float:
        """Start time in seconds of frame ``f``."""
        return f * self.hop_size / self.sample_rate

    def with_values(self, values: np.ndarray) -> "SpectrogramMatrix":
        """Return a new matrix with the same geometry and different values."""
        return replace(self, values=values)

    def to_list(self) -> List[List[float]]:
        return self.values.tolist()


# =============================================================================
# Settings
# =============================================================================

@dataclass(frozen=True)
class NoiseSettings:
    """
    Post-processing parameters. These change the data itself.

    ``floor_db`` replaces gated cells and ``ceiling_db`` caps enhanced ones;
    they are unrelated to the display clamp in DisplaySettings.
    """

    noise_reduction: bool = True
    noise_threshold: float = -60.0
    signal_enhancement: bool = True
    contrast_boost: float = 2.0
    floor_db: float = -120.0
    ceiling_db: float = 0.0

    def __post_init__(self) -> None:
        if self.contrast_boost < 1.0:
            raise ConfigurationError(
                f"contrast_boost must be >= 1.0, got {self.contrast_boost}",
                config_key="noise.contrast_boost",
            )


@dataclass(frozen=True)
class DisplaySettings:
    """Rendering-only options; never alters spectrogram values."""

    min_db: float = -120.0
    max_db: float = 0.0
    colormap: str = "grayscale"
    show_grid: bool = True
    show_axes: bool = True
    academic_style: bool = True
    time_unit: str = "s"
    freq_unit: str = "kHz"
    max_freq: Optional[float] = None
    panel_label: str = "A"
    panel_label_color: str = "#000000"
    panel_label_size: int = 16
    panel_label_position: PanelLabelPosition = PanelLabelPosition.TOP_LEFT
    panel_label_x: float = 10.0
    panel_label_y: float = 10.0
    width: int = DEFAULT_CANVAS_WIDTH
    height: int = DEFAULT_CANVAS_HEIGHT

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "panel_label_position",
            _coerce_enum(
                PanelLabelPosition, self.panel_label_position, "display.panel_label_position"
            ),
        )
        if self.time_unit not in TIME_UNITS:
            raise ConfigurationError(
                f"Invalid time unit: {self.time_unit!r}", config_key="display.time_unit"
            )
        if self.freq_unit not in FREQ_UNITS:
            raise ConfigurationError(
                f"Invalid frequency unit: {self.freq_unit!r}", config_key="display.freq_unit"
            )
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Canvas size must be positive, got {self.width}x{self.height}",
                config_key="display.width",
            )

    @property
    def has_degenerate_range(self) -> bool:
        return self.max_db <= self.min_db

    @property
    def margins(self) -> Dict[str, int]:
        """Plot margins in pixels; academic figures leave room for axis text."""
        if self.academic_style:
            return {"top": 50, "right": 70, "bottom": 60, "left": 100}
        return {"top": 20, "right": 20, "bottom": 20, "left": 20}

    @property
    def plot_size(self) -> Tuple[int, int]:
        m = self.margins
        return (
            self.width - m["left"] - m["right"],
            self.height - m["top"] - m["bottom"],
        )


# =============================================================================
# Annotations
# =============================================================================

@dataclass(frozen=True)
class AnnotationDefaults:
    """Initial text, color and size applied to newly created annotations."""

    text: str = "Annotation"
    color: str = "#ef4444"
    font_size: int = 14


@dataclass
class Annotation:
    """
    A user overlay drawn on top of the spectrogram, in canvas pixels.

    Mutable: the user moves and edits annotations in place.
    """

    id: str
    type: AnnotationType
    x: float
    y: float
    color: str = "#ef4444"
    text: Optional[str] = None
    font_size: Optional[int] = None
    width: Optional[float] = None
    height: Optional[float] = None
    end_x: Optional[float] = None
    end_y: Optional[float] = None
    arrow_style: str = "simple"

    def __post_init__(self) -> None:
        try:
            self.type = AnnotationType(self.type)
        except ValueError:
            raise AnnotationError(
                f"Unknown annotation type: {self.type!r}", annotation_id=self.id
            )

    @property
    def has_endpoint(self) -> bool:
        return self.end_x is not None and self.end_y is not None

    @property
    def is_drawable(self) -> bool:
        """Whether the type-specific fields needed for drawing are present."""
        if self.type is AnnotationType.TEXT:
            return bool(self.text)
        if self.type is AnnotationType.RECTANGLE:
            return bool(self.width) and bool(self.height)
        return self.has_endpoint

    def bounds(self) -> Tuple[float, float, float, float]:
        """Rectangle extent as ``(x0, y0, x1, y1)`` with ``x0 <= x1``, ``y0 <= y1``."""
        x1 = self.x + (self.width or 0.0)
        y1 = self.y + (self.height or 0.0)
        return min(self.x, x1), min(self.y, y1), max(self.x, x1), max(self.y, y1)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        """
        Build an annotation from its JSON form.

        Raises:
            AnnotationError: Not an object, or unknown or missing fields
        """
        if not isinstance(data, dict):
            raise AnnotationError(
                f"Annotation must be a JSON object, got {type(data).__name__}"
            )
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise AnnotationError(
                f"Unknown annotation fields: {sorted(unknown)}",
                annotation_id=data.get("id"),
            )
        required = [
            f.name for f in fields(cls)
            if f.default is MISSING and f.default_factory is MISSING
        ]
        missing = [name for name in required if name not in data]
        if missing:
            raise AnnotationError(
                f"Missing annotation fields: {missing}",
                annotation_id=data.get("id"),
            )
        return cls(**data)
