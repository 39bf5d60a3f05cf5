"""
Core module containing data models, the STFT pipeline and the engine.

Uses lazy imports for modules with heavy dependencies (librosa, Pillow).
"""

# Models are lightweight - import directly
from spectrogen.core.models import (
    AnalysisConfig,
    Annotation,
    AnnotationDefaults,
    AnnotationType,
    DisplaySettings,
    NoiseSettings,
    PanelLabelPosition,
    SpectrogramMatrix,
    WaveformBuffer,
    WindowType,
)

__all__ = [
    # Models (always available)
    "AnalysisConfig",
    "Annotation",
    "AnnotationDefaults",
    "AnnotationType",
    "DisplaySettings",
    "NoiseSettings",
    "PanelLabelPosition",
    "SpectrogramMatrix",
    "WaveformBuffer",
    "WindowType",
    # Pipeline stages (lazy loaded)
    "WindowFunction",
    "FFTEngine",
    "FrameAnalyzer",
    "SpectrogramPostProcessor",
    "AudioLoader",
    "create_audio_loader",
    "SpectrogramEngine",
    "create_spectrogram_engine",
]


def __getattr__(name: str):
    """Lazy load pipeline modules."""
    if name == "WindowFunction":
        from spectrogen.core.window import WindowFunction
        return WindowFunction
    if name == "FFTEngine":
        from spectrogen.core.fft import FFTEngine
        return FFTEngine
    if name == "FrameAnalyzer":
        from spectrogen.core.analyzer import FrameAnalyzer
        return FrameAnalyzer
    if name == "SpectrogramPostProcessor":
        from spectrogen.core.postprocess import SpectrogramPostProcessor
        return SpectrogramPostProcessor
    if name in ("AudioLoader", "create_audio_loader"):
        from spectrogen.core.loader import AudioLoader, create_audio_loader
        return AudioLoader if name == "AudioLoader" else create_audio_loader
    if name in ("SpectrogramEngine", "create_spectrogram_engine"):
        from spectrogen.core.engine import SpectrogramEngine, create_spectrogram_engine
        return SpectrogramEngine if name == "SpectrogramEngine" else create_spectrogram_engine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
