"""
Builders turning configuration sections into pipeline settings.

Ranges mirror what the figure editor exposes; the core itself tolerates
more (any power-of-two FFT size, inverted display ranges).
"""

import logging
from typing import Any, Dict

from spectrogen.core.models import (
    AnalysisConfig,
    AnnotationDefaults,
    DisplaySettings,
    NoiseSettings,
    PanelLabelPosition,
    WindowType,
)
from spectrogen.utils.config import ConfigManager
from spectrogen.utils.errors import DegenerateRangeError
from spectrogen.visualization.colormaps import available_colormaps

FFT_SIZES = (512, 1024, 2048, 4096)
DB_LIMITS = (-200.0, 20.0)
NOISE_THRESHOLD_LIMITS = (-100.0, -20.0)
CONTRAST_BOOST_LIMITS = (1.0, 3.0)
PANEL_LABEL_SIZE_LIMITS = (8, 48)
ANNOTATION_FONT_SIZE_LIMITS = (8, 32)

_NUMBER = (int, float)

logger = logging.getLogger(__name__)


def config_schema(strict_fft_sizes: bool = False) -> Dict[str, Dict[str, Any]]:
    """Validation schema for :meth:`ConfigManager.validate`."""
    fft_rule: Dict[str, Any] = {"type": int, "min": 2}
    if strict_fft_sizes:
        fft_rule["choices"] = list(FFT_SIZES)
    return {
        "analysis.fft_size": fft_rule,
        "analysis.window_function": {
            "type": str, "choices": [w.value for w in WindowType],
        },
        "analysis.batch_frames": {"type": int, "min": 1},
        "noise.noise_reduction": {"type": bool},
        "noise.signal_enhancement": {"type": bool},
        "noise.noise_threshold": {
            "type": _NUMBER,
            "min": NOISE_THRESHOLD_LIMITS[0],
            "max": NOISE_THRESHOLD_LIMITS[1],
        },
        "noise.contrast_boost": {
            "type": _NUMBER,
            "min": CONTRAST_BOOST_LIMITS[0],
            "max": CONTRAST_BOOST_LIMITS[1],
        },
        "noise.floor_db": {"type": _NUMBER, "min": DB_LIMITS[0], "max": DB_LIMITS[1]},
        "noise.ceiling_db": {"type": _NUMBER, "min": DB_LIMITS[0], "max": DB_LIMITS[1]},
        "display.min_db": {"type": _NUMBER, "min": DB_LIMITS[0], "max": DB_LIMITS[1]},
        "display.max_db": {"type": _NUMBER, "min": DB_LIMITS[0], "max": DB_LIMITS[1]},
        "display.colormap": {"type": str, "choices": available_colormaps()},
        "display.time_unit": {"type": str, "choices": ["s", "ms"]},
        "display.freq_unit": {"type": str, "choices": ["kHz", "Hz"]},
        "display.panel_label": {"type": str},
        "display.panel_label_size": {
            "type": int,
            "min": PANEL_LABEL_SIZE_LIMITS[0],
            "max": PANEL_LABEL_SIZE_LIMITS[1],
        },
        "display.panel_label_position": {
            "type": str, "choices": [p.value for p in PanelLabelPosition],
        },
        "display.width": {"type": int, "min": 1},
        "display.height": {"type": int, "min": 1},
        "annotations.font_size": {
            "type": int,
            "min": ANNOTATION_FONT_SIZE_LIMITS[0],
            "max": ANNOTATION_FONT_SIZE_LIMITS[1],
        },
    }


def validate_config(config: Dict[str, Any], strict: bool = False) -> None:
    """
    Validate a full configuration dictionary.

    Args:
        config: Configuration as returned by ``load_config``
        strict: Also reject FFT sizes outside 512-4096 and an empty or
                inverted display range

    Raises:
        ConfigurationError: A value is missing, mistyped or out of range
        DegenerateRangeError: Strict mode and display max_db <= min_db
    """
    manager = ConfigManager(config)
    manager.validate(config_schema(strict_fft_sizes=strict))
    check_display_range(build_display_settings(config), strict=strict)


def check_display_range(display: DisplaySettings, strict: bool = False) -> None:
    """
    Report an empty or inverted display range.

    Rendering handles both, so outside strict mode this only logs.
    """
    if not display.has_degenerate_range:
        return
    if strict:
        raise DegenerateRangeError(display.min_db, display.max_db)
    logger.warning(
        f"Display range min_db={display.min_db} max_db={display.max_db} "
        "is empty or inverted"
    )


def build_analysis_config(config: Dict[str, Any]) -> AnalysisConfig:
    section = config.get("analysis", {})
    return AnalysisConfig(
        fft_size=section.get("fft_size", 2048),
        window_function=section.get("window_function", "hann"),
    )


def build_noise_settings(config: Dict[str, Any]) -> NoiseSettings:
    section = config.get("noise", {})
    defaults = NoiseSettings()
    return NoiseSettings(
        noise_reduction=section.get("noise_reduction", defaults.noise_reduction),
        noise_threshold=float(section.get("noise_threshold", defaults.noise_threshold)),
        signal_enhancement=section.get("signal_enhancement", defaults.signal_enhancement),
        contrast_boost=float(section.get("contrast_boost", defaults.contrast_boost)),
        floor_db=float(section.get("floor_db", defaults.floor_db)),
        ceiling_db=float(section.get("ceiling_db", defaults.ceiling_db)),
    )


def build_display_settings(config: Dict[str, Any]) -> DisplaySettings:
    section = dict(config.get("display", {}))
    known = DisplaySettings.__dataclass_fields__
    unknown = sorted(set(section) - set(known))
    if unknown:
        logger.warning(f"Ignoring unknown display settings: {', '.join(unknown)}")
    return DisplaySettings(**{k: v for k, v in section.items() if k in known})


def build_annotation_defaults(config: Dict[str, Any]) -> AnnotationDefaults:
    section = config.get("annotations", {})
    defaults = AnnotationDefaults()
    return AnnotationDefaults(
        text=section.get("text", defaults.text),
        color=section.get("color", defaults.color),
        font_size=section.get("font_size", defaults.font_size),
    )
