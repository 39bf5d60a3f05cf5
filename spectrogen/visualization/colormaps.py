"""Discrete colormap palettes for spectrogram rendering."""

from typing import Dict, List, Tuple

import numpy as np
from PIL import ImageColor

from spectrogen.utils.errors import ConfigurationError

# Stops run from low intensity (t = 0) to high intensity (t = 1).
COLORMAPS: Dict[str, List[str]] = {
    # Academic grayscale: quiet is white, loud is black
    "grayscale": [
        "#ffffff", "#e0e0e0", "#c0c0c0", "#a0a0a0", "#808080",
        "#606060", "#404040", "#202020", "#000000",
    ],
    "viridis": [
        "#440154", "#482777", "#3f4a8a", "#31678e", "#26838f",
        "#1f9d8a", "#6cce5a", "#b6de2b", "#fee825",
    ],
    "plasma": [
        "#0d0887", "#5302a3", "#8b0aa5", "#b83289",
        "#db5c68", "#f48849", "#febd2a", "#f0f921",
    ],
    "inferno": [
        "#000004", "#1b0c41", "#4a0c6b", "#781c6d", "#a52c60",
        "#cf4446", "#ed6925", "#fb9b06", "#fcffa4",
    ],
    "magma": [
        "#000004", "#1c1044", "#4f127b", "#812581", "#b5367a",
        "#e55964", "#fb8761", "#fec287", "#fcfdbf",
    ],
}


def parse_color(color: str) -> Tuple[int, int, int]:
    """CSS color string (``"#3b82f6"``, ``"#fff"``, ``"red"``) as ``(r, g, b)``."""
    try:
        return ImageColor.getcolor(color, "RGB")
    except (ValueError, AttributeError) as e:
        raise ConfigurationError(f"Unrecognized color: {color!r}") from e


def available_colormaps() -> List[str]:
    return list(COLORMAPS)


def get_palette(name: str) -> np.ndarray:
    """
    Colormap stops as a ``(stops, 3)`` uint8 array.

    Raises:
        ConfigurationError: Unknown colormap name
    """
    stops = COLORMAPS.get(name)
    if stops is None:
        raise ConfigurationError(
            f"Unknown colormap: {name!r} (available: {', '.join(COLORMAPS)})",
            config_key="display.colormap",
        )
    return np.array([parse_color(stop) for stop in stops], dtype=np.uint8)
