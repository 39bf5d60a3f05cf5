"""Visualization module: colormaps, rasterization and annotation overlays."""

from spectrogen.visualization.annotations import (
    AnnotationStore,
    annotation_at,
    hit_test,
)
from spectrogen.visualization.colormaps import COLORMAPS, get_palette
from spectrogen.visualization.rasterizer import (
    Rasterizer,
    colormap_index,
    export_png,
    normalize,
)

__all__ = [
    "AnnotationStore",
    "annotation_at",
    "hit_test",
    "COLORMAPS",
    "get_palette",
    "Rasterizer",
    "colormap_index",
    "export_png",
    "normalize",
]
