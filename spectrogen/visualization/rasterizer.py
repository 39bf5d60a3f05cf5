"""
Spectrogram rasterization and figure overlays.

Maps a decibel matrix through the display range and a discrete colormap
into RGBA pixels, then composes the publication figure with Pillow:
raster image, axes and grid, tick labels and axis titles, panel label,
and finally annotations in list order.
"""

import io
import logging
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from spectrogen.core.models import (
    Annotation,
    AnnotationType,
    DisplaySettings,
    PanelLabelPosition,
    SpectrogramMatrix,
)
from spectrogen.utils.errors import ConfigurationError
from spectrogen.visualization.colormaps import get_palette

BACKGROUND = (255, 255, 255, 255)
AXIS_COLOR = "#000000"
GRID_COLOR = "#e5e5e5"
LABEL_COLOR = "#374151"
SELECTION_COLOR = "#3b82f6"

TICK_COUNT = 10
TICK_LENGTH = 4
TICK_FONT_SIZE = 11
TITLE_FONT_SIZE = 12
DEFAULT_ANNOTATION_FONT_SIZE = 14
ARROWHEAD_LENGTH = 12.0
ARROWHEAD_ANGLE = math.pi / 6

logger = logging.getLogger(__name__)

Number = Union[float, np.ndarray]


def normalize(db: Number, min_db: float, max_db: float) -> Number:
    """
    Map decibels onto [0, 1] for colormap lookup.

    An inverted range (``max_db < min_db``) uses ``(max_db - db) / |span|``,
    so only values below ``max_db`` leave 0; an empty range maps everything
    to 0.5. The result is always clamped.
    """
    values = np.asarray(db, dtype=np.float64)
    span = max_db - min_db
    if span > 0:
        t = (values - min_db) / span
    elif span < 0:
        t = (max_db - values) / abs(span)
    else:
        t = np.full_like(values, 0.5)
    t = np.clip(t, 0.0, 1.0)
    return float(t) if t.ndim == 0 else t


def colormap_index(t: Number, stops: int) -> Union[int, np.ndarray]:
    """``floor(t * (stops - 1))`` clamped to a valid stop index."""
    index = np.clip(
        np.floor(np.asarray(t, dtype=np.float64) * (stops - 1)), 0, stops - 1
    ).astype(np.intp)
    return int(index) if index.ndim == 0 else index


def png_filename(panel_label: str) -> str:
    """Download name for a figure, e.g. ``spectrogram_A.png``."""
    safe = re.sub(r"[^\w.-]+", "_", (panel_label or "").strip()).strip("._")
    return f"spectrogram_{safe or 'panel'}.png"


def to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def export_png(image: Image.Image, directory: Path, panel_label: str) -> Path:
    """Write ``image`` as PNG into ``directory``, named by the panel label."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / png_filename(panel_label)
    image.save(path, format="PNG")
    logger.info(f"Saved spectrogram figure: {path}")
    return path


@lru_cache(maxsize=32)
def _font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


def _dashed_line(
    draw: ImageDraw.ImageDraw,
    start: Tuple[float, float],
    end: Tuple[float, float],
    fill: str,
    dash: float,
    gap: float,
    width: int = 1,
) -> None:
    x0, y0 = start
    x1, y1 = end
    length = math.hypot(x1 - x0, y1 - y0)
    if length == 0:
        return
    ux = (x1 - x0) / length
    uy = (y1 - y0) / length
    pos = 0.0
    while pos < length:
        stop = min(pos + dash, length)
        draw.line(
            [(x0 + ux * pos, y0 + uy * pos), (x0 + ux * stop, y0 + uy * stop)],
            fill=fill,
            width=width,
        )
        pos += dash + gap


def _dashed_rectangle(
    draw: ImageDraw.ImageDraw,
    box: Tuple[float, float, float, float],
    fill: str,
    dash: float,
    gap: float,
    width: int = 1,
) -> None:
    x0, y0, x1, y1 = box
    corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1), (x0, y0)]
    for start, end in zip(corners, corners[1:]):
        _dashed_line(draw, start, end, fill, dash, gap, width)


class Rasterizer:
    """
    Turns a SpectrogramMatrix into a figure image.

    ``render_plot`` produces only the colormapped pixel block; ``render``
    composes the full canvas with overlays.
    """

    def render_plot(
        self, matrix: SpectrogramMatrix, display: DisplaySettings
    ) -> np.ndarray:
        """
        Colormapped plot area as an RGBA uint8 array of shape
        ``(plot_height, plot_width, 4)``.

        Column x shows frame ``floor(x / width * num_frames)``; row y shows
        bin ``floor((height - y) / height * num_bins)``, so frequency grows
        upward. Row 0 would address one past the last bin and is clamped to it.
        """
        plot_width, plot_height = display.plot_size
        if plot_width <= 0 or plot_height <= 0:
            raise ConfigurationError(
                f"Canvas {display.width}x{display.height} leaves no room for the plot",
                config_key="display.width",
            )
        if display.has_degenerate_range:
            logger.warning(
                f"Display range is degenerate (min_db={display.min_db}, "
                f"max_db={display.max_db}); using fallback normalization"
            )

        palette = get_palette(display.colormap)
        num_frames = matrix.num_frames
        num_bins = matrix.num_bins

        cols = np.floor(np.arange(plot_width) / plot_width * num_frames).astype(np.intp)
        cols = np.minimum(cols, num_frames - 1)
        rows = np.floor(
            (plot_height - np.arange(plot_height)) / plot_height * num_bins
        ).astype(np.intp)
        rows = np.minimum(rows, num_bins - 1)

        db = matrix.values[cols[None, :], rows[:, None]]
        t = normalize(db, display.min_db, display.max_db)
        index = colormap_index(t, len(palette))

        pixels = np.empty((plot_height, plot_width, 4), dtype=np.uint8)
        pixels[..., :3] = palette[index]
        pixels[..., 3] = 255
        return pixels

    def render(
        self,
        matrix: SpectrogramMatrix,
        display: DisplaySettings,
        annotations: Iterable[Annotation] = (),
        selected_id: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Image.Image:
        """
        Full figure as an RGBA image of ``display.width x display.height``.

        Args:
            matrix: Spectrogram to draw
            display: Rendering options
            annotations: Overlays, drawn in order
            selected_id: Annotation to highlight
            duration: Time-axis extent in seconds (defaults to the source duration)
        """
        canvas = Image.new("RGBA", (display.width, display.height), BACKGROUND)
        margins = display.margins
        plot = Image.fromarray(self.render_plot(matrix, display))
        canvas.paste(plot, (margins["left"], margins["top"]))

        draw = ImageDraw.Draw(canvas)
        if display.show_axes:
            self._draw_axes(draw, display)
        if display.show_grid:
            self._draw_grid(draw, display)
        if display.academic_style:
            self._draw_ticks(
                draw,
                display,
                duration if duration is not None else matrix.duration,
                display.max_freq if display.max_freq is not None else matrix.max_frequency,
            )
            self._draw_titles(canvas, draw, display)
        if display.panel_label:
            self._draw_panel_label(draw, display)

        for annotation in annotations:
            self._draw_annotation(draw, annotation, annotation.id == selected_id)

        return canvas

    # -- overlays ---------------------------------------------------------

    def _draw_axes(self, draw: ImageDraw.ImageDraw, display: DisplaySettings) -> None:
        m = display.margins
        plot_width, plot_height = display.plot_size
        bottom = m["top"] + plot_height
        draw.line(
            [(m["left"], m["top"]), (m["left"], bottom), (m["left"] + plot_width, bottom)],
            fill=AXIS_COLOR,
            width=1,
        )

    def _draw_grid(self, draw: ImageDraw.ImageDraw, display: DisplaySettings) -> None:
        m = display.margins
        plot_width, plot_height = display.plot_size
        for i in range(1, TICK_COUNT):
            x = m["left"] + plot_width * i / TICK_COUNT
            _dashed_line(draw, (x, m["top"]), (x, m["top"] + plot_height), GRID_COLOR, 2, 2)
            y = m["top"] + plot_height * i / TICK_COUNT
            _dashed_line(draw, (m["left"], y), (m["left"] + plot_width, y), GRID_COLOR, 2, 2)

    def _draw_ticks(
        self,
        draw: ImageDraw.ImageDraw,
        display: DisplaySettings,
        duration: float,
        max_freq: float,
    ) -> None:
        m = display.margins
        plot_width, plot_height = display.plot_size
        bottom = m["top"] + plot_height
        font = _font(TICK_FONT_SIZE)

        for i in range(TICK_COUNT + 1):
            x = m["left"] + plot_width * i / TICK_COUNT
            seconds = duration * i / TICK_COUNT
            label = f"{seconds:.1f}" if display.time_unit == "s" else f"{seconds * 1000:.0f}"
            draw.text((x, bottom + 20), label, fill=LABEL_COLOR, font=font, anchor="ms")
            draw.line([(x, bottom), (x, bottom + TICK_LENGTH)], fill=AXIS_COLOR)

        for i in range(TICK_COUNT + 1):
            y = bottom - plot_height * i / TICK_COUNT
            hertz = max_freq * i / TICK_COUNT
            label = f"{hertz / 1000:.1f}" if display.freq_unit == "kHz" else f"{hertz:.0f}"
            draw.text((m["left"] - 8, y), label, fill=LABEL_COLOR, font=font, anchor="rm")
            draw.line([(m["left"] - TICK_LENGTH, y), (m["left"], y)], fill=AXIS_COLOR)

    def _draw_titles(
        self,
        canvas: Image.Image,
        draw: ImageDraw.ImageDraw,
        display: DisplaySettings,
    ) -> None:
        m = display.margins
        _, plot_height = display.plot_size
        font = _font(TITLE_FONT_SIZE)

        draw.text(
            (display.width / 2, m["top"] + plot_height + 45),
            f"Time ({display.time_unit})",
            fill=LABEL_COLOR,
            font=font,
            anchor="mm",
        )

        # Vertical title: draw horizontally on a scratch image, then rotate
        title = f"Frequency ({display.freq_unit})"
        left, top, right, bottom = (int(round(v)) for v in font.getbbox(title))
        scratch = Image.new("RGBA", (right - left + 2, bottom - top + 2), (0, 0, 0, 0))
        ImageDraw.Draw(scratch).text((1 - left, 1 - top), title, fill=LABEL_COLOR, font=font)
        rotated = scratch.rotate(90, expand=True)
        canvas.alpha_composite(
            rotated,
            (
                max(0, 15 - rotated.width // 2),
                max(0, display.height // 2 - rotated.height // 2),
            ),
        )

    def panel_label_anchor(self, display: DisplaySettings) -> Tuple[float, float, str]:
        """Resolve the panel label position to ``(x, y, pillow_anchor)``."""
        m = display.margins
        plot_width, plot_height = display.plot_size
        position = display.panel_label_position

        if position is PanelLabelPosition.TOP_LEFT:
            return m["left"] + 10, m["top"] + 10, "lt"
        if position is PanelLabelPosition.TOP_RIGHT:
            return m["left"] + plot_width - 30, m["top"] + 10, "rt"
        if position is PanelLabelPosition.BOTTOM_LEFT:
            return m["left"] + 10, m["top"] + plot_height - 30, "lt"
        if position is PanelLabelPosition.BOTTOM_RIGHT:
            return m["left"] + plot_width - 30, m["top"] + plot_height - 30, "rt"
        return display.panel_label_x, display.panel_label_y, "lt"

    def _draw_panel_label(
        self, draw: ImageDraw.ImageDraw, display: DisplaySettings
    ) -> None:
        x, y, anchor = self.panel_label_anchor(display)
        draw.text(
            (x, y),
            display.panel_label,
            fill=display.panel_label_color,
            font=_font(int(display.panel_label_size), bold=True),
            anchor=anchor,
        )

    def _draw_annotation(
        self,
        draw: ImageDraw.ImageDraw,
        annotation: Annotation,
        selected: bool,
    ) -> None:
        if not annotation.is_drawable:
            logger.debug(f"Skipping incomplete annotation {annotation.id}")
            return

        if selected:
            self._draw_selection(draw, annotation)

        x, y = annotation.x, annotation.y
        color = annotation.color

        if annotation.type is AnnotationType.TEXT:
            size = annotation.font_size or DEFAULT_ANNOTATION_FONT_SIZE
            draw.text((x, y), annotation.text, fill=color, font=_font(int(size)), anchor="lt")
        elif annotation.type is AnnotationType.RECTANGLE:
            draw.rectangle(annotation.bounds(), outline=color, width=1)
        else:
            end = (annotation.end_x, annotation.end_y)
            draw.line([(x, y), end], fill=color, width=1)
            if annotation.type is AnnotationType.ARROW:
                for stroke in self._arrowhead(x, y, *end):
                    draw.line([end, stroke], fill=color, width=1)

    def _arrowhead(
        self, x: float, y: float, end_x: float, end_y: float
    ) -> Sequence[Tuple[float, float]]:
        angle = math.atan2(end_y - y, end_x - x)
        return [
            (
                end_x - ARROWHEAD_LENGTH * math.cos(angle - side * ARROWHEAD_ANGLE),
                end_y - ARROWHEAD_LENGTH * math.sin(angle - side * ARROWHEAD_ANGLE),
            )
            for side in (1, -1)
        ]

    def _draw_selection(self, draw: ImageDraw.ImageDraw, annotation: Annotation) -> None:
        x, y = annotation.x, annotation.y
        if annotation.type is AnnotationType.RECTANGLE:
            x0, y0, x1, y1 = annotation.bounds()
            boxes = [(x0 - 3, y0 - 3, x1 + 3, y1 + 3)]
        else:
            boxes = [(x - 3, y - 3, x + 3, y + 3)]
            if annotation.type is not AnnotationType.TEXT:
                ex, ey = annotation.end_x, annotation.end_y
                boxes.append((ex - 3, ey - 3, ex + 3, ey + 3))
        for box in boxes:
            _dashed_rectangle(draw, box, SELECTION_COLOR, 4, 4, width=2)
