"""
Annotation geometry and editing.

Hit-testing decides which overlay a pointer position refers to;
AnnotationStore holds the ordered overlay list and the current selection.
Defaults for new annotations are passed in explicitly.
"""

import itertools
import logging
import math
from typing import Callable, Iterable, List, Optional, Sequence

from spectrogen.core.models import Annotation, AnnotationDefaults, AnnotationType
from spectrogen.utils.errors import AnnotationError

TEXT_HIT_WIDTH: float = 150.0
TEXT_HIT_HEIGHT: float = 25.0
BOX_MARGIN: float = 5.0
LINE_TOLERANCE: float = 10.0
ARROWHEAD_TOLERANCE: float = 15.0

logger = logging.getLogger(__name__)


def point_segment_distance(
    px: float, py: float, x0: float, y0: float, x1: float, y1: float
) -> float:
    """Distance from (px, py) to the segment (x0, y0)-(x1, y1)."""
    dx = x1 - x0
    dy = y1 - y0
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - x0, py - y0)

    # Projection parameter, clamped to the segment ends
    param = ((px - x0) * dx + (py - y0) * dy) / length_sq
    param = max(0.0, min(1.0, param))
    return math.hypot(px - (x0 + param * dx), py - (y0 + param * dy))


def hit_test(annotation: Annotation, x: float, y: float) -> bool:
    """Whether canvas point (x, y) selects ``annotation``."""
    if annotation.type is AnnotationType.TEXT:
        return (
            annotation.x - BOX_MARGIN <= x <= annotation.x + TEXT_HIT_WIDTH
            and annotation.y - BOX_MARGIN <= y <= annotation.y + TEXT_HIT_HEIGHT
        )

    if annotation.type is AnnotationType.RECTANGLE:
        if not annotation.is_drawable:
            return False
        x0, y0, x1, y1 = annotation.bounds()
        return (
            x0 - BOX_MARGIN <= x <= x1 + BOX_MARGIN
            and y0 - BOX_MARGIN <= y <= y1 + BOX_MARGIN
        )

    if not annotation.has_endpoint:
        return False

    if annotation.x == annotation.end_x and annotation.y == annotation.end_y:
        return (
            abs(x - annotation.x) < LINE_TOLERANCE
            and abs(y - annotation.y) < LINE_TOLERANCE
        )

    distance = point_segment_distance(
        x, y, annotation.x, annotation.y, annotation.end_x, annotation.end_y
    )
    if distance < LINE_TOLERANCE:
        return True

    if annotation.type is AnnotationType.ARROW:
        return (
            abs(x - annotation.end_x) < ARROWHEAD_TOLERANCE
            and abs(y - annotation.end_y) < ARROWHEAD_TOLERANCE
        )
    return False


def annotation_at(
    annotations: Sequence[Annotation], x: float, y: float
) -> Optional[Annotation]:
    """Topmost annotation under (x, y); later entries are drawn on top."""
    for annotation in reversed(annotations):
        if hit_test(annotation, x, y):
            return annotation
    return None


class AnnotationStore:
    """
    Ordered list of annotations plus the selected id.

    Mutations happen in place; ``on_change`` is called after each one with
    the current list so a view can redraw.
    """

    def __init__(
        self,
        defaults: Optional[AnnotationDefaults] = None,
        annotations: Optional[Iterable[Annotation]] = None,
        on_change: Optional[Callable[[List[Annotation]], None]] = None,
    ):
        self.defaults = defaults or AnnotationDefaults()
        self._annotations: List[Annotation] = list(annotations or [])
        self._selected_id: Optional[str] = None
        self._on_change = on_change
        self._ids = itertools.count(1)

    @property
    def annotations(self) -> List[Annotation]:
        return list(self._annotations)

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def __len__(self) -> int:
        return len(self._annotations)

    def _next_id(self) -> str:
        existing = {a.id for a in self._annotations}
        while True:
            candidate = str(next(self._ids))
            if candidate not in existing:
                return candidate

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self.annotations)

    def get(self, annotation_id: str) -> Annotation:
        for annotation in self._annotations:
            if annotation.id == annotation_id:
                return annotation
        raise AnnotationError(
            f"No annotation with id {annotation_id!r}", annotation_id=annotation_id
        )

    def add_text(
        self,
        x: float,
        y: float,
        text: Optional[str] = None,
        color: Optional[str] = None,
        font_size: Optional[int] = None,
    ) -> Optional[Annotation]:
        """
        Place a text annotation. Blank text is ignored and returns None.
        """
        content = (text if text is not None else self.defaults.text).strip()
        if not content:
            return None
        annotation = Annotation(
            id=self._next_id(),
            type=AnnotationType.TEXT,
            x=x,
            y=y,
            text=content,
            color=color or self.defaults.color,
            font_size=font_size or self.defaults.font_size,
        )
        self._annotations.append(annotation)
        self._notify()
        return annotation

    def add_shape(
        self,
        kind: AnnotationType,
        start: Sequence[float],
        end: Sequence[float],
        color: Optional[str] = None,
    ) -> Annotation:
        """
        Add a line, rectangle or arrow from two clicked points.

        Rectangles store the second point as width/height relative to the first.
        """
        kind = AnnotationType(kind)
        if kind is AnnotationType.TEXT:
            raise AnnotationError("Use add_text for text annotations")

        x, y = start
        end_x, end_y = end
        annotation = Annotation(
            id=self._next_id(), type=kind, x=x, y=y, color=color or self.defaults.color
        )
        if kind is AnnotationType.RECTANGLE:
            annotation.width = end_x - x
            annotation.height = end_y - y
        else:
            annotation.end_x = end_x
            annotation.end_y = end_y

        self._annotations.append(annotation)
        self._notify()
        return annotation

    def move(self, annotation_id: str, x: float, y: float) -> Annotation:
        """
        Move the anchor to (x, y).

        Only the anchor moves; line and arrow end points stay put.
        """
        annotation = self.get(annotation_id)
        annotation.x = x
        annotation.y = y
        self._notify()
        return annotation

    def update(self, annotation_id: str, **changes) -> Annotation:
        """Edit fields (text, color, font_size, ...) of an annotation in place."""
        annotation = self.get(annotation_id)
        for key, value in changes.items():
            if key in ("id", "type") or key not in Annotation.__dataclass_fields__:
                raise AnnotationError(
                    f"Cannot update field {key!r}", annotation_id=annotation_id
                )
            setattr(annotation, key, value)
        self._notify()
        return annotation

    def remove(self, annotation_id: str) -> None:
        annotation = self.get(annotation_id)
        self._annotations.remove(annotation)
        if self._selected_id == annotation_id:
            self._selected_id = None
        self._notify()

    def clear(self) -> None:
        logger.debug(f"Clearing {len(self._annotations)} annotations")
        self._annotations.clear()
        self._selected_id = None
        self._notify()

    def select_at(self, x: float, y: float) -> Optional[Annotation]:
        """Select the topmost annotation under (x, y), or clear the selection."""
        annotation = annotation_at(self._annotations, x, y)
        self._selected_id = annotation.id if annotation else None
        return annotation

    def select(self, annotation_id: Optional[str]) -> None:
        if annotation_id is not None:
            self.get(annotation_id)
        self._selected_id = annotation_id
