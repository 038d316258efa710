"""
Geometry-only fallback used when fusion yields no confident digit.

Only single-stroke drawings are judged, and only 1, 8 and 0 can come out of
it; everything else is left undetermined.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import CLOSED_LOOP_LIMIT, EIGHT_ASPECT_RANGE, TALL_ASPECT_LIMIT
from .strokes import Drawing


@dataclass(frozen=True)
class ShapeFeatures:
    aspect: float
    closedness: Optional[float]
    stroke_count: int


def shape_features(drawing: Drawing) -> Optional[ShapeFeatures]:
    """Aspect ratio (w / h) and closedness (end gap / path length) of a drawing."""
    bounds = drawing.bounds
    if bounds is None or bounds.height <= 0:
        return None
    strokes = [s for s in drawing.strokes if s.points]
    aspect = bounds.width / bounds.height
    closedness = None
    if len(strokes) == 1:
        length = strokes[0].path_length()
        if length > 0:
            closedness = strokes[0].endpoint_gap() / length
    return ShapeFeatures(aspect=aspect, closedness=closedness, stroke_count=len(strokes))


def classify_by_shape(drawing: Drawing) -> Optional[int]:
    features = shape_features(drawing)
    if features is None or features.stroke_count != 1:
        return None
    if features.aspect < TALL_ASPECT_LIMIT:
        return 1
    if features.closedness is not None and features.closedness < CLOSED_LOOP_LIMIT:
        low, high = EIGHT_ASPECT_RANGE
        if low < features.aspect < high:
            return 8
        return 0
    return None
