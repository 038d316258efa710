"""
Stroke capture: pointer samples -> strokes -> a settled drawing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .constants import IDLE_WINDOW
from .scheduler import ScheduledCall, Scheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrokePoint:
    x: float
    y: float
    timestamp: float = 0.0


@dataclass
class Stroke:
    """Ordered samples; append-only until the pointer lifts."""

    points: List[StrokePoint] = field(default_factory=list)
    finished: bool = False

    def append(self, point: StrokePoint) -> None:
        if self.finished:
            raise ValueError("Cannot extend a finished stroke")
        self.points.append(point)

    def finish(self) -> None:
        self.finished = True

    def path_length(self) -> float:
        return sum(
            math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(self.points, self.points[1:])
        )

    def endpoint_gap(self) -> float:
        if len(self.points) < 2:
            return 0.0
        first, last = self.points[0], self.points[-1]
        return math.hypot(last.x - first.x, last.y - first.y)

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def centroid(self) -> Tuple[float, float]:
        return (self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0

    def expanded(self, margin: float) -> "BoundingBox":
        return BoundingBox(self.min_x - margin, self.min_y - margin, self.max_x + margin, self.max_y + margin)


@dataclass
class Drawing:
    """Strokes captured since the surface was last cleared."""

    strokes: List[Stroke] = field(default_factory=list)

    @classmethod
    def from_points(cls, strokes: Sequence[Sequence[Tuple[float, float]]]) -> "Drawing":
        """Build a finished drawing from plain ``(x, y)`` sequences."""
        drawing = cls()
        for coords in strokes:
            stroke = Stroke([StrokePoint(float(x), float(y)) for x, y in coords], finished=True)
            if stroke.points:
                drawing.strokes.append(stroke)
        return drawing

    def points(self) -> List[StrokePoint]:
        return [p for stroke in self.strokes for p in stroke.points]

    def is_empty(self) -> bool:
        return not any(stroke.points for stroke in self.strokes)

    @property
    def bounds(self) -> Optional[BoundingBox]:
        pts = self.points()
        if not pts:
            return None
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        return BoundingBox(min(xs), min(ys), max(xs), max(ys))

    def ink_bounds(self, pen_width: float) -> Optional[BoundingBox]:
        """Bounds of the drawn ink: sample bounds grown by half the pen width."""
        bounds = self.bounds
        if bounds is None:
            return None
        return bounds.expanded(pen_width / 2.0)


class StrokeAggregator:
    """
    Collects pointer samples into a drawing and fires ``on_settle`` once the
    input has been idle for ``idle_window`` seconds after the last point.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_settle: Callable[[Drawing], None],
        idle_window: float = IDLE_WINDOW,
    ) -> None:
        self.scheduler = scheduler
        self.on_settle = on_settle
        self.idle_window = idle_window
        self.drawing = Drawing()
        self._current: Optional[Stroke] = None
        self._timer: Optional[ScheduledCall] = None
        self._last_point_at: Optional[float] = None

    @property
    def stroke_active(self) -> bool:
        return self._current is not None

    def begin_stroke(self) -> None:
        if self._current is not None:
            self.end_stroke()
        self._current = Stroke()
        self.drawing.strokes.append(self._current)
        self._cancel_timer()

    def append_point(self, point: StrokePoint) -> None:
        if self._current is None:
            self.begin_stroke()
        self._current.append(point)
        self._last_point_at = self.scheduler.now()
        self._restart_timer(self.idle_window)

    def end_stroke(self) -> None:
        if self._current is None:
            return
        self._current.finish()
        if not self._current.points:
            self.drawing.strokes.remove(self._current)
        self._current = None
        if self._last_point_at is None:
            return
        elapsed = self.scheduler.now() - self._last_point_at
        self._restart_timer(max(0.0, self.idle_window - elapsed))

    def reset(self) -> None:
        """Drop everything captured so far without settling."""
        self._cancel_timer()
        self._current = None
        self._last_point_at = None
        self.drawing = Drawing()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _restart_timer(self, delay: float) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(delay, self._settle)

    def _settle(self) -> None:
        self._timer = None
        if self._current is not None:
            # Pointer still down but idle; wait for more samples or the lift.
            return
        drawing, self.drawing = self.drawing, Drawing()
        if drawing.is_empty():
            logger.debug("Idle window elapsed on an empty drawing; nothing to settle")
            return
        logger.debug("Drawing settled with %d stroke(s)", len(drawing.strokes))
        self.on_settle(drawing)
