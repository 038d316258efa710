"""
High-level pipeline: stroke input -> settle -> target + recognition ->
placement and highlights.

Everything that touches the board runs on the owner thread (the one calling
the ``on_stroke_*`` methods, ``pump`` and the scheduler callbacks).
Rasterising and classification run on a worker pool; their outcomes come
back through an inbox queue and are applied by ``pump`` in arrival order.
Each settle gets a new generation number and outcomes from a superseded
generation are dropped. ``on_drawing_settled(generation)`` tags the ink that
was just consumed; ``on_surface_should_clear(generation)`` asks the UI to
remove the ink of that drawing and of any earlier ones, never ink drawn
after it.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .board import CellCoordinate, CellHighlight, Difficulty
from .constants import CONFUSION_TABLE, PipelineConfig
from .controller import PlacementController
from .errors import GivenCellProtected, InkPipelineError, LowConfidenceUnresolved, OutOfBounds, RenderFailure
from .raster import Rasterizer
from .recognition import FusedResult, FusionEngine
from .scheduler import Scheduler
from .shape import classify_by_shape
from .strokes import Drawing, StrokeAggregator, StrokePoint
from .targeting import GridGeometry, resolve_target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettleOutcome:
    """What a worker found for one settled drawing."""

    generation: int
    target: CellCoordinate
    fused: FusedResult = FusedResult()
    fallback_digit: Optional[int] = None
    digit: Optional[int] = None
    source: str = "none"
    error: Optional[InkPipelineError] = None


def resolve_digit(fused: FusedResult, drawing: Drawing, threshold: float) -> Tuple[Optional[int], Optional[int], str]:
    """
    Fused digit when it clears ``threshold``, else the shape fallback.
    Returns ``(digit, fallback_digit, source)``.
    """
    if fused.digit is not None and fused.confidence >= threshold:
        return fused.digit, None, "fusion"
    fallback = classify_by_shape(drawing)
    if fallback is not None and 1 <= fallback <= 9:
        return fallback, fallback, "shape"
    return None, fallback, "none"


class InkPipeline:
    def __init__(
        self,
        board,
        classifier,
        geometry: GridGeometry,
        scheduler: Scheduler,
        config: Optional[PipelineConfig] = None,
        on_cell_highlight_changed: Optional[Callable[[int, int, CellHighlight], None]] = None,
        on_surface_should_clear: Optional[Callable[[int], None]] = None,
        on_drawing_settled: Optional[Callable[[int], None]] = None,
        on_solved: Optional[Callable[[], None]] = None,
        on_outcome: Optional[Callable[[SettleOutcome], None]] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.board = board
        self.geometry = geometry
        self.scheduler = scheduler
        self.config = config or PipelineConfig()
        self.on_surface_should_clear = on_surface_should_clear
        self.on_drawing_settled = on_drawing_settled
        self.on_solved = on_solved
        self.on_outcome = on_outcome

        self.rasterizer = Rasterizer(
            self.config.bitmap_size, self.config.bitmap_padding, self.config.ink_width, self.config.pen_width
        )
        self.fusion = FusionEngine(
            classifier,
            self.config.classifier_configs,
            CONFUSION_TABLE,
            self.config.confusion_discount,
        )
        self.controller = PlacementController(board, scheduler, self.config, on_cell_highlight_changed)
        self.aggregator = StrokeAggregator(scheduler, self._on_settle, self.config.idle_window)

        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="ink-pipeline"
        )
        self._inbox: "queue.Queue[SettleOutcome]" = queue.Queue()
        self._in_flight = 0
        self._in_flight_cond = threading.Condition()
        self._generation = 0
        self._pending: Optional[Tuple[int, CellCoordinate]] = None
        self._solved_reported = False

    @property
    def generation(self) -> int:
        return self._generation

    def set_classifier(self, classifier) -> None:
        """Swap in a classifier once it has finished loading."""
        self.fusion.classifier = classifier

    # ----- input surface -------------------------------------------------

    def on_stroke_begin(self) -> None:
        self.aggregator.begin_stroke()

    def on_stroke_point(self, x: float, y: float, timestamp: Optional[float] = None) -> None:
        if timestamp is None:
            timestamp = self.scheduler.now()
        self.aggregator.append_point(StrokePoint(float(x), float(y), float(timestamp)))

    def on_stroke_end(self) -> None:
        self.aggregator.end_stroke()

    # ----- settle --------------------------------------------------------

    def _on_settle(self, drawing: Drawing) -> None:
        self._generation += 1
        generation = self._generation
        if self.on_drawing_settled is not None:
            self.on_drawing_settled(generation)
        previous, self._pending = self._pending, None
        try:
            target = resolve_target(drawing, self.geometry, self.board)
        except (OutOfBounds, GivenCellProtected, RenderFailure) as exc:
            logger.debug("Settle %d declined: %s", generation, exc)
            self._release(previous)
            self._clear_surface(generation)
            return

        if previous is not None and previous[1] != target:
            self._release(previous)
        self.controller.mark_active(target)
        self._pending = (generation, target)
        logger.debug("Settle %d targets (%d, %d)", generation, target.row, target.col)

        with self._in_flight_cond:
            self._in_flight += 1
        future = self._executor.submit(self._recognize, generation, target, drawing)
        future.add_done_callback(lambda f: self._deliver(f, generation, target))

    def _release(self, pending: Optional[Tuple[int, CellCoordinate]]) -> None:
        """Drop the active highlight of a superseded settle."""
        if pending is not None:
            logger.debug("Settle %d superseded", pending[0])
            self.controller.revert(pending[1])

    # ----- worker side ---------------------------------------------------

    def _recognize(self, generation: int, target: CellCoordinate, drawing: Drawing) -> SettleOutcome:
        try:
            bitmap = self.rasterizer.rasterize(drawing)
        except RenderFailure as exc:
            return SettleOutcome(generation, target, error=exc)
        fused = self.fusion.classify(bitmap)
        digit, fallback, source = resolve_digit(fused, drawing, self.config.accept_threshold)
        error = None
        if digit is None:
            error = LowConfidenceUnresolved(
                f"fused={fused.digit}@{fused.confidence:.2f} fallback={fallback}"
            )
        return SettleOutcome(generation, target, fused, fallback, digit, source, error)

    def _deliver(self, future: Future, generation: int, target: CellCoordinate) -> None:
        # Runs on whichever thread finished the future; only hands off.
        try:
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                logger.error("Recognition for settle %d crashed: %s", generation, exc)
                self._inbox.put(SettleOutcome(generation, target, error=InkPipelineError(str(exc))))
            else:
                self._inbox.put(future.result())
        finally:
            with self._in_flight_cond:
                self._in_flight -= 1
                self._in_flight_cond.notify_all()

    # ----- owner side ----------------------------------------------------

    def pump(self) -> int:
        """Apply every outcome that has arrived so far. Owner thread only."""
        applied = 0
        while True:
            try:
                outcome = self._inbox.get_nowait()
            except queue.Empty:
                return applied
            self._apply(outcome)
            applied += 1

    def join(self, timeout: Optional[float] = None) -> int:
        """Wait for in-flight recognition, then apply the results."""
        with self._in_flight_cond:
            self._in_flight_cond.wait_for(lambda: self._in_flight == 0, timeout=timeout)
        return self.pump()

    def _apply(self, outcome: SettleOutcome) -> None:
        if outcome.generation != self._generation:
            logger.debug("Discarding stale outcome %d (current %d)", outcome.generation, self._generation)
            return
        self._pending = None
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        if outcome.digit is None:
            logger.debug("Settle %d unresolved: %s", outcome.generation, outcome.error)
            self.controller.revert(outcome.target)
        else:
            logger.debug("Settle %d resolved %d via %s", outcome.generation, outcome.digit, outcome.source)
            self.controller.apply(outcome.target, outcome.digit)
            self._check_solved()
        self._clear_surface(outcome.generation)

    def _clear_surface(self, generation: int) -> None:
        """Ask the UI to drop the ink of every drawing up to ``generation``."""
        if self.on_surface_should_clear is not None:
            self.on_surface_should_clear(generation)

    def _check_solved(self) -> None:
        if self._solved_reported or not self.board.is_solved():
            return
        self._solved_reported = True
        logger.info("Puzzle solved")
        if self.on_solved is not None:
            self.on_solved()

    # ----- number pad / game control ------------------------------------

    def place_manual(self, digit: int) -> Optional[bool]:
        """Place ``digit`` in the selected cell, as if it had been drawn there."""
        if self.board.selected_cell is None:
            return None
        row, col = self.board.selected_cell
        if self.board.cell_at(row, col).is_given:
            return None
        result = self.controller.apply(CellCoordinate(row, col), digit)
        self._check_solved()
        return result

    def clear_selected(self) -> None:
        self.board.clear_selected()

    def new_game(self, difficulty: Optional[Difficulty] = None) -> None:
        """Fresh puzzle; anything still in flight becomes stale."""
        self._generation += 1
        self._pending = None
        self._solved_reported = False
        self.controller.cancel_all()
        self.aggregator.reset()
        self.board.new_game(difficulty)
        # The discarded partial drawing goes with it.
        if self.on_drawing_settled is not None:
            self.on_drawing_settled(self._generation)
        self._clear_surface(self._generation)

    def shutdown(self) -> None:
        self.controller.cancel_all()
        self.aggregator.reset()
        self._executor.shutdown(wait=False)
        self.fusion.shutdown()
