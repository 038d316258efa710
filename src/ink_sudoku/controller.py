"""
Placement and highlight state machine.

Per cell: none -> active (target resolved) -> correct | wrong | none.
Every non-none state has exactly one pending revert; a new transition on the
same cell replaces the pending revert instead of stacking another.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple

from .board import CellCoordinate, CellHighlight
from .constants import PipelineConfig
from .scheduler import ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

HighlightListener = Callable[[int, int, CellHighlight], None]


class PlacementController:
    def __init__(
        self,
        board,
        scheduler: Scheduler,
        config: Optional[PipelineConfig] = None,
        on_highlight_changed: Optional[HighlightListener] = None,
    ) -> None:
        self.board = board
        self.scheduler = scheduler
        self.config = config or PipelineConfig()
        self.on_highlight_changed = on_highlight_changed
        self._timers: Dict[Tuple[int, int], ScheduledCall] = {}

    def pending_reverts(self) -> int:
        return sum(1 for handle in self._timers.values() if handle.pending)

    def mark_active(self, cell: CellCoordinate) -> None:
        """Show that the cell is being processed, before recognition finishes."""
        self._transition(cell, CellHighlight.ACTIVE, self.config.active_timeout)

    def apply(self, cell: CellCoordinate, digit: Optional[int]) -> Optional[bool]:
        """
        Place ``digit`` and flash correct/wrong, or drop back to none when no
        digit was resolved. Returns whether the placement was correct, or
        ``None`` when nothing was placed.
        """
        current = self.board.cell_at(cell.row, cell.col)
        if digit is None or current.is_given:
            self.revert(cell)
            return None
        self.board.place_value(cell.row, cell.col, digit)
        correct = digit == current.solution
        logger.info("Placed %d at (%d, %d): %s", digit, cell.row, cell.col, "correct" if correct else "wrong")
        if correct:
            self._transition(cell, CellHighlight.CORRECT, self.config.correct_revert_delay)
        else:
            self._transition(
                cell,
                CellHighlight.WRONG,
                self.config.wrong_revert_delay,
                clear_value=digit if self.config.clear_wrong_on_revert else None,
            )
        return correct

    def revert(self, cell: CellCoordinate) -> None:
        """Back to none; a no-op for a cell already there."""
        self._transition(cell, CellHighlight.NONE)

    def cancel_all(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def _transition(
        self,
        cell: CellCoordinate,
        state: CellHighlight,
        revert_after: Optional[float] = None,
        clear_value: Optional[int] = None,
    ) -> None:
        key = (cell.row, cell.col)
        pending = self._timers.pop(key, None)
        if pending is not None:
            pending.cancel()
        if self.board.set_highlight(cell.row, cell.col, state):
            logger.debug("Cell (%d, %d) -> %s", cell.row, cell.col, state.value)
            if self.on_highlight_changed is not None:
                self.on_highlight_changed(cell.row, cell.col, state)
        if state is not CellHighlight.NONE and revert_after is not None:
            self._timers[key] = self.scheduler.call_later(
                revert_after, lambda: self._auto_revert(cell, clear_value)
            )

    def _auto_revert(self, cell: CellCoordinate, clear_value: Optional[int]) -> None:
        self._timers.pop((cell.row, cell.col), None)
        if clear_value is not None and self.board.cell_at(cell.row, cell.col).player_value == clear_value:
            self.board.clear_value(cell.row, cell.col)
        self._transition(cell, CellHighlight.NONE)
