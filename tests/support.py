"""
Shared helpers for the test suite: a fixed valid puzzle and stub classifiers.
"""

import os
import sys
import threading

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from ink_sudoku import RecognitionCandidate, SudokuBoard


def valid_solution():
    """A fixed valid 9x9 solution grid."""
    return [[(r * 3 + r // 3 + c) % 9 + 1 for c in range(9)] for r in range(9)]


def make_board(given_cells=()):
    """Board over ``valid_solution`` with only ``given_cells`` pre-filled."""
    givens = [[(r, c) in given_cells for c in range(9)] for r in range(9)]
    return SudokuBoard.from_grid(valid_solution(), givens)


class StubClassifier:
    """Returns canned readings per configuration name (or for every config)."""

    def __init__(self, readings=None, per_config=None, error=None):
        self.readings = [RecognitionCandidate(t, c) for t, c in (readings or [])]
        self.per_config = {
            name: [RecognitionCandidate(t, c) for t, c in values]
            for name, values in (per_config or {}).items()
        }
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def recognize(self, bitmap, config):
        with self._lock:
            self.calls.append((config.name, bitmap.shape))
        if self.error is not None:
            raise self.error
        if config.name in self.per_config:
            return list(self.per_config[config.name])
        return list(self.readings)


class GatedClassifier(StubClassifier):
    """Blocks its first call until ``release`` is called."""

    def __init__(self, readings=None):
        super().__init__(readings)
        self.entered = threading.Event()
        self._gate = threading.Event()
        self._first = True

    def release(self):
        self._gate.set()

    def recognize(self, bitmap, config):
        with self._lock:
            first, self._first = self._first, False
        if first:
            self.entered.set()
            self._gate.wait(10.0)
        return super().recognize(bitmap, config)


def draw(pipeline, scheduler, strokes, step=0.01):
    """Feed ``strokes`` (lists of (x, y)) into the pipeline's input surface."""
    for stroke in strokes:
        pipeline.on_stroke_begin()
        for x, y in stroke:
            pipeline.on_stroke_point(x, y)
            scheduler.advance(step)
        pipeline.on_stroke_end()
