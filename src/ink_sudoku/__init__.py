"""
Handwritten digit entry for a 9x9 Sudoku grid.

Pen strokes drawn anywhere over the grid are collected into a drawing,
recognised as a digit (classifier fusion with a geometric fallback), placed
into the cell under the drawing and flashed correct/wrong.
"""

from .board import Cell, CellCoordinate, CellHighlight, Difficulty, SudokuBoard
from .constants import ClassifierConfig, PipelineConfig, load_config
from .pipeline import InkPipeline, SettleOutcome
from .recognition import FusedResult, FusionEngine, RecognitionCandidate, fuse_candidates
from .scheduler import ManualScheduler, TkScheduler
from .strokes import Drawing, Stroke, StrokeAggregator, StrokePoint
from .targeting import GridGeometry, resolve_target

__version__ = "1.0.0"

__all__ = [
    "Cell",
    "CellCoordinate",
    "CellHighlight",
    "ClassifierConfig",
    "Difficulty",
    "Drawing",
    "FusedResult",
    "FusionEngine",
    "GridGeometry",
    "InkPipeline",
    "ManualScheduler",
    "PipelineConfig",
    "RecognitionCandidate",
    "SettleOutcome",
    "Stroke",
    "StrokeAggregator",
    "StrokePoint",
    "SudokuBoard",
    "TkScheduler",
    "fuse_candidates",
    "load_config",
    "resolve_target",
]
