"""
Mapping a drawing's position to the grid cell it was written over.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .board import CellCoordinate
from .constants import GRID_SIZE
from .errors import GivenCellProtected, OutOfBounds, RenderFailure
from .strokes import Drawing


@dataclass(frozen=True)
class GridGeometry:
    """Where the grid sits on the capture surface."""

    origin: Tuple[float, float] = (0.0, 0.0)
    cell_size: float = 60.0

    def __post_init__(self) -> None:
        if self.cell_size <= 0:
            raise ValueError("cell_size must be positive")

    def cell_index(self, x: float, y: float) -> Tuple[int, int]:
        """Floor ``(x, y)`` to ``(row, col)`` without bounds checking."""
        col = int(math.floor((x - self.origin[0]) / self.cell_size))
        row = int(math.floor((y - self.origin[1]) / self.cell_size))
        return row, col

    def cell_rect(self, row: int, col: int) -> Tuple[float, float, float, float]:
        x0 = self.origin[0] + col * self.cell_size
        y0 = self.origin[1] + row * self.cell_size
        return x0, y0, x0 + self.cell_size, y0 + self.cell_size


def resolve_target(drawing: Drawing, geometry: GridGeometry, board: Optional[object] = None) -> CellCoordinate:
    """
    Cell under the drawing's bounding-box centroid.

    Raises ``OutOfBounds`` when the centroid is off the grid and
    ``GivenCellProtected`` when ``board`` marks the cell as a given.
    """
    bounds = drawing.bounds
    if bounds is None:
        raise RenderFailure("Cannot target an empty drawing")
    row, col = geometry.cell_index(*bounds.centroid)
    if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
        raise OutOfBounds(row, col)
    if board is not None and board.cell_at(row, col).is_given:
        raise GivenCellProtected(row, col)
    return CellCoordinate(row, col)
