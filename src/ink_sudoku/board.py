"""
In-memory 9x9 puzzle board: the grid/state owner the pipeline writes into.
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .constants import GRID_SIZE


class CellHighlight(enum.Enum):
    NONE = "none"
    ACTIVE = "active"
    CORRECT = "correct"
    WRONG = "wrong"


class Difficulty(enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def cells_to_remove(self) -> int:
        return {"easy": 35, "medium": 45, "hard": 55}[self.value]


@dataclass(frozen=True)
class CellCoordinate:
    row: int
    col: int

    def __post_init__(self) -> None:
        if not (0 <= self.row < GRID_SIZE and 0 <= self.col < GRID_SIZE):
            raise ValueError(f"Cell ({self.row}, {self.col}) is outside the grid")


@dataclass
class Cell:
    row: int
    col: int
    solution: int
    is_given: bool
    player_value: Optional[int] = None
    highlight: CellHighlight = CellHighlight.NONE

    @property
    def is_empty(self) -> bool:
        return not self.is_given and self.player_value is None

    @property
    def is_correct(self) -> bool:
        return self.player_value == self.solution

    @property
    def is_filled(self) -> bool:
        return self.is_given or self.player_value is not None

    @property
    def display_value(self) -> Optional[int]:
        return self.solution if self.is_given else self.player_value


def _check_value(value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 9:
        raise ValueError(f"Digit must be in 1..9, got {value!r}")


def _is_valid(grid: List[List[int]], row: int, col: int, num: int) -> bool:
    if num in grid[row]:
        return False
    if any(grid[r][col] == num for r in range(GRID_SIZE)):
        return False
    br, bc = (row // 3) * 3, (col // 3) * 3
    for r in range(br, br + 3):
        for c in range(bc, bc + 3):
            if grid[r][c] == num:
                return False
    return True


def _fill_grid(grid: List[List[int]], rng: random.Random) -> bool:
    """Randomised backtracking fill of every zero cell."""
    for r in range(GRID_SIZE):
        for c in range(GRID_SIZE):
            if grid[r][c] == 0:
                numbers = list(range(1, 10))
                rng.shuffle(numbers)
                for n in numbers:
                    if _is_valid(grid, r, c, n):
                        grid[r][c] = n
                        if _fill_grid(grid, rng):
                            return True
                        grid[r][c] = 0
                return False
    return True


class SudokuBoard:
    """
    Owns solution, given mask, player values and highlights.

    Uniqueness of the generated puzzle's solution is not checked; the player
    is judged against the stored solution grid.
    """

    def __init__(self, difficulty: Difficulty = Difficulty.MEDIUM, seed: Optional[int] = None) -> None:
        self.difficulty = difficulty
        self._rng = random.Random(seed)
        self.cells: List[List[Cell]] = []
        self.selected_cell: Optional[Tuple[int, int]] = None
        self.on_change: Optional[Callable[[int, int], None]] = None
        self._generate()

    @classmethod
    def from_grid(cls, solution: Sequence[Sequence[int]], givens: Sequence[Sequence[bool]]) -> "SudokuBoard":
        """Board over a fixed solution grid and given mask."""
        board = cls.__new__(cls)
        board.difficulty = Difficulty.MEDIUM
        board._rng = random.Random()
        board.selected_cell = None
        board.on_change = None
        board._load(solution, givens)
        return board

    def _load(self, solution: Sequence[Sequence[int]], givens: Sequence[Sequence[bool]]) -> None:
        if len(solution) != GRID_SIZE or any(len(row) != GRID_SIZE for row in solution):
            raise ValueError("Solution must be 9x9")
        if len(givens) != GRID_SIZE or any(len(row) != GRID_SIZE for row in givens):
            raise ValueError("Given mask must be 9x9")
        for row in solution:
            for value in row:
                _check_value(int(value))
        self.cells = [
            [Cell(r, c, int(solution[r][c]), bool(givens[r][c])) for c in range(GRID_SIZE)]
            for r in range(GRID_SIZE)
        ]

    def _generate(self) -> None:
        grid = [[0] * GRID_SIZE for _ in range(GRID_SIZE)]
        _fill_grid(grid, self._rng)
        removed = set(self._rng.sample(range(GRID_SIZE * GRID_SIZE), self.difficulty.cells_to_remove))
        givens = [[(r * GRID_SIZE + c) not in removed for c in range(GRID_SIZE)] for r in range(GRID_SIZE)]
        self._load(grid, givens)

    def new_game(self, difficulty: Optional[Difficulty] = None) -> None:
        if difficulty is not None:
            self.difficulty = difficulty
        self.selected_cell = None
        self._generate()

    def _notify(self, row: int, col: int) -> None:
        if self.on_change is not None:
            self.on_change(row, col)

    def cell_at(self, row: int, col: int) -> Cell:
        CellCoordinate(row, col)
        return self.cells[row][col]

    def place_value(self, row: int, col: int, value: int) -> None:
        """Write a player value; given cells are left untouched."""
        _check_value(value)
        cell = self.cell_at(row, col)
        if cell.is_given:
            return
        cell.player_value = value
        self._notify(row, col)

    def clear_value(self, row: int, col: int) -> None:
        cell = self.cell_at(row, col)
        if cell.is_given or cell.player_value is None:
            return
        cell.player_value = None
        self._notify(row, col)

    def set_highlight(self, row: int, col: int, state: CellHighlight) -> bool:
        """Returns whether the highlight actually changed."""
        cell = self.cell_at(row, col)
        state = CellHighlight(state)
        if cell.highlight is state:
            return False
        cell.highlight = state
        self._notify(row, col)
        return True

    def is_solved(self) -> bool:
        return all(
            cell.is_given or cell.player_value == cell.solution
            for row in self.cells
            for cell in row
        )

    def select(self, row: int, col: int) -> None:
        CellCoordinate(row, col)
        self.selected_cell = (row, col)

    def clear_selected(self) -> None:
        if self.selected_cell is None:
            return
        self.clear_value(*self.selected_cell)

    def solution_grid(self) -> List[List[int]]:
        return [[cell.solution for cell in row] for row in self.cells]

    def given_mask(self) -> List[List[bool]]:
        return [[cell.is_given for cell in row] for row in self.cells]
