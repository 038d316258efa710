"""
Tests for the in-memory Sudoku board
"""

import os
import sys
import unittest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.append(os.path.dirname(__file__))

from ink_sudoku import CellHighlight, Difficulty, SudokuBoard
from support import make_board, valid_solution


class TestBoardGeneration(unittest.TestCase):
    """Test puzzle generation"""

    def test_generated_solution_is_valid(self):
        board = SudokuBoard(Difficulty.EASY, seed=3)
        grid = board.solution_grid()
        digits = set(range(1, 10))
        for i in range(9):
            self.assertEqual(set(grid[i]), digits)
            self.assertEqual({grid[r][i] for r in range(9)}, digits)
        for br in range(0, 9, 3):
            for bc in range(0, 9, 3):
                block = {grid[r][c] for r in range(br, br + 3) for c in range(bc, bc + 3)}
                self.assertEqual(block, digits)

    def test_difficulty_controls_removed_cells(self):
        for difficulty in Difficulty:
            board = SudokuBoard(difficulty, seed=11)
            removed = sum(not given for row in board.given_mask() for given in row)
            self.assertEqual(removed, difficulty.cells_to_remove)

    def test_seed_is_reproducible(self):
        self.assertEqual(SudokuBoard(seed=5).solution_grid(), SudokuBoard(seed=5).solution_grid())

    def test_new_game_resets_state(self):
        board = SudokuBoard(Difficulty.HARD, seed=1)
        board.select(4, 4)
        board.new_game(Difficulty.EASY)
        self.assertEqual(board.difficulty, Difficulty.EASY)
        self.assertIsNone(board.selected_cell)
        self.assertTrue(all(cell.player_value is None for row in board.cells for cell in row))

    def test_from_grid_validates_shape(self):
        with self.assertRaises(ValueError):
            SudokuBoard.from_grid([[1] * 9] * 8, [[False] * 9] * 9)
        with self.assertRaises(ValueError):
            SudokuBoard.from_grid([[0] * 9] * 9, [[False] * 9] * 9)


class TestBoardMutation(unittest.TestCase):
    """Test placement and highlight mutators"""

    def setUp(self):
        self.board = make_board(given_cells={(0, 0), (4, 5)})

    def test_given_cells_are_immutable(self):
        for row, col in ((0, 0), (4, 5)):
            for digit in range(1, 10):
                self.board.place_value(row, col, digit)
                self.assertIsNone(self.board.cell_at(row, col).player_value)
            self.board.clear_value(row, col)
            self.assertEqual(self.board.cell_at(row, col).display_value, valid_solution()[row][col])

    def test_place_and_clear(self):
        self.board.place_value(1, 1, 7)
        cell = self.board.cell_at(1, 1)
        self.assertEqual(cell.player_value, 7)
        self.assertTrue(cell.is_filled)
        self.board.clear_value(1, 1)
        self.assertTrue(cell.is_empty)

    def test_invalid_values_rejected(self):
        for value in (0, 10, -1):
            with self.assertRaises(ValueError):
                self.board.place_value(1, 1, value)
        with self.assertRaises(ValueError):
            self.board.place_value(9, 0, 1)

    def test_highlight_change_is_reported(self):
        changes = []
        self.board.on_change = lambda r, c: changes.append((r, c))
        self.assertTrue(self.board.set_highlight(2, 3, CellHighlight.ACTIVE))
        self.assertFalse(self.board.set_highlight(2, 3, CellHighlight.ACTIVE))
        self.assertTrue(self.board.set_highlight(2, 3, CellHighlight.NONE))
        self.assertFalse(self.board.set_highlight(2, 3, CellHighlight.NONE))
        self.assertEqual(changes, [(2, 3), (2, 3)])

    def test_is_solved(self):
        solution = valid_solution()
        self.assertFalse(self.board.is_solved())
        for r in range(9):
            for c in range(9):
                self.board.place_value(r, c, solution[r][c])
        self.assertTrue(self.board.is_solved())
        wrong = solution[3][3] % 9 + 1
        self.board.place_value(3, 3, wrong)
        self.assertFalse(self.board.is_solved())

    def test_clear_selected(self):
        self.board.place_value(2, 2, 4)
        self.board.select(2, 2)
        self.board.clear_selected()
        self.assertIsNone(self.board.cell_at(2, 2).player_value)


if __name__ == '__main__':
    unittest.main()
