"""
GUI Application for handwritten Sudoku entry
Draw a digit anywhere over the grid; it is recognised and placed into the
cell under the drawing
"""

import tkinter as tk
from tkinter import ttk, messagebox
import os
import queue
import sys
import threading
from typing import Dict, List, Optional, Tuple

# Add src directory to path for imports
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from ink_sudoku import (
    CellHighlight,
    Difficulty,
    GridGeometry,
    InkPipeline,
    PipelineConfig,
    SudokuBoard,
    TkScheduler,
)
from ink_sudoku.classifiers import KerasDigitClassifier, SyntheticDigitClassifier
from ink_sudoku.constants import DIFFICULTY_DISPLAY_NAMES, PEN_WIDTH

HIGHLIGHT_COLORS = {
    CellHighlight.CORRECT: '#b9e4b9',
    CellHighlight.WRONG: '#f3b3b3',
    CellHighlight.ACTIVE: '#d6d6d6',
}
BOX_COLORS = ('#ffffff', '#f2f2f7')
WRONG_VALUE_COLOR = '#c62828'
POLL_INTERVAL = 0.025


class InkGroups:
    """
    Canvas item ids of the ink on screen, grouped by the drawing they belong
    to: the stroke being drawn, finished strokes not yet settled, and settled
    drawings keyed by generation.
    """

    def __init__(self):
        self.live: List[int] = []
        self.finished: List[int] = []
        self.settled: Dict[int, List[int]] = {}

    def add(self, item: int):
        self.live.append(item)

    def finish_stroke(self):
        self.finished.extend(self.live)
        self.live = []

    def settle(self, generation: int):
        """Everything finished so far belongs to the drawing just settled."""
        self.settled.setdefault(generation, []).extend(self.finished)
        self.finished = []

    def release(self, generation: int) -> List[int]:
        """Pop the items of ``generation`` and every earlier drawing."""
        items: List[int] = []
        for key in sorted(k for k in self.settled if k <= generation):
            items.extend(self.settled.pop(key))
        return items


class GridCanvas:
    """Canvas showing the 9x9 grid with the capture surface laid over it"""

    def __init__(self, parent, board: SudokuBoard, cell_size: int = 60, margin: int = 10, pen_width: float = PEN_WIDTH):
        self.board = board
        self.pen_width = pen_width
        self.cell_size = cell_size
        self.margin = margin
        side = cell_size * 9 + margin * 2
        self.canvas = tk.Canvas(parent, width=side, height=side, bg='white', cursor='pencil',
                                highlightthickness=0)
        self.canvas.pack(pady=10)
        self.geometry = GridGeometry(origin=(margin, margin), cell_size=cell_size)

        self._cell_items: Dict[Tuple[int, int], Tuple[int, int]] = {}
        self.ink = InkGroups()
        self.last_x = None
        self.last_y = None
        self.draw_grid()

    def draw_grid(self):
        """Draw cells, values and grid lines from scratch"""
        self.canvas.delete('cell')
        self.canvas.delete('line')
        self._cell_items.clear()
        font_size = int(self.cell_size * 0.45)
        for row in range(9):
            for col in range(9):
                x0, y0, x1, y1 = self.geometry.cell_rect(row, col)
                rect = self.canvas.create_rectangle(x0, y0, x1, y1, width=0, tags='cell')
                text = self.canvas.create_text((x0 + x1) / 2, (y0 + y1) / 2, text='',
                                               font=('Helvetica', font_size), tags='cell')
                self._cell_items[(row, col)] = (rect, text)
                self.refresh_cell(row, col)

        m, size = self.margin, self.cell_size
        for i in range(10):
            width = 2.5 if i % 3 == 0 else 0.5
            color = 'black' if i % 3 == 0 else '#c8c8c8'
            self.canvas.create_line(m, m + i * size, m + 9 * size, m + i * size,
                                    width=width, fill=color, tags='line')
            self.canvas.create_line(m + i * size, m, m + i * size, m + 9 * size,
                                    width=width, fill=color, tags='line')
        self.canvas.tag_raise('ink')

    def refresh_cell(self, row: int, col: int):
        """Repaint one cell from board state"""
        cell = self.board.cell_at(row, col)
        rect, text = self._cell_items[(row, col)]
        if cell.highlight in HIGHLIGHT_COLORS:
            fill = HIGHLIGHT_COLORS[cell.highlight]
        else:
            fill = BOX_COLORS[((row // 3) + (col // 3)) % 2]
        if self.board.selected_cell == (row, col) and cell.highlight is CellHighlight.NONE:
            fill = '#dbe9fb'
        self.canvas.itemconfigure(rect, fill=fill)

        value = cell.display_value
        weight = 'bold' if cell.is_given else 'normal'
        color = 'black'
        if not cell.is_given and value is not None and not cell.is_correct:
            color = WRONG_VALUE_COLOR
        self.canvas.itemconfigure(text, text='' if value is None else str(value),
                                  fill=color, font=('Helvetica', int(self.cell_size * 0.45), weight))

    def add_ink(self, x0, y0, x1, y1):
        item = self.canvas.create_line(x0, y0, x1, y1, width=self.pen_width, fill='#1f3b73',
                                       capstyle=tk.ROUND, smooth=tk.TRUE, tags='ink')
        self.ink.add(item)

    def finish_ink(self):
        self.ink.finish_stroke()

    def settle_ink(self, generation: int):
        self.ink.settle(generation)

    def clear_ink(self, generation: int):
        """Remove the ink of drawings up to ``generation``; later ink stays"""
        for item in self.ink.release(generation):
            self.canvas.delete(item)


class SudokuInkApplication:
    """Main application class"""

    def __init__(self, root, board: Optional[SudokuBoard] = None, config: Optional[PipelineConfig] = None,
                 model_path: Optional[str] = None, labels_path: Optional[str] = None):
        self.root = root
        self.root.title("Sudoku - Handwritten Entry")
        self.board = board or SudokuBoard(Difficulty.MEDIUM)
        self.config = config or PipelineConfig()
        self.scheduler = TkScheduler(root)

        self.create_widgets()

        # Until the recognizer is ready, drawings fall back to shape rules.
        self.pipeline = InkPipeline(
            self.board,
            None,
            self.grid.geometry,
            self.scheduler,
            self.config,
            on_cell_highlight_changed=self.on_cell_highlight_changed,
            on_surface_should_clear=self.grid.clear_ink,
            on_drawing_settled=self.grid.settle_ink,
            on_solved=self.on_solved,
            on_outcome=self.on_outcome,
        )
        self.board.on_change = self.grid.refresh_cell
        self.bind_events()

        self._loaded: "queue.Queue[Tuple[Optional[object], Optional[Exception]]]" = queue.Queue()
        self.update_status("Loading recognizer...")
        threading.Thread(target=self._load_recognizer_worker, args=(model_path, labels_path), daemon=True).start()
        self.poll_results()

    def _load_recognizer_worker(self, model_path: Optional[str], labels_path: Optional[str]):
        # Training the k-NN takes a few seconds; keep the UI responsive meanwhile
        try:
            if model_path:
                classifier = KerasDigitClassifier(model_path, labels_path)
                classifier.warm_up()
            else:
                classifier = SyntheticDigitClassifier()
            self._loaded.put((classifier, None))
        except Exception as e:
            self._loaded.put((None, e))

    def _install_recognizer(self):
        try:
            classifier, error = self._loaded.get_nowait()
        except queue.Empty:
            return
        if error is not None:
            self.update_status("Recognizer unavailable - using shape rules only")
            messagebox.showerror("Recognizer Error", str(error))
            return
        self.pipeline.set_classifier(classifier)
        self.update_status("Ready - draw a digit over any empty cell")

    def create_widgets(self):
        """Create GUI widgets"""
        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

        controls = ttk.Frame(main_frame)
        controls.grid(row=0, column=0, sticky=(tk.W, tk.E))

        ttk.Label(controls, text="Difficulty:").pack(side=tk.LEFT)
        self.difficulty_var = tk.StringVar(value=DIFFICULTY_DISPLAY_NAMES[self.board.difficulty.value])
        difficulty_combo = ttk.Combobox(controls, textvariable=self.difficulty_var, state='readonly', width=10,
                                        values=list(DIFFICULTY_DISPLAY_NAMES.values()))
        difficulty_combo.pack(side=tk.LEFT, padx=(5, 10))
        ttk.Button(controls, text="New Game", command=self.new_game).pack(side=tk.LEFT)

        grid_frame = ttk.LabelFrame(main_frame, text="Puzzle", padding="10")
        grid_frame.grid(row=1, column=0, pady=(10, 0))
        self.grid = GridCanvas(grid_frame, self.board, pen_width=self.config.pen_width)

        pad = ttk.Frame(main_frame)
        pad.grid(row=2, column=0, pady=(10, 0))
        for digit in range(1, 10):
            ttk.Button(pad, text=str(digit), width=3,
                       command=lambda d=digit: self.place_manual(d)).pack(side=tk.LEFT, padx=2)
        ttk.Button(pad, text="Erase", command=self.clear_selected).pack(side=tk.LEFT, padx=(8, 0))

        self.status_var = tk.StringVar(value="Ready")
        status_bar = ttk.Label(main_frame, textvariable=self.status_var, relief=tk.SUNKEN)
        status_bar.grid(row=3, column=0, sticky=(tk.W, tk.E), pady=(10, 0))

    def bind_events(self):
        canvas = self.grid.canvas
        canvas.bind('<Button-1>', self.start_draw)
        canvas.bind('<B1-Motion>', self.draw_line)
        canvas.bind('<ButtonRelease-1>', self.end_draw)
        canvas.bind('<Button-3>', self.select_cell)
        for digit in range(1, 10):
            self.root.bind(str(digit), lambda event, d=digit: self.place_manual(d))
        self.root.bind('<BackSpace>', lambda event: self.clear_selected())
        self.root.bind('<Delete>', lambda event: self.clear_selected())

    def start_draw(self, event):
        """Start a stroke"""
        self.grid.last_x = event.x
        self.grid.last_y = event.y
        self.pipeline.on_stroke_begin()
        self.pipeline.on_stroke_point(event.x, event.y)

    def draw_line(self, event):
        """Extend the current stroke"""
        if self.grid.last_x is not None and self.grid.last_y is not None:
            self.grid.add_ink(self.grid.last_x, self.grid.last_y, event.x, event.y)
        self.pipeline.on_stroke_point(event.x, event.y)
        self.grid.last_x = event.x
        self.grid.last_y = event.y

    def end_draw(self, event):
        """Finish the stroke"""
        self.grid.last_x = None
        self.grid.last_y = None
        self.grid.finish_ink()
        self.pipeline.on_stroke_end()

    def select_cell(self, event):
        """Select a cell for number-pad entry"""
        row, col = self.grid.geometry.cell_index(event.x, event.y)
        if not (0 <= row < 9 and 0 <= col < 9):
            return
        previous = self.board.selected_cell
        self.board.select(row, col)
        if previous is not None:
            self.grid.refresh_cell(*previous)
        self.grid.refresh_cell(row, col)
        self.update_status(f"Selected row {row + 1}, column {col + 1}")

    def place_manual(self, digit: int):
        if self.board.selected_cell is None:
            self.update_status("Right-click a cell to select it first")
            return
        self.pipeline.place_manual(digit)

    def clear_selected(self):
        self.pipeline.clear_selected()

    def new_game(self):
        """Start a new puzzle at the chosen difficulty"""
        chosen = self.difficulty_var.get()
        difficulty = next((Difficulty(key) for key, name in DIFFICULTY_DISPLAY_NAMES.items() if name == chosen),
                          self.board.difficulty)
        self.pipeline.new_game(difficulty)
        self.grid.draw_grid()
        self.update_status(f"New {difficulty.value} game")

    def poll_results(self):
        """Apply recognition results on the Tk thread"""
        self._install_recognizer()
        self.pipeline.pump()
        self.scheduler.call_later(POLL_INTERVAL, self.poll_results)

    def on_cell_highlight_changed(self, row: int, col: int, state: CellHighlight):
        self.grid.refresh_cell(row, col)

    def on_outcome(self, outcome):
        if outcome.digit is None:
            self.update_status("Could not read that - try again")
        else:
            self.update_status(
                f"Read {outcome.digit} ({outcome.source}, confidence {outcome.fused.confidence:.2f}) "
                f"at row {outcome.target.row + 1}, column {outcome.target.col + 1}"
            )

    def on_solved(self):
        self.update_status("Puzzle solved!")
        if messagebox.askyesno("Congratulations!", "You solved the puzzle!\n\nStart a new game?"):
            self.new_game()

    def update_status(self, message):
        """Update status bar"""
        self.status_var.set(message)

    def close(self):
        self.pipeline.shutdown()
        self.root.destroy()


def main(config: Optional[PipelineConfig] = None, difficulty: Difficulty = Difficulty.MEDIUM,
         seed: Optional[int] = None, model_path: Optional[str] = None, labels_path: Optional[str] = None):
    """Main function to run the GUI application"""
    root = tk.Tk()
    app = SudokuInkApplication(root, SudokuBoard(difficulty, seed=seed), config, model_path, labels_path)
    root.protocol('WM_DELETE_WINDOW', app.close)
    root.mainloop()


if __name__ == "__main__":
    main()
