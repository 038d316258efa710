"""
Main Entry Point for handwritten Sudoku entry
Provides command-line interface and GUI launcher
"""

import os
import sys
import json
import logging
import argparse

# Add current directory to Python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from ink_sudoku import (
    Difficulty,
    GridGeometry,
    InkPipeline,
    ManualScheduler,
    SudokuBoard,
    load_config,
)
from ink_sudoku.classifiers import KerasDigitClassifier, SyntheticDigitClassifier

SAMPLE_INTERVAL = 0.01


def load_replay(path):
    """Read a recorded session: grid placement, optional puzzle, drawings"""
    with open(path, 'r', encoding='utf-8') as handle:
        data = json.load(handle)
    if not isinstance(data, dict) or 'drawings' not in data:
        raise ValueError("Replay file must be a JSON object with a 'drawings' list")
    return data


def replay_session(replay_path, config, difficulty, seed=None, model_path=None, labels_path=None):
    """Feed recorded strokes through the pipeline on a virtual clock and report each outcome"""
    data = load_replay(replay_path)
    if 'solution' in data and 'givens' in data:
        board = SudokuBoard.from_grid(data['solution'], data['givens'])
    else:
        board = SudokuBoard(difficulty, seed=seed)

    origin = tuple(data.get('origin', (0, 0)))
    geometry = GridGeometry(origin=(float(origin[0]), float(origin[1])),
                            cell_size=float(data.get('cell_size', 60)))
    classifier = KerasDigitClassifier(model_path, labels_path) if model_path else SyntheticDigitClassifier()
    scheduler = ManualScheduler()
    outcomes = []
    cleared = []

    pipeline = InkPipeline(board, classifier, geometry, scheduler, config,
                           on_surface_should_clear=cleared.append,
                           on_outcome=outcomes.append)
    settle_delay = config.idle_window + SAMPLE_INTERVAL
    revert_delay = max(config.correct_revert_delay, config.wrong_revert_delay) + SAMPLE_INTERVAL
    try:
        for index, drawing in enumerate(data['drawings'], 1):
            before = len(outcomes), len(cleared)
            for stroke in drawing:
                pipeline.on_stroke_begin()
                for x, y in stroke:
                    pipeline.on_stroke_point(x, y)
                    scheduler.advance(SAMPLE_INTERVAL)
                pipeline.on_stroke_end()
            scheduler.advance(settle_delay)
            pipeline.join(timeout=30.0)

            if len(outcomes) > before[0]:
                outcome = outcomes[-1]
                cell = f"row {outcome.target.row + 1}, column {outcome.target.col + 1}"
                if outcome.digit is None:
                    print(f"Drawing {index}: nothing recognized at {cell}")
                else:
                    solution = board.cell_at(outcome.target.row, outcome.target.col).solution
                    verdict = "correct" if outcome.digit == solution else f"wrong (solution {solution})"
                    print(f"Drawing {index}: {outcome.digit} via {outcome.source} "
                          f"(confidence {outcome.fused.confidence:.3f}) at {cell} - {verdict}")
            elif len(cleared) > before[1]:
                print(f"Drawing {index}: ignored (off the grid or on a given cell)")
            else:
                print(f"Drawing {index}: no result")
            scheduler.advance(revert_delay)
    finally:
        pipeline.shutdown()

    print(f"Puzzle solved: {'yes' if board.is_solved() else 'no'}")
    return outcomes


def check_dependencies():
    """Check if all required dependencies are installed"""
    required_packages = ['cv2', 'numpy', 'PIL', 'sklearn', 'tkinter']
    optional_packages = ['tensorflow']

    missing_packages = []

    for package in required_packages:
        try:
            __import__(package)
            print(f"✓ {package}")
        except ImportError:
            missing_packages.append(package)
            print(f"✗ {package} - MISSING")

    for package in optional_packages:
        try:
            __import__(package)
            print(f"✓ {package}")
        except ImportError:
            print(f"- {package} - not installed (only needed for --model)")

    if missing_packages:
        print(f"\nMissing packages: {missing_packages}")
        print("Please install missing packages using: pip install <package_name>")
        return False
    print("\nAll dependencies are installed!")
    return True


def main():
    """Main function with command line interface"""
    parser = argparse.ArgumentParser(description="Handwritten Sudoku entry")
    parser.add_argument('--gui', action='store_true', help='Launch GUI application')
    parser.add_argument('--replay', type=str, help='Replay a recorded JSON stroke session')
    parser.add_argument('--config', type=str, help='JSON file overriding pipeline settings')
    parser.add_argument('--model', type=str, help='Trained Keras digit model (.h5) to use instead of the built-in recognizer')
    parser.add_argument('--labels', type=str, help='JSON label mapping for --model')
    parser.add_argument('--difficulty', type=str, choices=[d.value for d in Difficulty],
                        default=Difficulty.MEDIUM.value, help='Puzzle difficulty')
    parser.add_argument('--seed', type=int, help='Seed for puzzle generation')
    parser.add_argument('--verbose', action='store_true', help='Log pipeline decisions')
    parser.add_argument('--check-deps', action='store_true', help='Check if all dependencies are installed')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.check_deps:
        check_dependencies()
        return

    try:
        config = load_config(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error: could not load config: {e}")
        return
    difficulty = Difficulty(args.difficulty)

    if args.replay:
        if not os.path.exists(args.replay):
            print(f"Error: Replay file {args.replay} not found")
            return
        try:
            replay_session(args.replay, config, difficulty, args.seed, args.model, args.labels)
        except (OSError, ValueError) as e:
            print(f"Error replaying session: {e}")
        return

    # Launch GUI (default behavior)
    print("Launching GUI application...")
    try:
        from gui import main as gui_main
        gui_main(config, difficulty, args.seed, args.model, args.labels)
    except Exception as e:
        print(f"Error launching GUI: {e}")
        print("Make sure all dependencies are installed (run with --check-deps)")


if __name__ == "__main__":
    main()
