"""
System tests for handwritten Sudoku entry
Tests configuration loading, the built-in recognizer and recorded-session replay
"""

import contextlib
import io
import json
import os
import sys
import tempfile
import types
import unittest
from unittest import mock

import cv2
import numpy as np

# Add src directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.append(os.path.dirname(__file__))

import main
from ink_sudoku import ClassifierConfig, PipelineConfig, load_config
from ink_sudoku.classifiers import SyntheticDigitClassifier, load_label_mapping, render_glyph
from support import StubClassifier, valid_solution


class TestConfiguration(unittest.TestCase):
    """Test JSON configuration loading"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, payload):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w', encoding='utf-8') as handle:
            json.dump(payload, handle)
        return path

    def test_defaults(self):
        config = load_config()
        self.assertEqual(config.idle_window, 0.6)
        self.assertEqual(config.accept_threshold, 0.2)
        self.assertEqual([c.name for c in config.classifier_configs], ["accurate", "fast"])
        self.assertFalse(config.clear_wrong_on_revert)

    def test_overrides_and_unknown_keys(self):
        path = self.write('config.json', {
            'idle_window': 0.4,
            'clear_wrong_on_revert': True,
            'classifier_configs': [{'name': 'only', 'level': 'fast', 'top_k': 3}],
            'theme': 'dark',
        })
        config = load_config(path)
        self.assertEqual(config.idle_window, 0.4)
        self.assertTrue(config.clear_wrong_on_revert)
        self.assertEqual(config.classifier_configs, (ClassifierConfig('only', 'fast', 3),))

    def test_invalid_values_rejected(self):
        with self.assertRaises(ValueError):
            load_config(self.write('bad.json', {'accept_threshold': 1.5}))
        with self.assertRaises(ValueError):
            load_config(self.write('list.json', [1, 2]))
        with self.assertRaises(ValueError):
            PipelineConfig(bitmap_size=60, bitmap_padding=40)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmp.name, 'absent.json'))

    def test_label_mapping_formats(self):
        self.assertEqual(load_label_mapping(None, 3), {0: '0', 1: '1', 2: '2'})
        listed = self.write('labels.json', ['A', 'B'])
        self.assertEqual(load_label_mapping(listed, 2), {0: 'A', 1: 'B'})
        wrapped = self.write('wrapped.json', {'idx_to_label': {'0': '7', '1': 'S'}})
        self.assertEqual(load_label_mapping(wrapped, 2), {0: '7', 1: 'S'})


class TestSyntheticClassifier(unittest.TestCase):
    """Test the font-rendered fallback recognizer"""

    @classmethod
    def setUpClass(cls):
        cls.classifier = SyntheticDigitClassifier(samples_per_digit=20)
        cls.accurate = ClassifierConfig('accurate', 'accurate', 10)
        cls.fast = ClassifierConfig('fast', 'fast', 5)

    def test_accurate_reads_rendered_digit(self):
        bitmap = render_glyph('4', cv2.FONT_HERSHEY_SIMPLEX, 7)
        candidates = self.classifier.recognize(bitmap, self.accurate)
        self.assertTrue(candidates)
        self.assertEqual(candidates[0].text, '4')
        self.assertLessEqual(len(candidates), 10)

    def test_fast_candidates_are_ranked(self):
        bitmap = render_glyph('7', cv2.FONT_HERSHEY_DUPLEX, 6)
        candidates = self.classifier.recognize(bitmap, self.fast)
        self.assertTrue(candidates)
        self.assertLessEqual(len(candidates), 5)
        confidences = [c.confidence for c in candidates]
        self.assertEqual(confidences, sorted(confidences, reverse=True))
        for c in candidates:
            self.assertGreater(c.confidence, 0.0)
            self.assertLessEqual(c.confidence, 1.0)
            self.assertIn(c.text, [str(d) for d in range(1, 10)])

    def test_blank_bitmap_has_no_candidates(self):
        blank = np.full((300, 300), 255, dtype=np.uint8)
        self.assertEqual(self.classifier.recognize(blank, self.accurate), [])
        self.assertEqual(self.classifier.recognize(blank, self.fast), [])


class TestReplaySession(unittest.TestCase):
    """Test replaying a recorded session through the whole pipeline"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write_session(self, payload):
        path = os.path.join(self.tmp.name, 'session.json')
        with open(path, 'w', encoding='utf-8') as handle:
            json.dump(payload, handle)
        return path

    def test_replay_places_and_reports(self):
        solution = valid_solution()
        givens = [[False] * 9 for _ in range(9)]
        path = self.write_session({
            'origin': [0, 0],
            'cell_size': 60,
            'solution': solution,
            'givens': givens,
            'drawings': [
                [[[25, 10], [30, 30], [35, 50]]],
                [[[25, 70], [30, 90], [35, 110]]],
                [[[100, 545], [110, 585]]],
            ],
        })
        stub = StubClassifier([('1', 0.9)])
        output = io.StringIO()
        with mock.patch('main.SyntheticDigitClassifier', return_value=stub), contextlib.redirect_stdout(output):
            outcomes = main.replay_session(path, PipelineConfig(), None)

        self.assertEqual([o.digit for o in outcomes], [1, 1])
        self.assertEqual([(o.target.row, o.target.col) for o in outcomes], [(0, 0), (1, 0)])
        text = output.getvalue()
        self.assertIn('Drawing 1: 1 via fusion', text)
        self.assertIn('correct', text)
        self.assertIn('wrong (solution 4)', text)
        self.assertIn('Drawing 3: ignored', text)
        self.assertIn('Puzzle solved: no', text)

    def test_replay_requires_drawings(self):
        path = self.write_session({'origin': [0, 0]})
        with self.assertRaises(ValueError):
            main.load_replay(path)


class TestDependencyCheck(unittest.TestCase):
    """Test the --check-deps report"""

    def test_missing_tensorflow_is_only_optional(self):
        real_import = __import__

        def fake_import(name, *args, **kwargs):
            if name == 'tensorflow':
                raise ImportError(name)
            if name in ('cv2', 'numpy', 'PIL', 'sklearn', 'tkinter'):
                return types.ModuleType(name)
            return real_import(name, *args, **kwargs)

        output = io.StringIO()
        with mock.patch('builtins.__import__', side_effect=fake_import), contextlib.redirect_stdout(output):
            ok = main.check_dependencies()
        self.assertTrue(ok)
        text = output.getvalue()
        self.assertIn('tensorflow - not installed', text)
        self.assertNotIn('MISSING', text)

    def test_missing_required_package_fails(self):
        real_import = __import__

        def fake_import(name, *args, **kwargs):
            if name == 'sklearn':
                raise ImportError(name)
            if name in ('cv2', 'numpy', 'PIL', 'tkinter', 'tensorflow'):
                return types.ModuleType(name)
            return real_import(name, *args, **kwargs)

        output = io.StringIO()
        with mock.patch('builtins.__import__', side_effect=fake_import), contextlib.redirect_stdout(output):
            ok = main.check_dependencies()
        self.assertFalse(ok)
        self.assertIn('sklearn - MISSING', output.getvalue())


if __name__ == "__main__":
    unittest.main()
