"""
Tests for classifier fusion and the confusion table
"""

import os
import sys
import unittest

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.append(os.path.dirname(__file__))

from ink_sudoku import ClassifierConfig, FusionEngine, RecognitionCandidate, fuse_candidates
from ink_sudoku.constants import CONFUSION_TABLE
from support import StubClassifier

BITMAP = np.full((300, 300), 255, dtype=np.uint8)


def candidates(*pairs):
    return [RecognitionCandidate(text, conf) for text, conf in pairs]


class TestFuseCandidates(unittest.TestCase):
    """Test the reduction to a single digit"""

    def test_confusable_letter_is_discounted(self):
        fused = fuse_candidates(candidates(("S", 0.80)))
        self.assertEqual(fused.digit, 5)
        self.assertAlmostEqual(fused.confidence, 0.72)

    def test_numeric_reading_keeps_its_confidence(self):
        fused = fuse_candidates(candidates(("7", 0.95)))
        self.assertEqual(fused.digit, 7)
        self.assertAlmostEqual(fused.confidence, 0.95)

    def test_discount_always_lowers_confidence(self):
        for glyph, digit in CONFUSION_TABLE.items():
            if not 1 <= digit <= 9:
                continue
            for conf in (0.05, 0.5, 0.99, 1.0):
                fused = fuse_candidates(candidates((glyph, conf)))
                self.assertEqual(fused.digit, digit)
                self.assertLess(fused.confidence, conf)

    def test_highest_confidence_wins(self):
        fused = fuse_candidates(candidates(("3", 0.4), ("B", 0.9), ("8", 0.5)))
        self.assertEqual(fused.digit, 8)
        self.assertAlmostEqual(fused.confidence, 0.81)

    def test_ties_keep_the_earlier_reading(self):
        fused = fuse_candidates(candidates(("Z", 1.0), ("4", 0.9)))
        self.assertEqual(fused.digit, 2)
        fused = fuse_candidates(candidates(("4", 0.9), ("Z", 1.0)))
        self.assertEqual(fused.digit, 4)

    def test_text_is_trimmed(self):
        fused = fuse_candidates(candidates(("  6\n", 0.6), (" g ", 0.5)))
        self.assertEqual(fused.digit, 6)

    def test_unusable_readings_give_no_digit(self):
        fused = fuse_candidates(candidates(("0", 0.99), ("10", 0.9), ("hello", 0.8), ("Q", 0.7), ("", 0.5)))
        self.assertIsNone(fused.digit)
        self.assertEqual(fused.confidence, 0.0)

    def test_only_ascii_digits_are_numeric(self):
        fused = fuse_candidates(candidates(("+7", 0.99), ("７", 0.98), ("٧", 0.97), ("07", 0.96)))
        self.assertIsNone(fused.digit)
        fused = fuse_candidates(candidates(("７", 0.99), ("S", 0.5)))
        self.assertEqual(fused.digit, 5)
        self.assertAlmostEqual(fused.confidence, 0.45)

    def test_zero_like_glyphs_never_become_digits(self):
        fused = fuse_candidates(candidates(("O", 0.99), ("o", 0.9)))
        self.assertIsNone(fused.digit)

    def test_low_confidence_is_not_rejected_here(self):
        fused = fuse_candidates(candidates(("9", 0.01)))
        self.assertEqual(fused.digit, 9)

    def test_no_candidates(self):
        self.assertIsNone(fuse_candidates([]).digit)


class TestFusionEngine(unittest.TestCase):
    """Test dispatch across classifier configurations"""

    configs = (ClassifierConfig("accurate", "accurate", 10), ClassifierConfig("fast", "fast", 3))

    def test_union_of_all_configurations(self):
        classifier = StubClassifier(per_config={"accurate": [("S", 0.5)], "fast": [("6", 0.6)]})
        engine = FusionEngine(classifier, self.configs)
        try:
            self.assertEqual(len(engine.collect(BITMAP)), 2)
            fused = engine.classify(BITMAP)
        finally:
            engine.shutdown()
        self.assertEqual(fused.digit, 6)
        self.assertEqual(sorted(name for name, _ in classifier.calls), ["accurate", "accurate", "fast", "fast"])

    def test_classifier_error_means_no_candidates(self):
        engine = FusionEngine(StubClassifier(error=RuntimeError("engine offline")), self.configs)
        try:
            with self.assertLogs('ink_sudoku.recognition', level='WARNING'):
                fused = engine.classify(BITMAP)
        finally:
            engine.shutdown()
        self.assertIsNone(fused.digit)

    def test_one_failing_configuration_keeps_the_other(self):
        class HalfBroken(StubClassifier):
            def recognize(self, bitmap, config):
                if config.name == "fast":
                    raise RuntimeError("fast pass crashed")
                return [RecognitionCandidate("2", 0.7)]

        engine = FusionEngine(HalfBroken(), self.configs)
        try:
            with self.assertLogs('ink_sudoku.recognition', level='WARNING'):
                fused = engine.classify(BITMAP)
        finally:
            engine.shutdown()
        self.assertEqual(fused.digit, 2)

    def test_missing_classifier(self):
        engine = FusionEngine(None, self.configs)
        try:
            self.assertIsNone(engine.classify(BITMAP).digit)
        finally:
            engine.shutdown()


class TestClassifierConfig(unittest.TestCase):
    """Test configuration descriptors"""

    def test_rejects_unknown_level(self):
        with self.assertRaises(ValueError):
            ClassifierConfig("x", level="sloppy")

    def test_rejects_empty_top_k(self):
        with self.assertRaises(ValueError):
            ClassifierConfig("x", top_k=0)


if __name__ == '__main__':
    unittest.main()
