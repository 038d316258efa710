"""
Tests for the GUI's ink bookkeeping (no display needed)
"""

import os
import sys
import unittest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

try:
    import gui
except ImportError:  # tkinter not built into this interpreter
    gui = None


@unittest.skipIf(gui is None, "tkinter is not available")
class TestInkGroups(unittest.TestCase):
    """Test that clearing a drawing only removes its own ink"""

    def setUp(self):
        self.ink = gui.InkGroups()

    def stroke(self, *items):
        for item in items:
            self.ink.add(item)
        self.ink.finish_stroke()

    def test_clear_spares_ink_drawn_after_settle(self):
        self.stroke(1, 2)
        self.ink.settle(1)
        self.stroke(3)
        self.ink.add(4)
        self.assertEqual(self.ink.release(1), [1, 2])
        self.assertEqual(self.ink.finished, [3])
        self.assertEqual(self.ink.live, [4])

    def test_clear_includes_superseded_drawings(self):
        self.stroke(1)
        self.ink.settle(1)
        self.stroke(2)
        self.ink.settle(2)
        self.stroke(3)
        self.ink.settle(3)
        self.assertEqual(self.ink.release(2), [1, 2])
        self.assertEqual(self.ink.release(2), [])
        self.assertEqual(self.ink.release(3), [3])

    def test_settle_without_ink(self):
        self.ink.settle(1)
        self.assertEqual(self.ink.release(1), [])


if __name__ == '__main__':
    unittest.main()
