"""
Tunable defaults, the glyph confusion table and the pipeline configuration.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple

GRID_SIZE = 9
DIGITS: Tuple[int, ...] = tuple(range(1, 10))

# Idle window after the last sampled point before a drawing settles.
IDLE_WINDOW = 0.6

# Square bitmap handed to the classifiers.
BITMAP_SIZE = 300
BITMAP_PADDING = 40
INK_WIDTH = 12
BACKGROUND_VALUE = 255
INK_VALUE = 0

# Width of the pen on the capture surface, in surface units. Bounds include
# half of it on every side, so any visible stroke has a non-zero area.
PEN_WIDTH = 4.0

ACCEPT_THRESHOLD = 0.2
CONFUSION_DISCOUNT = 0.9

CORRECT_REVERT_DELAY = 0.6
WRONG_REVERT_DELAY = 0.8
ACTIVE_TIMEOUT = 5.0

# Geometric fallback thresholds.
TALL_ASPECT_LIMIT = 0.3
CLOSED_LOOP_LIMIT = 0.15
EIGHT_ASPECT_RANGE: Tuple[float, float] = (0.4, 0.8)

# Commonly misread glyphs -> digit they most likely represent.
CONFUSION_TABLE: Dict[str, int] = {
    "l": 1,
    "I": 1,
    "|": 1,
    "i": 1,
    "Z": 2,
    "z": 2,
    "A": 4,
    "S": 5,
    "s": 5,
    "G": 6,
    "b": 6,
    "T": 7,
    "B": 8,
    "g": 9,
    "q": 9,
    "O": 0,
    "o": 0,
}

# Display names for the Tk difficulty selector.
DIFFICULTY_DISPLAY_NAMES: Dict[str, str] = {
    "easy": "Easy",
    "medium": "Medium",
    "hard": "Hard",
}


@dataclass(frozen=True)
class ClassifierConfig:
    """One pass of the external classifier (e.g. accurate vs fast)."""

    name: str
    level: str = "accurate"
    top_k: int = 10

    def __post_init__(self) -> None:
        if self.level not in {"accurate", "fast"}:
            raise ValueError(f"Unknown recognition level: {self.level!r}")
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")


DEFAULT_CLASSIFIER_CONFIGS: Tuple[ClassifierConfig, ...] = (
    ClassifierConfig("accurate", level="accurate", top_k=10),
    ClassifierConfig("fast", level="fast", top_k=5),
)


@dataclass(frozen=True)
class PipelineConfig:
    """Every tunable of the recognition-and-placement pipeline."""

    idle_window: float = IDLE_WINDOW
    bitmap_size: int = BITMAP_SIZE
    bitmap_padding: int = BITMAP_PADDING
    ink_width: int = INK_WIDTH
    pen_width: float = PEN_WIDTH
    accept_threshold: float = ACCEPT_THRESHOLD
    confusion_discount: float = CONFUSION_DISCOUNT
    correct_revert_delay: float = CORRECT_REVERT_DELAY
    wrong_revert_delay: float = WRONG_REVERT_DELAY
    active_timeout: float = ACTIVE_TIMEOUT
    clear_wrong_on_revert: bool = False
    max_workers: int = 2
    classifier_configs: Tuple[ClassifierConfig, ...] = field(
        default_factory=lambda: DEFAULT_CLASSIFIER_CONFIGS
    )

    def __post_init__(self) -> None:
        for name in ("idle_window", "pen_width", "correct_revert_delay", "wrong_revert_delay", "active_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if not 0.0 <= self.accept_threshold <= 1.0:
            raise ValueError("accept_threshold must lie in 0..1")
        if not 0.0 < self.confusion_discount < 1.0:
            raise ValueError("confusion_discount must lie strictly between 0 and 1")
        if self.bitmap_size <= 2 * self.bitmap_padding:
            raise ValueError("bitmap_size must exceed twice the padding")
        if self.ink_width < 1 or self.max_workers < 1:
            raise ValueError("ink_width and max_workers must be positive")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {k: v for k, v in data.items() if k in known}
        if "classifier_configs" in kwargs:
            kwargs["classifier_configs"] = tuple(
                ClassifierConfig(**entry) for entry in kwargs["classifier_configs"]
            )
        return cls(**kwargs)


def load_config(path: Optional[str] = None) -> PipelineConfig:
    """Read a JSON config file; defaults when no path is given."""
    if path is None:
        return PipelineConfig()
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must hold a JSON object")
    return PipelineConfig.from_dict(data)
