"""
Recognition fusion: run every classifier configuration over the bitmap and
reduce the union of their readings to at most one digit.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

import numpy as np

from .constants import CONFUSION_DISCOUNT, CONFUSION_TABLE, DEFAULT_CLASSIFIER_CONFIGS, ClassifierConfig
from .errors import RecognitionUnavailable

logger = logging.getLogger(__name__)

ASCII_DIGITS = "123456789"


@dataclass(frozen=True)
class RecognitionCandidate:
    text: str
    confidence: float


@dataclass(frozen=True)
class FusedResult:
    digit: Optional[int] = None
    confidence: float = 0.0

    @property
    def determined(self) -> bool:
        return self.digit is not None


def _parse_digit(text: str) -> Optional[int]:
    # A single ASCII 1-9 only.
    if len(text) == 1 and text in ASCII_DIGITS:
        return int(text)
    return None


def fuse_candidates(
    candidates: Iterable[RecognitionCandidate],
    confusion_table: Mapping[str, int] = CONFUSION_TABLE,
    discount: float = CONFUSION_DISCOUNT,
) -> FusedResult:
    """
    Pick the single best digit reading.

    Numeric readings in 1..9 compete on their raw confidence; single
    characters found in the confusion table compete on ``confidence *
    discount``. A reading only replaces the best so far when strictly
    better, so earlier candidates win ties.
    """
    best_digit: Optional[int] = None
    best_conf = 0.0
    for candidate in candidates:
        cleaned = candidate.text.strip()
        conf = float(candidate.confidence)
        digit = _parse_digit(cleaned)
        if digit is not None and conf > best_conf:
            best_digit, best_conf = digit, conf
        if len(cleaned) == 1 and cleaned in confusion_table:
            mapped = confusion_table[cleaned]
            # Zero-like glyphs never become a placeable digit.
            if 1 <= mapped <= 9 and conf * discount > best_conf:
                best_digit, best_conf = mapped, conf * discount
    return FusedResult(best_digit, best_conf if best_digit is not None else 0.0)


class FusionEngine:
    """Dispatches a bitmap to the classifier once per configuration, concurrently."""

    def __init__(
        self,
        classifier,
        configs: Sequence[ClassifierConfig] = DEFAULT_CLASSIFIER_CONFIGS,
        confusion_table: Mapping[str, int] = CONFUSION_TABLE,
        discount: float = CONFUSION_DISCOUNT,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.classifier = classifier
        self.configs = tuple(configs)
        self.confusion_table = dict(confusion_table)
        self.discount = discount
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, len(self.configs)), thread_name_prefix="ink-classify"
        )

    def _run_config(self, bitmap: np.ndarray, config: ClassifierConfig) -> List[RecognitionCandidate]:
        try:
            result = self.classifier.recognize(bitmap, config)
        except Exception as exc:
            raise RecognitionUnavailable(f"{config.name} pass failed: {exc}") from exc
        return list(result or [])

    def collect(self, bitmap: np.ndarray) -> List[RecognitionCandidate]:
        """Union of all readings, in configuration order."""
        if self.classifier is None:
            return []
        futures = [(config, self._executor.submit(self._run_config, bitmap, config)) for config in self.configs]
        candidates: List[RecognitionCandidate] = []
        for config, future in futures:
            try:
                readings = future.result()
            except RecognitionUnavailable as exc:
                logger.warning("Recognition unavailable, treating as no candidates: %s", exc)
                continue
            logger.debug("%s pass returned %d candidate(s)", config.name, len(readings))
            candidates.extend(readings)
        return candidates

    def classify(self, bitmap: np.ndarray) -> FusedResult:
        fused = fuse_candidates(self.collect(bitmap), self.confusion_table, self.discount)
        logger.debug("Fused result: digit=%s confidence=%.3f", fused.digit, fused.confidence)
        return fused

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)
