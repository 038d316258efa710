"""
Classifier collaborators behind ``recognize(bitmap, config)``.

Both return a list of ``RecognitionCandidate`` sorted by confidence and never
raise for "nothing found"; an empty list is the normal answer for a blank
bitmap.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from sklearn.neighbors import KNeighborsClassifier

from .constants import CONFUSION_TABLE, DIGITS, ClassifierConfig
from .raster import to_model_input
from .recognition import RecognitionCandidate

logger = logging.getLogger(__name__)

FONTS: Tuple[int, ...] = (
    cv2.FONT_HERSHEY_SIMPLEX,
    cv2.FONT_HERSHEY_COMPLEX,
    cv2.FONT_HERSHEY_DUPLEX,
    cv2.FONT_HERSHEY_TRIPLEX,
)


class DigitClassifier:
    """Interface of the external character classifier."""

    def recognize(self, bitmap: np.ndarray, config: ClassifierConfig) -> List[RecognitionCandidate]:
        raise NotImplementedError


def _top_candidates(scores: Dict[str, float], top_k: int) -> List[RecognitionCandidate]:
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return [
        RecognitionCandidate(text, float(np.clip(conf, 0.0, 1.0)))
        for text, conf in ranked[:top_k]
        if conf > 0.0
    ]


def render_glyph(
    text: str,
    font: int = cv2.FONT_HERSHEY_SIMPLEX,
    thickness: int = 6,
    angle: float = 0.0,
    shift: Tuple[int, int] = (0, 0),
    canvas_size: int = 96,
) -> np.ndarray:
    """Render ``text`` dark-on-white, roughly centred, like a drawn bitmap."""
    canvas = np.full((canvas_size, canvas_size), 255, dtype=np.uint8)
    scale = 2.0
    (tw, th), _ = cv2.getTextSize(text, font, scale, thickness)
    x = (canvas_size - tw) // 2 + shift[0]
    y = (canvas_size + th) // 2 + shift[1]
    cv2.putText(canvas, text, (x, y), font, scale, 0, thickness, lineType=cv2.LINE_AA)
    if abs(angle) > 0.1:
        center = (canvas_size // 2, canvas_size // 2)
        rot = cv2.getRotationMatrix2D(center, angle, 1.0)
        canvas = cv2.warpAffine(canvas, rot, (canvas_size, canvas_size),
                                flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=255)
    return canvas


class SyntheticDigitClassifier(DigitClassifier):
    """
    Self-contained classifier built from font-rendered glyphs.

    ``accurate`` scores the bitmap against a template bank (digits plus the
    confusable letters) with normalised cross-correlation; ``fast`` asks a
    k-NN trained on randomly augmented digit renderings.
    """

    def __init__(
        self,
        img_size: int = 28,
        samples_per_digit: int = 60,
        n_neighbors: int = 5,
        seed: int = 7,
        glyphs: Optional[Sequence[str]] = None,
    ) -> None:
        self.img_size = img_size
        self.glyphs = list(glyphs) if glyphs is not None else [str(d) for d in DIGITS] + list(CONFUSION_TABLE)
        self.templates = self._build_templates()
        self.knn = self._train_knn(samples_per_digit, n_neighbors, seed)

    def _build_templates(self) -> Dict[str, List[np.ndarray]]:
        templates: Dict[str, List[np.ndarray]] = {}
        for glyph in self.glyphs:
            variants = []
            for font in FONTS:
                for thickness in (4, 7):
                    patch = to_model_input(render_glyph(glyph, font, thickness), self.img_size)
                    if patch.max() > 0:
                        variants.append(patch)
            templates[glyph] = variants
        return templates

    def _train_knn(self, samples_per_digit: int, n_neighbors: int, seed: int) -> KNeighborsClassifier:
        rng = np.random.default_rng(seed)
        features, labels = [], []
        for digit in DIGITS:
            for _ in range(samples_per_digit):
                font = FONTS[int(rng.integers(len(FONTS)))]
                glyph = render_glyph(
                    str(digit),
                    font=font,
                    thickness=int(rng.integers(4, 9)),
                    angle=float(rng.uniform(-15, 15)),
                    shift=(int(rng.integers(-4, 5)), int(rng.integers(-4, 5))),
                )
                features.append(to_model_input(glyph, self.img_size, center_mass=False).ravel())
                labels.append(digit)
        knn = KNeighborsClassifier(n_neighbors=n_neighbors)
        knn.fit(np.asarray(features, dtype=np.float32), np.asarray(labels))
        return knn

    def recognize(self, bitmap: np.ndarray, config: ClassifierConfig) -> List[RecognitionCandidate]:
        if config.level == "fast":
            return self._recognize_fast(bitmap, config.top_k)
        return self._recognize_accurate(bitmap, config.top_k)

    def _recognize_accurate(self, bitmap: np.ndarray, top_k: int) -> List[RecognitionCandidate]:
        patch = to_model_input(bitmap, self.img_size)
        if patch.max() <= 0:
            return []
        scores: Dict[str, float] = {}
        for glyph, variants in self.templates.items():
            best = 0.0
            for template in variants:
                score = float(cv2.matchTemplate(patch, template, cv2.TM_CCOEFF_NORMED)[0, 0])
                if np.isfinite(score) and score > best:
                    best = score
            scores[glyph] = best
        return _top_candidates(scores, top_k)

    def _recognize_fast(self, bitmap: np.ndarray, top_k: int) -> List[RecognitionCandidate]:
        patch = to_model_input(bitmap, self.img_size, center_mass=False)
        if patch.max() <= 0:
            return []
        proba = self.knn.predict_proba(patch.reshape(1, -1))[0]
        scores = {str(int(label)): float(p) for label, p in zip(self.knn.classes_, proba)}
        return _top_candidates(scores, top_k)


@lru_cache(maxsize=4)
def _load_keras(model_path: str):
    if not os.path.isfile(model_path):
        raise FileNotFoundError(f"Model not found: {model_path}")
    try:
        from tensorflow.keras.models import load_model  # Lazy import keeps startup fast
    except Exception as e:
        raise RuntimeError("TensorFlow/Keras is required for the CNN classifier. Install with: pip install tensorflow") from e
    return load_model(model_path)


def load_label_mapping(labels_path: Optional[str], num_classes: int) -> Dict[int, str]:
    """Index -> label; plain digits 0..n-1 when no mapping file is given."""
    if not labels_path:
        return {idx: str(idx) for idx in range(num_classes)}
    if not os.path.isfile(labels_path):
        raise FileNotFoundError(f"Labels not found: {labels_path}")
    with open(labels_path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if isinstance(data, dict) and "idx_to_label" in data:
        data = data["idx_to_label"]
    if isinstance(data, list):
        return {idx: str(label) for idx, label in enumerate(data)}
    return {int(k): str(v) for k, v in data.items()}


class KerasDigitClassifier(DigitClassifier):
    """
    Wraps a trained Keras digit/character model (``.h5``) and its label
    mapping. Softmax outputs become candidates; the ``accurate`` pass centres
    the glyph by mass, the ``fast`` pass only crops and fits it.
    """

    def __init__(self, model_path: str, labels_path: Optional[str] = None) -> None:
        self.model_path = model_path
        self.labels_path = labels_path
        self._lock = threading.Lock()
        self._model = None
        self._labels: Dict[int, str] = {}
        self._input_size = 28

    def _ensure_model(self):
        if self._model is None:
            model = _load_keras(self.model_path)
            input_shape = getattr(model, "input_shape", None)
            if input_shape and len(input_shape) >= 3 and input_shape[1]:
                self._input_size = int(input_shape[1])
            num_classes = int(model.output_shape[-1])
            self._labels = load_label_mapping(self.labels_path, num_classes)
            self._model = model
        return self._model

    def warm_up(self) -> None:
        """Load the model now instead of on the first recognition."""
        with self._lock:
            self._ensure_model()

    def recognize(self, bitmap: np.ndarray, config: ClassifierConfig) -> List[RecognitionCandidate]:
        with self._lock:
            model = self._ensure_model()
            patch = to_model_input(bitmap, self._input_size, center_mass=config.level == "accurate")
            if patch.max() <= 0:
                return []
            probs = np.asarray(model.predict(patch.reshape(1, self._input_size, self._input_size, 1), verbose=0))[0]
        scores: Dict[str, float] = {}
        for idx, p in enumerate(probs):
            label = self._labels.get(idx, str(idx))
            scores[label] = max(scores.get(label, 0.0), float(p))
        return _top_candidates(scores, config.top_k)
