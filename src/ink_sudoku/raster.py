"""
Rendering a settled drawing into the fixed-size bitmap the classifiers see,
and shrinking that bitmap to model-sized input.
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw

from .constants import BACKGROUND_VALUE, BITMAP_PADDING, BITMAP_SIZE, INK_VALUE, INK_WIDTH, PEN_WIDTH
from .errors import RenderFailure
from .strokes import Drawing


class Rasterizer:
    """
    Renders a drawing dark-on-white into a ``size`` x ``size`` grayscale
    bitmap. The drawing's ink bounds (sample bounds plus half the source
    pen width, so a perfectly straight stroke still has an area) are scaled
    uniformly to fit inside the padding and centred. The ink width is fixed
    in bitmap pixels, so thin input strokes come out thick enough to classify
    wherever they were drawn.
    """

    def __init__(
        self,
        size: int = BITMAP_SIZE,
        padding: int = BITMAP_PADDING,
        ink_width: int = INK_WIDTH,
        pen_width: float = PEN_WIDTH,
    ) -> None:
        if size <= 2 * padding:
            raise ValueError("size must exceed twice the padding")
        self.size = int(size)
        self.padding = int(padding)
        self.ink_width = int(ink_width)
        self.pen_width = max(0.0, float(pen_width))

    def transform(self, drawing: Drawing) -> Tuple[float, float, float]:
        """Return ``(scale, offset_x, offset_y)`` mapping drawing -> bitmap."""
        bounds = drawing.ink_bounds(self.pen_width)
        if bounds is None:
            raise RenderFailure("Drawing has no points")
        if bounds.area <= 0:
            raise RenderFailure(
                f"Degenerate drawing bounds {bounds.width:.1f}x{bounds.height:.1f}"
            )
        content = self.size - 2 * self.padding
        scale = content / max(bounds.width, bounds.height)
        cx, cy = bounds.centroid
        half = self.size / 2.0
        return scale, half - cx * scale, half - cy * scale

    def rasterize(self, drawing: Drawing) -> np.ndarray:
        scale, off_x, off_y = self.transform(drawing)
        image = Image.new("L", (self.size, self.size), BACKGROUND_VALUE)
        draw = ImageDraw.Draw(image)
        radius = self.ink_width / 2.0
        for stroke in drawing.strokes:
            coords = [(p.x * scale + off_x, p.y * scale + off_y) for p in stroke.points]
            if not coords:
                continue
            if len(coords) > 1:
                draw.line(coords, fill=INK_VALUE, width=self.ink_width, joint="curve")
            # Round caps at both ends (and a dot for single-sample strokes).
            for x, y in (coords[0], coords[-1]):
                draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=INK_VALUE)
        return np.asarray(image, dtype=np.uint8).copy()


def to_model_input(bitmap: np.ndarray, target_size: int = 28, center_mass: bool = True) -> np.ndarray:
    """
    Convert a dark-on-white bitmap into an MNIST-style patch: white strokes on
    black, cropped to the ink, fitted into ``target_size`` with a small margin,
    values in 0..1. Returns shape ``(target_size, target_size)``.
    """
    gray = np.asarray(bitmap)
    if gray.ndim == 3:
        gray = cv2.cvtColor(gray, cv2.COLOR_BGR2GRAY)
    if gray.dtype != np.uint8:
        gray = np.clip(gray, 0, 255).astype(np.uint8)

    _, thresh = cv2.threshold(gray, 127, 255, cv2.THRESH_BINARY_INV)
    coords = cv2.findNonZero(thresh)
    if coords is None:
        return np.zeros((target_size, target_size), dtype=np.float32)
    x, y, w, h = cv2.boundingRect(coords)
    crop = thresh[y:y + h, x:x + w]

    pad_margin = max(2, target_size // 7)
    scale = (target_size - pad_margin) / float(max(w, h))
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    resized = cv2.resize(crop, (new_w, new_h), interpolation=cv2.INTER_AREA)

    canvas = np.zeros((target_size, target_size), dtype=np.uint8)
    y0 = (target_size - new_h) // 2
    x0 = (target_size - new_w) // 2
    canvas[y0:y0 + new_h, x0:x0 + new_w] = resized

    if center_mass:
        moments = cv2.moments(canvas)
        if abs(moments["m00"]) > 1e-3:
            shift_x = int(round(target_size / 2.0 - moments["m10"] / moments["m00"]))
            shift_y = int(round(target_size / 2.0 - moments["m01"] / moments["m00"]))
            shift = np.float32([[1, 0, shift_x], [0, 1, shift_y]])
            canvas = cv2.warpAffine(canvas, shift, (target_size, target_size),
                                    flags=cv2.INTER_NEAREST, borderValue=0)

    return canvas.astype(np.float32) / 255.0
