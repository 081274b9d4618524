from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle, top-left origin.
    """

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "Rect":
        return cls(x=cx - w / 2, y=cy - h / 2, width=w, height=h)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class RawDetection:
    """
    Decoded model row, still in model-input (letterboxed) pixel space.
    """

    center_x: float
    center_y: float
    width: float
    height: float
    class_id: int
    confidence: float

    def to_rect(self) -> Rect:
        return Rect.from_center(self.center_x, self.center_y, self.width, self.height)


@dataclass(frozen=True)
class Detection:
    """
    Final detection in original image coordinates.
    """

    x: float
    y: float
    width: float
    height: float
    class_id: int
    confidence: float
    label: str

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class PreprocessResult:
    """
    Model input tensor plus what is needed to undo the letterbox.

    `pad_x`/`pad_y` are the left/top offsets of the resized image inside the
    `target_size x target_size` canvas.
    """

    tensor: np.ndarray
    scale: float
    pad_x: float
    pad_y: float
    original_width: int
    original_height: int
    target_size: int
