from __future__ import annotations

import numpy as np

from .types import PreprocessResult, Rect


def iou(a: Rect, b: Rect) -> float:
    """
    Intersection over union of two rectangles.

    Two rectangles whose union has no area (both degenerate) have IoU 0.
    """

    ax1, ay1, ax2, ay2 = a.as_xyxy()
    bx1, by1, bx2, by2 = b.as_xyxy()

    iw = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    ih = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = iw * ih
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorized IoU of one xyxy box (4,) against many xyxy boxes (N, 4).
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)

    x1, y1, x2, y2 = (float(v) for v in box)
    area = max(0.0, x2 - x1) * max(0.0, y2 - y1)
    areas = np.maximum(0.0, boxes[:, 2] - boxes[:, 0]) * np.maximum(0.0, boxes[:, 3] - boxes[:, 1])

    w = np.maximum(0.0, np.minimum(x2, boxes[:, 2]) - np.maximum(x1, boxes[:, 0]))
    h = np.maximum(0.0, np.minimum(y2, boxes[:, 3]) - np.maximum(y1, boxes[:, 1]))
    inter = w * h
    union = area + areas - inter

    out = np.zeros_like(union)
    np.divide(inter, union, out=out, where=union > 0.0)
    return out


def cxcywh_to_xyxy(boxes: np.ndarray) -> np.ndarray:
    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    cx, cy, w, h = boxes.T
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)


def to_original(rect: Rect, prep: PreprocessResult) -> Rect:
    """
    Map a rectangle from letterboxed model-input space back to the source image.
    """

    return Rect(
        x=(rect.x - prep.pad_x) / prep.scale,
        y=(rect.y - prep.pad_y) / prep.scale,
        width=rect.width / prep.scale,
        height=rect.height / prep.scale,
    )


def clamp_rect(rect: Rect, width: float, height: float) -> Rect:
    x1, y1, x2, y2 = rect.as_xyxy()
    x1 = min(max(x1, 0.0), width)
    x2 = min(max(x2, 0.0), width)
    y1 = min(max(y1, 0.0), height)
    y2 = min(max(y2, 0.0), height)
    return Rect.from_xyxy(x1, y1, max(x1, x2), max(y1, y2))
