from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from .errors import MalformedOutputError
from .types import RawDetection

logger = logging.getLogger(__name__)

LAYOUTS = ("auto", "rows", "channels_first")


def _as_rows(output: np.ndarray, num_classes: int, layout: str) -> np.ndarray:
    """
    Bring a single-image output tensor to shape (rows, 4 + num_classes).
    """

    try:
        p = np.asarray(output, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MalformedOutputError(f"Model output is not a numeric array: {e}") from e

    if p.ndim == 3:
        if p.shape[0] != 1:
            raise MalformedOutputError(f"Batch > 1 is not supported (got shape {p.shape}).")
        p = p[0]
    if p.ndim != 2:
        raise MalformedOutputError(f"Expected a 2-D or 3-D output tensor, got shape {p.shape}.")

    width = 4 + num_classes
    if layout == "rows":
        transpose = False
    elif layout == "channels_first":
        transpose = True
    else:
        # (rows, 4 + C) wins when both axes would fit.
        transpose = p.shape[1] != width and p.shape[0] == width

    if transpose:
        p = p.T
    if p.shape[1] != width:
        raise MalformedOutputError(
            f"Output row width {p.shape[1]} does not match 4 + num_classes = {width} (shape {np.shape(output)})."
        )
    if not np.all(np.isfinite(p)):
        raise MalformedOutputError("Model output contains NaN or infinite values.")
    scores = p[:, 4:]
    if scores.size and (scores.min() < 0.0 or scores.max() > 1.0):
        raise MalformedOutputError(
            f"Class scores must lie in [0, 1], got range [{scores.min():.4g}, {scores.max():.4g}]."
        )
    return p


def decode_arrays(
    output: np.ndarray,
    num_classes: int,
    *,
    layout: str = "auto",
    min_score: float = 1e-6,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Array form of `decode`.

    Returns:
        boxes: (N, 4) cx, cy, w, h in model-input pixels
        class_ids: (N,) int
        scores: (N,) float
        rows: (N,) index of each kept row in the output tensor
    """

    if num_classes < 1:
        raise ValueError(f"num_classes must be >= 1, got {num_classes}")
    if layout not in LAYOUTS:
        raise ValueError(f"layout must be one of {LAYOUTS}, got {layout!r}")

    p = _as_rows(output, num_classes, layout)

    boxes = p[:, :4]
    class_scores = p[:, 4:]
    # np.argmax returns the first maximum, so ties go to the lowest class id.
    class_ids = np.argmax(class_scores, axis=1)
    scores = class_scores[np.arange(class_scores.shape[0]), class_ids]

    rows = np.nonzero(scores >= min_score)[0]
    logger.debug("decode: %d rows, %d above %.1e", p.shape[0], rows.size, min_score)
    return boxes[rows], class_ids[rows], scores[rows], rows


def decode(
    output: np.ndarray,
    num_classes: int,
    *,
    layout: str = "auto",
    min_score: float = 1e-6,
) -> List[RawDetection]:
    """
    Decode an anchor-free detector output into candidate detections.

    Each row is `[cx, cy, w, h, score_0 .. score_{C-1}]`. Accepted shapes are
    (rows, 4 + C) and (1, rows, 4 + C); the channels-first export layout
    (4 + C, rows) is accepted too (`layout="auto"` or `"channels_first"`).

    No confidence thresholding happens here beyond dropping rows under
    `min_score`, which only bounds memory.
    """

    boxes, class_ids, scores, _ = decode_arrays(output, num_classes, layout=layout, min_score=min_score)
    return [
        RawDetection(
            center_x=float(cx),
            center_y=float(cy),
            width=float(w),
            height=float(h),
            class_id=int(cls_id),
            confidence=float(score),
        )
        for (cx, cy, w, h), cls_id, score in zip(boxes, class_ids, scores)
    ]
