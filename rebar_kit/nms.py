from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from .geometry import clamp_rect, cxcywh_to_xyxy, iou_one_to_many, to_original
from .types import Detection, PreprocessResult, RawDetection

logger = logging.getLogger(__name__)


def _check_threshold(name: str, value: float) -> None:
    if not 0.0 <= float(value) <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    iou_threshold: float = 0.45,
    max_detections: Optional[int] = None,
) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N, 4) in xyxy and scores shape (N,).

    A box is dropped when its IoU with an already kept box is >= `iou_threshold`.
    Equal scores keep input order. Returns indices of kept boxes, best first.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int64)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if max_detections is not None and len(keep) >= max_detections:
            break
        i = int(order[0])
        keep.append(i)

        iou = iou_one_to_many(boxes[i], boxes[order[1:]])
        order = order[1:][iou < iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(
    raw_detections: Sequence[RawDetection],
    confidence_threshold: float,
    iou_threshold: float,
    prep: PreprocessResult,
    *,
    class_names: Optional[Sequence[str]] = None,
    max_detections: Optional[int] = None,
) -> List[Detection]:
    """
    Confidence filter + per-class NMS, then map survivors to original image space.

    Classes are suppressed independently; boxes of different classes never
    suppress each other. The result is sorted by descending confidence with
    ties in input order, and every box is clamped to the source image.
    """

    _check_threshold("confidence_threshold", confidence_threshold)
    _check_threshold("iou_threshold", iou_threshold)
    if max_detections is not None and max_detections < 0:
        raise ValueError(f"max_detections must be >= 0, got {max_detections}")

    candidates = [d for d in raw_detections if d.confidence >= confidence_threshold]
    if not candidates:
        logger.debug("suppress: nothing above confidence %.3f", confidence_threshold)
        return []

    boxes = cxcywh_to_xyxy([(d.center_x, d.center_y, d.width, d.height) for d in candidates])
    scores = np.array([d.confidence for d in candidates], dtype=np.float64)
    class_ids = np.array([d.class_id for d in candidates], dtype=np.int64)

    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.nonzero(class_ids == cls)[0]
        keep_local = nms(boxes[idx], scores[idx], iou_threshold)
        kept.extend(idx[keep_local].tolist())

    kept.sort(key=lambda i: (-scores[i], i))
    if max_detections is not None:
        kept = kept[:max_detections]

    detections: List[Detection] = []
    for i in kept:
        cand = candidates[i]
        rect = to_original(cand.to_rect(), prep)
        rect = clamp_rect(rect, prep.original_width, prep.original_height)
        detections.append(
            Detection(
                x=rect.x,
                y=rect.y,
                width=rect.width,
                height=rect.height,
                class_id=cand.class_id,
                confidence=cand.confidence,
                label=label_for(cand.class_id, class_names),
            )
        )

    logger.debug("suppress: %d candidates -> %d detections", len(candidates), len(detections))
    return detections


def label_for(class_id: int, class_names: Optional[Sequence[str]]) -> str:
    if class_names is not None and 0 <= class_id < len(class_names):
        return class_names[class_id]
    return str(class_id)

