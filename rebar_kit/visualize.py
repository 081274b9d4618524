from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .letterbox import ensure_bgr
from .types import Detection

Color = Tuple[int, int, int]

# BGR, indexed by class id; larger ids get a seeded random color.
_PALETTE: Tuple[Color, ...] = (
    (255, 56, 56),
    (255, 157, 151),
    (255, 112, 31),
    (255, 178, 29),
    (207, 210, 49),
    (72, 249, 10),
    (146, 204, 23),
    (61, 219, 134),
    (26, 147, 52),
    (0, 212, 187),
    (44, 153, 168),
    (0, 194, 255),
    (52, 69, 147),
    (100, 115, 255),
    (0, 24, 236),
    (132, 56, 255),
    (82, 0, 133),
    (203, 56, 255),
    (255, 149, 200),
    (255, 55, 199),
)

_TEXT_COLOR: Color = (255, 255, 255)


def _color_for_class_id(class_id: int) -> Color:
    if 0 <= class_id < len(_PALETTE):
        return _PALETTE[class_id]
    rng = np.random.default_rng(abs(int(class_id)))
    b, g, r = (int(v) for v in rng.integers(0, 256, size=3, dtype=np.uint8))
    return b, g, r


def format_label(det: Detection) -> str:
    return f"{det.label} {det.confidence:.2f}"


def _to_pixel_box(det: Detection, width: int, height: int) -> Tuple[int, int, int, int]:
    x1, y1, x2, y2 = det.as_xyxy()
    return (
        int(np.clip(round(x1), 0, width - 1)),
        int(np.clip(round(y1), 0, height - 1)),
        int(np.clip(round(x2), 0, width - 1)),
        int(np.clip(round(y2), 0, height - 1)),
    )


def _draw_label(cv2, canvas: np.ndarray, text: str, x: int, y: int, color: Color, font_scale: float, thickness: int) -> None:
    """
    Filled plate + text anchored at the box's top-left corner (x, y).

    The plate goes above the box when it fits, otherwise just inside it.
    """

    h, w = canvas.shape[:2]
    (tw, th), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness)
    plate_h = th + baseline
    top = y - plate_h if y - plate_h >= 0 else y

    cv2.rectangle(canvas, (x, top), (min(x + tw, w - 1), min(top + plate_h, h - 1)), color, thickness=-1)
    cv2.putText(
        canvas,
        text,
        (x, min(top + th, h - 1)),
        cv2.FONT_HERSHEY_SIMPLEX,
        font_scale,
        _TEXT_COLOR,
        thickness=thickness,
        lineType=cv2.LINE_AA,
    )


def render(
    image: np.ndarray,
    detections: Iterable[Detection],
    *,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on a copy of an OpenCV BGR image.

    Args:
        image: input image in BGR (H, W, 3); grayscale/BGRA are converted.
        detections: iterable of Detection in original image coordinates.

    Returns:
        A new (H, W, 3) BGR image; `image` itself is left untouched.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for render(). Install with `pip install opencv-python`.") from e

    out = np.array(ensure_bgr(image), dtype=np.uint8, copy=True)
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = _to_pixel_box(det, w, h)
        color = _color_for_class_id(det.class_id)
        cv2.rectangle(out, (x1, y1), (x2, y2), color, thickness=box_thickness)
        _draw_label(cv2, out, format_label(det), x1, y1, color, font_scale, font_thickness)

    return out
