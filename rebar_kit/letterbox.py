from __future__ import annotations

import logging
from typing import Tuple, Union

import numpy as np

from .errors import InvalidImageError
from .types import PreprocessResult

logger = logging.getLogger(__name__)


def _import_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterboxing. Install with `pip install opencv-python`.") from e
    return cv2


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """
    Validate an image array and return it as 3-channel BGR.

    Grayscale (H, W) / (H, W, 1) and BGRA (H, W, 4) inputs are converted;
    3-channel input is returned as-is (not copied).
    """

    if image is None or not hasattr(image, "shape"):
        raise InvalidImageError("image must be a NumPy array (BGR).")
    if image.ndim not in (2, 3):
        raise InvalidImageError(f"Expected image shape (H, W) or (H, W, C), got {image.shape}")

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        raise InvalidImageError(f"Image has zero area (width={w}, height={h}).")

    if image.ndim == 3 and image.shape[2] == 3:
        return image

    cv2 = _import_cv2()
    if image.ndim == 2 or image.shape[2] == 1:
        return cv2.cvtColor(image.reshape(h, w), cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    raise InvalidImageError(f"Unsupported channel count {image.shape[2]} (expected 1, 3 or 4).")


def letterbox(
    image: np.ndarray,
    new_shape: Union[int, Tuple[int, int]] = (640, 640),
    color: Tuple[int, int, int] = (114, 114, 114),
):
    """
    Resize and pad image to `new_shape` (width, height), keeping aspect ratio.

    Returns:
        padded: resized + padded image
        scale: uniform resize factor (new / old)
        pad: (left, top) offset of the resized image inside `padded`
    """

    cv2 = _import_cv2()

    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)

    h, w = image.shape[:2]
    new_w, new_h = new_shape

    r = min(new_w / w, new_h / h)
    resized_w, resized_h = max(1, int(round(w * r))), max(1, int(round(h * r)))
    dw, dh = new_w - resized_w, new_h - resized_h

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    left, top = dw // 2, dh // 2
    right, bottom = dw - left, dh - top
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, r, (float(left), float(top))


def preprocess(
    image: np.ndarray,
    target_size: int,
    color: Tuple[int, int, int] = (114, 114, 114),
) -> PreprocessResult:
    """
    Letterbox `image` into a `target_size` square and build the model input.

    The tensor is float32 (1, 3, S, S), RGB, scaled to [0, 1]. The source
    image is not modified.
    """

    if int(target_size) < 1:
        raise ValueError(f"target_size must be >= 1, got {target_size}")
    target_size = int(target_size)

    image_bgr = ensure_bgr(image)
    orig_h, orig_w = image_bgr.shape[:2]

    img, scale, pad = letterbox(image_bgr, new_shape=(target_size, target_size), color=color)

    # BGR -> RGB, normalize, HWC -> CHW, add batch
    tensor = img[:, :, ::-1].astype(np.float32) / 255.0
    tensor = np.ascontiguousarray(np.transpose(tensor, (2, 0, 1))[None, ...])

    logger.debug(
        "preprocess: %dx%d -> %d (scale=%.4f, pad=(%.1f, %.1f))",
        orig_w,
        orig_h,
        target_size,
        scale,
        pad[0],
        pad[1],
    )
    return PreprocessResult(
        tensor=tensor,
        scale=float(scale),
        pad_x=pad[0],
        pad_y=pad[1],
        original_width=int(orig_w),
        original_height=int(orig_h),
        target_size=target_size,
    )
