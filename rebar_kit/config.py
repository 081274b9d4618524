from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .decode import LAYOUTS


@dataclass(frozen=True)
class PipelineConfig:
    target_size: int = 640
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    # None: taken from the class label table.
    num_classes: Optional[int] = None
    max_detections: Optional[int] = 300
    pad_color: Tuple[int, int, int] = (114, 114, 114)
    output_layout: str = "auto"
    output_index: int = 0
    # Memory bound applied by the decoder, never above confidence_threshold.
    min_score: float = 1e-6

    def __post_init__(self) -> None:
        if self.target_size < 1:
            raise ValueError("target_size must be >= 1")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.num_classes is not None and self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")
        if len(self.pad_color) != 3 or any(not 0 <= int(c) <= 255 for c in self.pad_color):
            raise ValueError("pad_color must be three values in [0, 255]")
        if self.output_layout not in LAYOUTS:
            raise ValueError(f"output_layout must be one of {LAYOUTS}")
        if self.output_index < 0:
            raise ValueError("output_index must be >= 0")
        if not 0.0 <= self.min_score <= 1e-3:
            raise ValueError("min_score must be in [0, 1e-3]")

    @property
    def decode_min_score(self) -> float:
        return min(self.min_score, self.confidence_threshold)


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_pipeline_config(path: Path) -> PipelineConfig:
    """
    Read a `PipelineConfig` from a JSON object. Missing keys keep defaults.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid pipeline config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Pipeline config must be a JSON object")

    allowed = {
        "target_size",
        "confidence_threshold",
        "iou_threshold",
        "num_classes",
        "max_detections",
        "pad_color",
        "output_layout",
        "output_index",
        "min_score",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown pipeline config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in ("target_size", "output_index"):
        if key in payload:
            kwargs[key] = _require_int(payload, key)
    for key in ("confidence_threshold", "iou_threshold", "min_score"):
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    for key in ("num_classes", "max_detections"):
        if key in payload:
            kwargs[key] = None if payload[key] is None else _require_int(payload, key)
    if "pad_color" in payload:
        color = payload["pad_color"]
        if not isinstance(color, list) or len(color) != 3 or any(isinstance(c, bool) or not isinstance(c, int) for c in color):
            raise ValueError("pad_color must be a list of three integers")
        kwargs["pad_color"] = tuple(color)
    if "output_layout" in payload:
        layout = payload["output_layout"]
        if not isinstance(layout, str):
            raise ValueError("output_layout must be a string")
        kwargs["output_layout"] = layout

    return PipelineConfig(**kwargs)
