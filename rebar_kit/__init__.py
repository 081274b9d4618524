"""
Still-image object detection helpers: letterbox, decode, per-class NMS, render.

The inference engine is a plain callable (tensor in, raw output out), so the
pipeline runs against ONNX Runtime or against a stub in tests.
"""

from .types import Detection, PreprocessResult, RawDetection, Rect
from .errors import DetectionError, InferenceError, InvalidImageError, MalformedOutputError
from .geometry import clamp_rect, iou, to_original
from .letterbox import letterbox, preprocess
from .decode import decode
from .nms import nms, suppress
from .config import PipelineConfig, load_pipeline_config
from .runtime import DetectionPipeline, load_pipeline, find_project_root, resolve_path
from .metadata import load_class_names
from .visualize import render

__all__ = [
    "Detection",
    "PreprocessResult",
    "RawDetection",
    "Rect",
    "DetectionError",
    "InferenceError",
    "InvalidImageError",
    "MalformedOutputError",
    "clamp_rect",
    "iou",
    "to_original",
    "letterbox",
    "preprocess",
    "decode",
    "nms",
    "suppress",
    "PipelineConfig",
    "load_pipeline_config",
    "DetectionPipeline",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "load_class_names",
    "render",
]
