from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

import numpy as np

from .config import PipelineConfig
from .decode import decode
from .errors import InferenceError, MalformedOutputError
from .letterbox import preprocess
from .metadata import load_class_names
from .nms import suppress
from .types import Detection, PreprocessResult
from .visualize import render

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Any]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery.

    Models and label files usually live under `<root>/models`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class DetectionPipeline:
    """
    Preprocess (letterbox) -> inference -> decode -> per-class NMS.

    `infer_fn` is any callable taking the (1, 3, S, S) float32 tensor and
    returning the raw output array (or a sequence of arrays, see
    `PipelineConfig.output_index`). The pipeline keeps no per-call state, so
    one instance can serve several threads if `infer_fn` allows it.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        config: PipelineConfig = PipelineConfig(),
        *,
        class_names: Optional[Sequence[str]] = None,
        backend: Optional[object] = None,
    ):
        self._infer_fn = infer_fn
        self.config = config
        self.backend = backend
        self.class_names = tuple(class_names) if class_names is not None else None

        num_classes = config.num_classes
        if self.class_names is not None:
            if num_classes is None:
                num_classes = len(self.class_names)
            elif num_classes != len(self.class_names):
                raise ValueError(
                    f"num_classes={num_classes} does not match {len(self.class_names)} class labels"
                )
        if num_classes is None:
            raise ValueError("num_classes must be set when no class labels are given")
        self.num_classes = int(num_classes)

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        return preprocess(image, self.config.target_size, color=self.config.pad_color)

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        """
        Call the inference collaborator and pick the detection output.
        """

        try:
            outputs = self._infer_fn(tensor)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        # A sequence of arrays is several model outputs; a nested list is one output.
        if isinstance(outputs, (list, tuple)) and outputs and isinstance(outputs[0], np.ndarray):
            idx = self.config.output_index
            if idx >= len(outputs):
                raise MalformedOutputError(
                    f"Model returned {len(outputs)} outputs, output_index={idx} is out of range."
                )
            outputs = outputs[idx]
        if outputs is None:
            raise MalformedOutputError("Model returned no output.")
        return outputs

    def detect(self, image: np.ndarray) -> List[Detection]:
        cfg = self.config
        t0 = time.perf_counter()
        prep = self.preprocess(image)
        t1 = time.perf_counter()
        output = self.infer(prep.tensor)
        t2 = time.perf_counter()
        raw = decode(
            output,
            self.num_classes,
            layout=cfg.output_layout,
            min_score=cfg.decode_min_score,
        )
        detections = suppress(
            raw,
            cfg.confidence_threshold,
            cfg.iou_threshold,
            prep,
            class_names=self.class_names,
            max_detections=cfg.max_detections,
        )
        t3 = time.perf_counter()
        logger.debug(
            "detect: %d detections (pre %.1f ms, infer %.1f ms, post %.1f ms)",
            len(detections),
            (t1 - t0) * 1000.0,
            (t2 - t1) * 1000.0,
            (t3 - t2) * 1000.0,
        )
        return detections

    def __call__(self, image: np.ndarray) -> List[Detection]:
        return self.detect(image)

    def annotate(self, image: np.ndarray, detections: Sequence[Detection]) -> np.ndarray:
        return render(image, detections)


def load_pipeline(
    model_path: PathLike,
    *,
    labels_path: Optional[PathLike] = None,
    config: PipelineConfig = PipelineConfig(),
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> DetectionPipeline:
    """
    Create a pipeline for an ONNX model on disk.

    Typical usage:
        pipe = load_pipeline("models/yolo11n_rebar.onnx", labels_path="models/labels.txt")

    Args:
        model_path: path to the .onnx model; relative paths resolve against project root by default
        labels_path: optional class label file (see `load_class_names`)
        root: base directory for resolving relative paths ("auto" uses best-effort project root)
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Only .onnx models are supported, got '{resolved.suffix}'.")

    class_names = None
    if labels_path is not None:
        class_names = load_class_names(resolve_path(labels_path, root=root))

    backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
        ),
    )
    logger.info(
        "Loaded %s (input %s, providers %s)",
        resolved.name,
        backend.input_shape,
        ", ".join(backend.providers_in_use),
    )
    return DetectionPipeline(backend.infer, config, class_names=class_names, backend=backend)
