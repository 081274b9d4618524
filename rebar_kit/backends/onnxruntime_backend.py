from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import InferenceError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


def shape_matches(declared: Sequence[Optional[int]], actual: Sequence[int]) -> bool:
    """
    Compare a tensor shape with a model's declared shape.

    Symbolic or unknown dimensions (None) match anything.
    """

    if len(declared) != len(actual):
        return False
    return all(d is None or int(d) == int(a) for d, a in zip(declared, actual))


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Expects an NCHW float32 tensor shaped (1, 3, S, S).
    Returns the selected output as a NumPy array.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        model_input = self.session.get_inputs()[0]
        if cfg.input_name is not None:
            model_input = next((i for i in self.session.get_inputs() if i.name == cfg.input_name), None)
            if model_input is None:
                raise ValueError(f"Model has no input named {cfg.input_name!r}")
        self.input_name = model_input.name
        # Dynamic axes come back as strings or None.
        self.input_shape: Tuple[Optional[int], ...] = tuple(d if isinstance(d, int) else None for d in model_input.shape)
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        if not shape_matches(self.input_shape, np.shape(tensor)):
            raise InferenceError(
                f"Input tensor shape {tuple(np.shape(tensor))} does not match model input {self.input_shape}."
            )

        inputs: Dict[str, Any] = {self.input_name: np.ascontiguousarray(tensor, dtype=np.float32)}
        try:
            outputs = self.session.run([self.output_name], inputs)
        except Exception as e:
            raise InferenceError(f"ONNX Runtime failed on {self.model_path.name}: {e}") from e
        logger.debug("onnxruntime: %s -> %s", tuple(np.shape(tensor)), np.shape(outputs[0]))
        return outputs[0]
