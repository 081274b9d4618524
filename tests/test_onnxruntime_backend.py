import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import numpy as np

from rebar_kit.backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig, shape_matches
from rebar_kit.errors import InferenceError
from rebar_kit.runtime import load_pipeline


class FakeSession:
    """Stands in for `onnxruntime.InferenceSession` with a fixed I/O signature."""

    def __init__(self, path, sess_options=None, providers=None):
        self.path = path
        self.fail_with = None
        self.runs = []

    def get_inputs(self):
        return [SimpleNamespace(name="images", shape=["batch", 3, 64, 64])]

    def get_outputs(self):
        return [SimpleNamespace(name="output0", shape=[1, 6, 8400])]

    def get_providers(self):
        return ["CPUExecutionProvider"]

    def run(self, names, inputs):
        if self.fail_with is not None:
            raise self.fail_with
        self.runs.append((names, inputs))
        return [np.zeros((1, 6, 8400), dtype=np.float32)]


class TestShapeMatches(unittest.TestCase):
    def test_static_shape(self) -> None:
        self.assertTrue(shape_matches((1, 3, 640, 640), (1, 3, 640, 640)))
        self.assertFalse(shape_matches((1, 3, 640, 640), (1, 3, 320, 320)))

    def test_dynamic_axes_match_anything(self) -> None:
        self.assertTrue(shape_matches((None, 3, None, None), (1, 3, 320, 480)))

    def test_rank_mismatch(self) -> None:
        self.assertFalse(shape_matches((1, 3, 640, 640), (3, 640, 640)))


class TestOnnxRuntimeBackend(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.NamedTemporaryFile(suffix=".onnx", delete=False)
        tmp.close()
        self.model_path = Path(tmp.name)
        self.addCleanup(self.model_path.unlink)

        patcher = mock.patch("onnxruntime.InferenceSession", FakeSession)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.backend = OnnxRuntimeBackend(self.model_path)

    def test_reads_model_signature(self) -> None:
        self.assertEqual(self.backend.input_name, "images")
        self.assertEqual(self.backend.output_name, "output0")
        self.assertEqual(self.backend.input_shape, (None, 3, 64, 64))
        self.assertEqual(self.backend.providers_in_use, ("CPUExecutionProvider",))

    def test_infer_returns_first_output(self) -> None:
        out = self.backend.infer(np.zeros((1, 3, 64, 64), dtype=np.float64))
        self.assertEqual(out.shape, (1, 6, 8400))
        ((names, inputs),) = self.backend.session.runs
        self.assertEqual(names, ["output0"])
        self.assertEqual(inputs["images"].dtype, np.float32)

    def test_shape_mismatch_raises_inference_error(self) -> None:
        with self.assertRaises(InferenceError):
            self.backend.infer(np.zeros((1, 3, 32, 32), dtype=np.float32))
        self.assertEqual(self.backend.session.runs, [])

    def test_runtime_failure_is_wrapped(self) -> None:
        self.backend.session.fail_with = RuntimeError("[ONNXRuntimeError] : 6 : RUNTIME_EXCEPTION")
        with self.assertRaises(InferenceError) as ctx:
            self.backend.infer(np.zeros((1, 3, 64, 64), dtype=np.float32))
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_unknown_input_name(self) -> None:
        with self.assertRaises(ValueError):
            OnnxRuntimeBackend(self.model_path, OnnxRuntimeBackendConfig(input_name="pixel_values"))


class TestBackendLoading(unittest.TestCase):
    def test_missing_model_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            OnnxRuntimeBackend("does/not/exist.onnx")

    def test_load_pipeline_rejects_other_formats(self) -> None:
        with self.assertRaises(ValueError):
            load_pipeline("/tmp/model.engine")


if __name__ == "__main__":
    unittest.main()
