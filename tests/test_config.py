import json
import tempfile
import unittest
from pathlib import Path

from rebar_kit.config import PipelineConfig, load_pipeline_config
from rebar_kit.metadata import load_class_names


class TestPipelineConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        self.assertEqual(cfg.target_size, 640)
        self.assertEqual(cfg.confidence_threshold, 0.25)
        self.assertEqual(cfg.iou_threshold, 0.45)
        self.assertIsNone(cfg.num_classes)

    def test_validation(self) -> None:
        bad = [
            {"target_size": 0},
            {"confidence_threshold": 1.5},
            {"iou_threshold": -0.1},
            {"num_classes": 0},
            {"max_detections": 0},
            {"pad_color": (0, 0)},
            {"pad_color": (0, 0, 300)},
            {"output_layout": "columns"},
            {"output_index": -1},
            {"min_score": 0.5},
        ]
        for kwargs in bad:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValueError):
                    PipelineConfig(**kwargs)

    def test_decode_min_score_never_exceeds_threshold(self) -> None:
        cfg = PipelineConfig(confidence_threshold=0.0, min_score=1e-6)
        self.assertEqual(cfg.decode_min_score, 0.0)


class TestLoadPipelineConfig(unittest.TestCase):
    def _write(self, payload) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
        with tmp:
            tmp.write(payload if isinstance(payload, str) else json.dumps(payload))
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_loads_values(self) -> None:
        path = self._write(
            {
                "target_size": 320,
                "confidence_threshold": 0.4,
                "iou_threshold": 0.5,
                "num_classes": 1,
                "pad_color": [0, 0, 0],
                "output_layout": "channels_first",
            }
        )
        cfg = load_pipeline_config(path)
        self.assertEqual(cfg.target_size, 320)
        self.assertEqual(cfg.confidence_threshold, 0.4)
        self.assertEqual(cfg.iou_threshold, 0.5)
        self.assertEqual(cfg.num_classes, 1)
        self.assertEqual(cfg.pad_color, (0, 0, 0))
        self.assertEqual(cfg.output_layout, "channels_first")
        self.assertEqual(cfg.max_detections, 300)

    def test_unknown_key(self) -> None:
        with self.assertRaises(ValueError):
            load_pipeline_config(self._write({"conf": 0.3}))

    def test_wrong_types(self) -> None:
        for payload in ({"target_size": "640"}, {"target_size": True}, {"iou_threshold": "x"}, {"pad_color": "gray"}):
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    load_pipeline_config(self._write(payload))

    def test_invalid_json(self) -> None:
        with self.assertRaises(ValueError):
            load_pipeline_config(self._write("{not json"))
        with self.assertRaises(ValueError):
            load_pipeline_config(self._write([1, 2]))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_pipeline_config(Path("does/not/exist.json"))


class TestLoadClassNames(unittest.TestCase):
    def _write(self, text: str, suffix: str) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=suffix, delete=False, encoding="utf-8")
        with tmp:
            tmp.write(text)
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_names_mapping(self) -> None:
        path = self._write("# model metadata\nnames:\n  1: 'stirrup'\n  0: rebar\nstride: 32\n", ".yaml")
        self.assertEqual(load_class_names(path), ["rebar", "stirrup"])

    def test_plain_text(self) -> None:
        path = self._write("rebar\n\n# comment\nstirrup\n", ".txt")
        self.assertEqual(load_class_names(path), ["rebar", "stirrup"])

    def test_gap_in_ids(self) -> None:
        path = self._write("names:\n  0: rebar\n  2: stirrup\n", ".yaml")
        with self.assertRaises(ValueError):
            load_class_names(path)

    def test_empty(self) -> None:
        with self.assertRaises(ValueError):
            load_class_names(self._write("\n# nothing\n", ".txt"))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_class_names("does/not/exist.txt")


if __name__ == "__main__":
    unittest.main()
