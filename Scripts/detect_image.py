import argparse
import logging
from dataclasses import replace

import cv2

from rebar_kit import DetectionError, PipelineConfig, load_pipeline, load_pipeline_config

logger = logging.getLogger("detect_image")


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect objects in one image and draw the boxes.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--model", default="models/yolo11n_rebar.onnx", help="Path to an ONNX detection model.")
    parser.add_argument("--labels", default=None, help="Class label file (names: mapping or one label per line).")
    parser.add_argument("--config", default=None, help="Optional pipeline config JSON.")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size (e.g., 640).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--out", default=None, help="Optional output path for the annotated image.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_pipeline_config(args.config) if args.config else PipelineConfig()
    overrides = {}
    if args.imgsz is not None:
        overrides["target_size"] = int(args.imgsz)
    if args.conf is not None:
        overrides["confidence_threshold"] = float(args.conf)
    if args.iou is not None:
        overrides["iou_threshold"] = float(args.iou)
    if overrides:
        config = replace(config, **overrides)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    try:
        pipeline = load_pipeline(
            args.model,
            labels_path=args.labels,
            config=config,
            onnx_providers=onnx_providers,
        )
        detections = pipeline.detect(img)
        vis = pipeline.annotate(img, detections)
    except DetectionError as exc:
        logger.error("Detection failed: %s", exc)
        return 1

    for det in detections:
        print(det.label, f"{det.confidence:.3f}", tuple(round(v, 1) for v in det.as_xyxy()))
    logger.info("Detected %d objects", len(detections))

    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.show:
        cv2.imshow("detections", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
