from __future__ import annotations

import argparse
from pathlib import Path

import cv2

from Smart_Sight import AnnouncementState, load_detector_profile, new_announcements, pipeline_from_profile, setup_logging
from sight_kit import ClassThresholds, load_pipeline


def read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect obstacles in one image and print what would be announced.")
    parser.add_argument("--image", required=True, help="Path to an image file.")
    parser.add_argument("--profile", default=None, help="Detector profile JSON (overrides --model/--labels).")
    parser.add_argument("--model", default="models/smartsight.onnx", help="Model file (.onnx or TorchScript).")
    parser.add_argument("--labels", default="models/labels.txt", help="Label table (labels.txt or metadata.yaml).")
    parser.add_argument("--backend", default=None, choices=["onnxruntime", "torchscript"])
    parser.add_argument("--imgsz", type=int, default=640, help="Square model input size.")
    parser.add_argument("--conf", type=float, default=0.15, help="Default confidence threshold.")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)

    if args.profile:
        profile = load_detector_profile(Path(args.profile))
        pipeline = pipeline_from_profile(profile, bgr_input=True)
    else:
        pipeline = load_pipeline(
            model_path=args.model,
            labels_path=args.labels,
            backend=args.backend,
            input_size=int(args.imgsz),
            thresholds=ClassThresholds(default=float(args.conf)),
            bgr_input=True,
        )

    image = read_image(args.image)
    detections = pipeline(image)
    if pipeline.last_error is not None:
        print(f"Detection failed: {type(pipeline.last_error).__name__}: {pipeline.last_error}")
        return 1

    h, w = image.shape[:2]
    print(f"Image {w}x{h}: {len(detections)} detections")
    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        print(
            f"  {det.class_name:<16} {det.confidence:.2f} zone={det.zone.value:<5} "
            f"box=({x1:.1f}, {y1:.1f}, {x2:.1f}, {y2:.1f})"
        )

    for message in new_announcements(detections, AnnouncementState()):
        print(f"Announce: {message}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
