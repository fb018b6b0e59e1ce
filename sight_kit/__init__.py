"""
Detection post-processing core for obstacle announcements.

Turns a raw YOLO-style output tensor into filtered, zone-classified,
duplicate-suppressed detections for one camera frame. Framework-agnostic:
works on NumPy buffers from ONNX Runtime, TorchScript or any engine that
follows the `InferenceEngine` protocol. OpenCV is only needed for resizing.
"""

from .types import Detection, Zone
from .errors import DetectionError, EmptyLabelTable, MalformedOutput, ModelUnavailable, OutOfRange
from .decoder import TensorDecoder
from .filtering import CandidateFilter, ClassThresholds, FilterConfig, zone_for_center
from .nms import NMSConfig, box_iou, nms, suppress
from .engine import InferenceEngine, RawOutput, raw_output_from_array
from .labels import load_labels
from .runtime import DetectionPipeline, load_engine, load_pipeline, find_project_root, resolve_path
from .scheduler import RunnerStats, SingleFlightRunner

__all__ = [
    "Detection",
    "Zone",
    "DetectionError",
    "EmptyLabelTable",
    "MalformedOutput",
    "ModelUnavailable",
    "OutOfRange",
    "TensorDecoder",
    "CandidateFilter",
    "ClassThresholds",
    "FilterConfig",
    "zone_for_center",
    "NMSConfig",
    "box_iou",
    "nms",
    "suppress",
    "InferenceEngine",
    "RawOutput",
    "raw_output_from_array",
    "load_labels",
    "DetectionPipeline",
    "load_engine",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "RunnerStats",
    "SingleFlightRunner",
]
