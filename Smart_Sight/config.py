from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from sight_kit.filtering import ClassThresholds
from sight_kit.nms import NMSConfig
from sight_kit.runtime import DetectionPipeline, PathLike, load_pipeline


@dataclass(frozen=True)
class DetectorProfile:
    schema_version: int
    model_path: str
    labels_path: str
    backend: Optional[str] = None
    input_size: int = 640
    default_threshold: float = 0.15
    class_thresholds: Dict[str, float] = field(default_factory=lambda: {"Chair": 0.35})
    iou_threshold: float = 0.45
    normalized_coords: bool = False
    announce_debounce_seconds: float = 2.0
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector_profile schema_version must be 1")
        if not self.model_path:
            raise ValueError("model_path must not be empty")
        if not self.labels_path:
            raise ValueError("labels_path must not be empty")
        if self.backend is not None and self.backend not in ("onnxruntime", "torchscript"):
            raise ValueError("backend must be 'onnxruntime' or 'torchscript'")
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if not 0.0 <= self.default_threshold < 1.0:
            raise ValueError("default_threshold must be in [0, 1)")
        for name, value in self.class_thresholds.items():
            if not 0.0 <= value < 1.0:
                raise ValueError(f"class_thresholds[{name!r}] must be in [0, 1)")
        if not 0.0 < self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in (0, 1]")
        if self.announce_debounce_seconds < 0:
            raise ValueError("announce_debounce_seconds must be >= 0")

    def thresholds(self) -> ClassThresholds:
        return ClassThresholds(default=self.default_threshold, overrides=dict(self.class_thresholds))


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: int) -> int:
    if key not in payload:
        return default
    return _require_int(payload, key)


def load_detector_profile(path: Path) -> DetectorProfile:
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = {
        "schema_version",
        "model_path",
        "labels_path",
        "backend",
        "input_size",
        "default_threshold",
        "class_thresholds",
        "iou_threshold",
        "normalized_coords",
        "announce_debounce_seconds",
        "notes",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    backend = payload.get("backend")
    if backend is not None and not isinstance(backend, str):
        raise ValueError("backend must be a string if provided")

    class_thresholds = payload.get("class_thresholds", {"Chair": 0.35})
    if not isinstance(class_thresholds, dict):
        raise ValueError("class_thresholds must be an object of name -> number")
    cleaned: Dict[str, float] = {}
    for name, value in class_thresholds.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"class_thresholds[{name!r}] must be a number")
        cleaned[str(name)] = float(value)

    normalized_coords = payload.get("normalized_coords", False)
    if not isinstance(normalized_coords, bool):
        raise ValueError("normalized_coords must be a boolean")

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string if provided")

    return DetectorProfile(
        schema_version=_require_int(payload, "schema_version"),
        model_path=_require_str(payload, "model_path"),
        labels_path=_require_str(payload, "labels_path"),
        backend=backend,
        input_size=_optional_int(payload, "input_size", 640),
        default_threshold=_optional_number(payload, "default_threshold", 0.15),
        class_thresholds=cleaned,
        iou_threshold=_optional_number(payload, "iou_threshold", 0.45),
        normalized_coords=normalized_coords,
        announce_debounce_seconds=_optional_number(payload, "announce_debounce_seconds", 2.0),
        notes=notes,
    )


def pipeline_from_profile(
    profile: DetectorProfile,
    *,
    root: Optional[PathLike] = "auto",
    bgr_input: bool = False,
) -> DetectionPipeline:
    return load_pipeline(
        profile.model_path,
        profile.labels_path,
        backend=profile.backend,
        root=root,
        input_size=profile.input_size,
        thresholds=profile.thresholds(),
        nms_cfg=NMSConfig(iou_threshold=profile.iou_threshold),
        normalized_coords=profile.normalized_coords,
        bgr_input=bgr_input,
    )
