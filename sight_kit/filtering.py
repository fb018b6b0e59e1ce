from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .decoder import TensorDecoder
from .errors import EmptyLabelTable
from .types import Detection, Zone


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassThresholds:
    """
    Class-dependent confidence bar: one default plus per-name overrides.

    Override lookup ignores case, so "chair" and "Chair" share a threshold.
    """

    default: float = 0.15
    overrides: Mapping[str, float] = field(default_factory=lambda: {"Chair": 0.35})

    def __post_init__(self) -> None:
        if not 0.0 <= self.default < 1.0:
            raise ValueError("default threshold must be in [0, 1)")
        for name, value in self.overrides.items():
            if not 0.0 <= float(value) < 1.0:
                raise ValueError(f"threshold for {name!r} must be in [0, 1)")

    def for_class(self, class_name: str) -> float:
        key = class_name.strip().lower()
        for name, value in self.overrides.items():
            if name.strip().lower() == key:
                return float(value)
        return float(self.default)

    def as_array(self, labels: Sequence[str]) -> np.ndarray:
        return np.array([self.for_class(name) for name in labels], dtype=np.float32)


@dataclass(frozen=True)
class FilterConfig:
    # Square model input resolution (pixels per side).
    input_size: int = 640
    # True when the model emits 0..1 geometry instead of input-pixel geometry.
    normalized_coords: bool = False

    def __post_init__(self) -> None:
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")


def zone_for_center(center_x: float, image_width: float) -> Zone:
    left_boundary = image_width / 3.0
    right_boundary = image_width * 2.0 / 3.0
    if center_x <= left_boundary:
        return Zone.LEFT
    if center_x > right_boundary:
        return Zone.RIGHT
    return Zone.FRONT


class CandidateFilter:
    """
    Best-class selection, class-dependent thresholding and mapping to original
    image pixels.

    The label table is read-only for the filter's lifetime.
    """

    def __init__(
        self,
        labels: Sequence[str],
        thresholds: Optional[ClassThresholds] = None,
        cfg: FilterConfig = FilterConfig(),
    ):
        self.labels: Tuple[str, ...] = tuple(labels)
        self.thresholds = thresholds if thresholds is not None else ClassThresholds()
        self.cfg = cfg
        self._class_thresholds = self.thresholds.as_array(self.labels)

    def scale_factors(self, orig_size: Tuple[int, int]) -> Tuple[float, float]:
        orig_w, orig_h = orig_size
        if self.cfg.normalized_coords:
            return float(orig_w), float(orig_h)
        return orig_w / float(self.cfg.input_size), orig_h / float(self.cfg.input_size)

    def filter(self, decoder: TensorDecoder, orig_size: Tuple[int, int]) -> List[Detection]:
        """
        Return one Detection per surviving slot, in slot order.

        Args:
            decoder: view over the raw model output
            orig_size: (width, height) of the image before resizing
        """

        if not self.labels:
            raise EmptyLabelTable("Label table is empty")
        if len(decoder) == 0:
            return []

        # Only as many class channels as there are labels are scored; a label
        # table larger than the model's C surfaces as OutOfRange.
        scores = decoder.score_matrix(len(self.labels))
        class_ids = np.argmax(scores, axis=0)
        # Compared in the model's float32 so a score equal to its threshold is rejected.
        conf = scores[class_ids, np.arange(scores.shape[1])].astype(np.float32)
        keep = np.flatnonzero(conf > self._class_thresholds[class_ids])
        if keep.size == 0:
            return []

        raw = decoder.boxes()[keep].astype(np.float64)
        cx, cy, w, h = raw.T
        sx, sy = self.scale_factors(orig_size)
        orig_w, orig_h = float(orig_size[0]), float(orig_size[1])

        x1 = (cx - w / 2.0) * sx
        y1 = (cy - h / 2.0) * sy
        x2 = (cx + w / 2.0) * sx
        y2 = (cy + h / 2.0) * sy
        centers = (x1 + x2) / 2.0

        x1c = np.clip(x1, 0.0, orig_w)
        x2c = np.clip(x2, 0.0, orig_w)
        y1c = np.clip(y1, 0.0, orig_h)
        y2c = np.clip(y2, 0.0, orig_h)

        detections: List[Detection] = []
        dropped = 0
        for j, slot in enumerate(keep):
            if x2c[j] <= x1c[j] or y2c[j] <= y1c[j]:
                dropped += 1
                continue
            cls_id = int(class_ids[slot])
            detections.append(
                Detection(
                    x1=float(x1c[j]),
                    y1=float(y1c[j]),
                    x2=float(x2c[j]),
                    y2=float(y2c[j]),
                    confidence=float(conf[slot]),
                    class_id=cls_id,
                    class_name=self.labels[cls_id],
                    zone=zone_for_center(float(centers[j]), orig_w),
                    raw_center=(float(cx[j]), float(cy[j])),
                    raw_size=(float(w[j]), float(h[j])),
                )
            )

        if dropped:
            logger.debug("Dropped %d degenerate boxes after clamping", dropped)
        return detections
