from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Detection


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    # None keeps every survivor.
    max_detections: Optional[int] = None
    # Class-agnostic: any two boxes above the IoU threshold suppress each other,
    # whatever their predicted class.
    class_agnostic: bool = True


def box_iou(a: Sequence[float], b: Sequence[float]) -> float:
    """
    IoU of two xyxy boxes. A non-positive union yields 0.0.
    """

    ax1, ay1, ax2, ay2 = a
    bx1, by1, bx2, by2 = b
    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    union = (ax2 - ax1) * (ay2 - ay1) + (bx2 - bx1) * (by2 - by1) - inter
    if union <= 0:
        return 0.0
    return float(inter / union)


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, highest score first.

    Sorting is stable, so equal scores keep their input order.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = (x2 - x1) * (y2 - y1)

    order = np.argsort(-scores, kind="stable")
    keep = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(i)

        rest = order[1:]
        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[rest] - inter
        positive = union > 0
        iou = np.zeros_like(inter)
        np.divide(inter, union, out=iou, where=positive)

        order = rest[iou <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(detections: Sequence[Detection], cfg: Optional[NMSConfig] = None) -> List[Detection]:
    """
    Run NMS over Detection values; output is in descending-confidence order.
    """

    cfg = cfg if cfg is not None else NMSConfig()
    if not detections:
        return []

    boxes = np.array([d.as_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.confidence for d in detections], dtype=np.float64)

    if cfg.class_agnostic:
        keep_idx = nms(boxes, scores, cfg)
        return [detections[int(i)] for i in keep_idx]

    class_ids = np.array([d.class_id for d in detections], dtype=np.int64)
    per_class = NMSConfig(iou_threshold=cfg.iou_threshold, max_detections=None)
    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.flatnonzero(class_ids == cls)
        keep_local = nms(boxes[idx], scores[idx], per_class)
        kept.extend(int(k) for k in idx[keep_local])

    kept.sort(key=lambda k: (-scores[k], k))
    if cfg.max_detections is not None:
        kept = kept[: cfg.max_detections]
    return [detections[k] for k in kept]
