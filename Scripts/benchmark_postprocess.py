from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from sight_kit import CandidateFilter, ClassThresholds, FilterConfig, NMSConfig, RawOutput, TensorDecoder, suppress


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)),
        p50_ms=_percentile(ms_sorted, 50.0),
        p90_ms=_percentile(ms_sorted, 90.0),
        p95_ms=_percentile(ms_sorted, 95.0),
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_output(num_slots: int, num_classes: int, imgsz: int, seed: int = 0) -> RawOutput:
    """
    Random channel-major (4 + C, N) tensor in input-pixel geometry. Scores are
    mostly low, like a real frame, with a handful of confident slots.
    """

    rng = np.random.default_rng(seed)
    out = np.empty((4 + num_classes, num_slots), dtype=np.float32)
    out[0:2] = rng.uniform(0, imgsz, size=(2, num_slots))
    out[2:4] = rng.uniform(8, imgsz / 4, size=(2, num_slots))
    out[4:] = rng.uniform(0.0, 0.1, size=(num_classes, num_slots))
    hot = rng.choice(num_slots, size=min(num_slots, 40), replace=False)
    out[4 + rng.integers(0, num_classes, size=hot.size), hot] = rng.uniform(0.2, 0.95, size=hot.size)
    return RawOutput(buffer=out.reshape(-1), num_slots=num_slots, num_classes=num_classes)


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode + class filter + NMS on synthetic model outputs.")
    parser.add_argument("--slots", type=int, default=8400, help="Candidate slots N (8400 for 640x640 YOLOv8).")
    parser.add_argument("--classes", type=int, default=80, help="Class count C.")
    parser.add_argument("--imgsz", type=int, default=640, help="Square model input size.")
    parser.add_argument("--orig-width", type=int, default=1280)
    parser.add_argument("--orig-height", type=int, default=720)
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup iterations to run but not record.")
    parser.add_argument("--repeats", type=int, default=200, help="Recorded iterations.")
    args = parser.parse_args()

    if args.slots < 1:
        raise ValueError("--slots must be >= 1")
    if args.classes < 1:
        raise ValueError("--classes must be >= 1")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    labels = [f"class_{i}" for i in range(int(args.classes))]
    labels[0] = "Chair"
    candidates = CandidateFilter(labels, ClassThresholds(), FilterConfig(input_size=int(args.imgsz)))
    nms_cfg = NMSConfig(iou_threshold=float(args.iou))
    output = synthetic_output(int(args.slots), int(args.classes), int(args.imgsz))
    orig_size = (int(args.orig_width), int(args.orig_height))

    t_filter: List[float] = []
    t_nms: List[float] = []
    kept_counts: List[int] = []

    for i in range(int(args.warmup) + int(args.repeats)):
        t0 = time.perf_counter()
        decoder = TensorDecoder(output.buffer, output.num_slots, output.num_classes)
        dets = candidates.filter(decoder, orig_size)
        t1 = time.perf_counter()
        kept = suppress(dets, nms_cfg)
        t2 = time.perf_counter()

        if i < int(args.warmup):
            continue
        t_filter.append(t1 - t0)
        t_nms.append(t2 - t1)
        kept_counts.append(len(kept))

    print(_format_summary("decode_and_filter", _summarize_ms(t_filter)))
    print(_format_summary("nms", _summarize_ms(t_nms)))
    print(_format_summary("total", _summarize_ms([a + b for a, b in zip(t_filter, t_nms)])))
    print(f"slots={args.slots} classes={args.classes} kept_mean={statistics.fmean(kept_counts):.1f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
