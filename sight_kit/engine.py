from __future__ import annotations

from typing import NamedTuple, Protocol

import numpy as np

from .errors import MalformedOutput


class RawOutput(NamedTuple):
    """
    Flat model output plus its declared shape: `(4 + num_classes) * num_slots`
    values laid out channel-major.
    """

    buffer: np.ndarray
    num_slots: int
    num_classes: int


class InferenceEngine(Protocol):
    """
    Opaque inference call. `pixels` is an (H, W, 3) RGB uint8 image already
    resized to the square input resolution the model expects. The result may
    be a RawOutput or any plain `(buffer, N, C)` tuple.
    """

    def infer(self, pixels: np.ndarray, width: int, height: int) -> RawOutput:
        ...


def raw_output_from_array(preds: np.ndarray) -> RawOutput:
    """
    Convert a `(1, 4 + C, N)` or `(4 + C, N)` model output into a RawOutput.

    Exports that put slots first, `(N, 4 + C)`, are transposed when the slot
    axis is clearly the larger one.
    """

    p = np.asarray(preds, dtype=np.float32)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise MalformedOutput(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
        p = p[0]
    if p.ndim != 2:
        raise MalformedOutput(f"Unsupported output shape: {p.shape}")

    rows, cols = p.shape
    if rows > cols:
        p = p.T
        rows, cols = cols, rows
    if rows < 5:
        raise MalformedOutput(f"Expected at least 5 channels (x, y, w, h, score), got shape {p.shape}")

    flat = np.ascontiguousarray(p).reshape(-1)
    return RawOutput(buffer=flat, num_slots=cols, num_classes=rows - 4)
