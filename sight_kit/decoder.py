from __future__ import annotations

from typing import Tuple, Union

import numpy as np

from .errors import MalformedOutput, OutOfRange


BOX_CHANNELS = 4

BufferLike = Union[np.ndarray, bytes, bytearray, memoryview]


def _as_flat_view(buffer: BufferLike) -> np.ndarray:
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        # Raw tensor bytes straight from an interpreter output (native float32).
        return np.frombuffer(buffer, dtype=np.float32)
    arr = np.asarray(buffer, dtype=np.float32)
    return arr.reshape(-1)


class SlotView:
    """
    Read-only accessor for one candidate slot. Scores are fetched on demand.
    """

    __slots__ = ("_decoder", "index")

    def __init__(self, decoder: "TensorDecoder", index: int):
        self._decoder = decoder
        self.index = index

    @property
    def x(self) -> float:
        return self._decoder.value(0, self.index)

    @property
    def y(self) -> float:
        return self._decoder.value(1, self.index)

    @property
    def w(self) -> float:
        return self._decoder.value(2, self.index)

    @property
    def h(self) -> float:
        return self._decoder.value(3, self.index)

    @property
    def scores(self) -> np.ndarray:
        return self._decoder.class_scores(self.index)


class TensorDecoder:
    """
    Channel-major view over a flat YOLO-style output buffer.

    Layout is `(4 + C, N)` flattened: x, y, w, h, then C class scores, each
    channel holding one value per candidate slot. Channel `k` of slot `i` lives
    at flat offset `k * N + i`. The buffer is never copied; every read is
    bounds-checked against both the declared shape and the real buffer length.
    """

    def __init__(self, buffer: BufferLike, num_slots: int, num_classes: int):
        if num_slots < 0 or num_classes < 0:
            raise MalformedOutput(f"Invalid output dimensions N={num_slots}, C={num_classes}")
        self._flat = _as_flat_view(buffer)
        self.num_slots = int(num_slots)
        self.num_classes = int(num_classes)

    def __len__(self) -> int:
        return self.num_slots

    @property
    def num_channels(self) -> int:
        return BOX_CHANNELS + self.num_classes

    def _check_slot(self, slot: int) -> None:
        if slot < 0 or slot >= self.num_slots:
            raise OutOfRange(f"Slot {slot} out of range for N={self.num_slots}")

    def _check_channel(self, channel: int) -> None:
        if channel < 0 or channel >= self.num_channels:
            raise OutOfRange(f"Channel {channel} out of range for 4 + C={self.num_channels}")

    def _check_span(self, end: int) -> None:
        if end > self._flat.size:
            raise OutOfRange(
                f"Read up to offset {end} exceeds buffer of {self._flat.size} values "
                f"(declared N={self.num_slots}, C={self.num_classes})"
            )

    def value(self, channel: int, slot: int) -> float:
        self._check_channel(channel)
        self._check_slot(slot)
        offset = channel * self.num_slots + slot
        self._check_span(offset + 1)
        return float(self._flat[offset])

    def geometry(self, slot: int) -> Tuple[float, float, float, float]:
        return (
            self.value(0, slot),
            self.value(1, slot),
            self.value(2, slot),
            self.value(3, slot),
        )

    def channel(self, channel: int) -> np.ndarray:
        self._check_channel(channel)
        start = channel * self.num_slots
        self._check_span(start + self.num_slots)
        return self._flat[start : start + self.num_slots]

    def class_scores(self, slot: int) -> np.ndarray:
        self._check_slot(slot)
        if self.num_classes == 0:
            return self._flat[:0]
        start = BOX_CHANNELS * self.num_slots + slot
        self._check_span(start + (self.num_classes - 1) * self.num_slots + 1)
        # Strided view: one value per class channel.
        return self._flat[start :: self.num_slots][: self.num_classes]

    def slot(self, index: int) -> SlotView:
        self._check_slot(index)
        return SlotView(self, index)

    def boxes(self) -> np.ndarray:
        """
        (N, 4) array of raw (cx, cy, w, h) for every slot.
        """

        end = BOX_CHANNELS * self.num_slots
        self._check_span(end)
        return self._flat[:end].reshape(BOX_CHANNELS, self.num_slots).T

    def score_matrix(self, count: int) -> np.ndarray:
        """
        (count, N) view over the first `count` class channels.
        """

        if count > self.num_classes:
            raise OutOfRange(f"Requested {count} class channels but C={self.num_classes}")
        start = BOX_CHANNELS * self.num_slots
        end = start + count * self.num_slots
        self._check_span(end)
        return self._flat[start:end].reshape(count, self.num_slots)
