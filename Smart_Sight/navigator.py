from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

from sight_kit.runtime import DetectionPipeline
from sight_kit.scheduler import RunnerStats, SingleFlightRunner
from sight_kit.types import Detection

from .announcer import AnnouncementState, Speaker, new_announcements


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameReport:
    """
    What the UI receives per processed frame. Scaling boxes onto the display
    surface is the UI's job.
    """

    source_width: int
    source_height: int
    display_width: int
    detections: Tuple[Detection, ...]
    announcements: Tuple[str, ...] = ()


@dataclass
class _Frame:
    image: np.ndarray
    display_width: int
    release: Optional[Callable[[], None]] = field(default=None, repr=False)


class Navigator:
    """
    Connects camera frames to the detection pipeline, spoken announcements and
    the UI callback.

    Frames arrive through `submit_frame` from the capture thread; detection runs
    on a single worker and frames that arrive while a pass is in flight are
    dropped (their `release` callback is still invoked).
    """

    def __init__(
        self,
        pipeline: DetectionPipeline,
        speaker: Speaker,
        on_frame: Optional[Callable[[FrameReport], None]] = None,
        state: Optional[AnnouncementState] = None,
    ):
        self.pipeline = pipeline
        self.speaker = speaker
        self.on_frame = on_frame
        self.state = state if state is not None else AnnouncementState()
        # Detection count of the most recently processed frame.
        self.live_detections = 0
        self._runner: SingleFlightRunner[_Frame, FrameReport] = SingleFlightRunner(
            self._handle,
            on_drop=self._release,
            name="navigator-detection",
        )

    @property
    def stats(self) -> RunnerStats:
        return self._runner.stats

    def start(self) -> "Navigator":
        self._runner.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._runner.stop(timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._runner.wait_idle(timeout)

    def __enter__(self) -> "Navigator":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def submit_frame(
        self,
        image: np.ndarray,
        display_width: int,
        release: Optional[Callable[[], None]] = None,
    ) -> bool:
        return self._runner.submit(_Frame(image=image, display_width=display_width, release=release))

    def process_frame(self, image: np.ndarray, display_width: int) -> FrameReport:
        """
        Synchronous variant of `submit_frame` for still images and tests.
        """

        return self._handle(_Frame(image=image, display_width=display_width))

    def _handle(self, frame: _Frame) -> FrameReport:
        try:
            height, width = frame.image.shape[:2]
            detections: List[Detection] = self.pipeline.detect(frame.image)
            messages = new_announcements(detections, self.state)
            for message in messages:
                self.speaker.speak(message)

            self.live_detections = len(detections)
            report = FrameReport(
                source_width=int(width),
                source_height=int(height),
                display_width=int(frame.display_width),
                detections=tuple(detections),
                announcements=tuple(messages),
            )
            if self.on_frame is not None:
                self.on_frame(report)
            return report
        finally:
            self._release(frame)

    @staticmethod
    def _release(frame: _Frame) -> None:
        if frame.release is not None:
            frame.release()
