from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, Set, Tuple

from sight_kit.types import Detection, Zone


logger = logging.getLogger(__name__)

AnnouncementKey = Tuple[str, Zone]


@dataclass
class AnnouncementState:
    """
    What was present in the previous frame, keyed by (class name, zone).

    Owned by the caller and passed into every `new_announcements` call; the
    detection core itself keeps nothing between frames.
    """

    last_announced: Set[AnnouncementKey] = field(default_factory=set)

    def reset(self) -> None:
        self.last_announced = set()


def format_announcement(class_name: str, zone: Zone) -> str:
    return f"{class_name} detected in {zone.spoken}"


def new_announcements(detections: Sequence[Detection], state: AnnouncementState) -> List[str]:
    """
    Messages for objects that appeared (or moved zone) since the previous frame.

    Order follows `detections` (confidence-descending out of the pipeline),
    each (class, zone) announced once. The state is replaced by the current set.
    """

    current: List[AnnouncementKey] = []
    seen: Set[AnnouncementKey] = set()
    for det in detections:
        key = (det.class_name, det.zone)
        if key in seen:
            continue
        seen.add(key)
        current.append(key)

    messages = [format_announcement(name, zone) for name, zone in current if (name, zone) not in state.last_announced]
    state.last_announced = seen
    return messages


class Speaker(Protocol):
    def speak(self, message: str, force: bool = False) -> bool:
        ...


class DebouncedSpeaker:
    """
    Speaker that will not repeat the same message within `debounce_seconds`.

    `say` is the actual speech sink (a TTS engine call, a print, a test list).
    """

    def __init__(
        self,
        say: Callable[[str], None],
        debounce_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        self._say = say
        self.debounce_seconds = float(debounce_seconds)
        self._clock = clock
        self._last_message: Optional[str] = None
        self._last_time = 0.0

    def speak(self, message: str, force: bool = False) -> bool:
        now = self._clock()
        if (
            not force
            and message == self._last_message
            and (now - self._last_time) < self.debounce_seconds
        ):
            logger.debug("Skipping repeated announcement: %s", message)
            return False

        logger.debug("TTS: %s", message)
        self._say(message)
        self._last_message = message
        self._last_time = now
        return True

    def reset(self) -> None:
        self._last_message = None
        self._last_time = 0.0
