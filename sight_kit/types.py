from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Zone(str, Enum):
    """
    Coarse horizontal region of the original image, used for spoken guidance.
    """

    LEFT = "left"
    FRONT = "front"
    RIGHT = "right"

    @property
    def spoken(self) -> str:
        if self is Zone.FRONT:
            return "front"
        return f"{self.value} side"


@dataclass(frozen=True)
class Detection:
    """
    One filtered detection for a single frame.

    Box coordinates are in original image pixels; `raw_center`/`raw_size` keep the
    geometry exactly as the model emitted it (input space).
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    class_name: str
    zone: Zone
    raw_center: Tuple[float, float] = (0.0, 0.0)
    raw_size: Tuple[float, float] = (0.0, 0.0)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def box(self) -> Tuple[float, float, float, float]:
        return self.as_xyxy()

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center_x(self) -> float:
        return (self.x1 + self.x2) * 0.5

    @property
    def center_y(self) -> float:
        return (self.y1 + self.y2) * 0.5
