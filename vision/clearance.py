"""Left/right obstruction scoring for avoidance recommendations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from vision.detections import Detection


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"


# Equal obstruction on both halves carries no signal; left is an arbitrary,
# fixed choice so announcements stay deterministic.
TIE_BREAK_DIRECTION = Direction.LEFT


@dataclass(frozen=True)
class ClearanceResult:
    """Accumulated area per frame half and the recommended direction."""

    left_area: float
    right_area: float
    direction: Direction


class ClearanceAnalyzer:
    """Recommend moving toward the less obstructed half of the frame."""

    def analyze(self, detections: Iterable[Detection], frame_width: float) -> ClearanceResult:
        midpoint = frame_width / 2.0
        left_area = 0.0
        right_area = 0.0
        for detection in detections:
            x, _, w, h = detection.bbox
            if w <= 0 or h <= 0:
                continue
            x_end = x + w
            left_width = max(0.0, min(x_end, midpoint) - x)
            right_width = max(0.0, x_end - max(x, midpoint))
            left_area += left_width * h
            right_area += right_width * h

        if left_area < right_area:
            direction = Direction.LEFT
        elif right_area < left_area:
            direction = Direction.RIGHT
        else:
            direction = TIE_BREAK_DIRECTION
        return ClearanceResult(left_area=left_area, right_area=right_area, direction=direction)
