"""Stable detection event schemas for the guidance pipeline.

Bounding boxes are expressed in source frame pixels as ``(x, y, width, height)``
where ``(x, y)`` is the top-left corner. Frame sizes travel alongside the
detections so that every consumer can derive scale-invariant ratios.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

BBox = tuple[float, float, float, float]


@dataclass(frozen=True)
class Detection:
    """Single object detection result."""

    label: str
    confidence: float
    bbox: BBox
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def center(self) -> tuple[float, float]:
        x, y, w, h = self.bbox
        return (x + w / 2.0, y + h / 2.0)

    @property
    def area(self) -> float:
        _, _, w, h = self.bbox
        return max(0.0, w) * max(0.0, h)


@dataclass(frozen=True)
class DetectionEvent:
    """Detection snapshot for one inference cycle."""

    timestamp_ms: int
    detections: list[Detection]
    frame_size: tuple[int, int]
    frame_id: int | None = None
    source: str = "detector"


def box_center(bbox: BBox) -> tuple[float, float]:
    """Return the centre point of a pixel bounding box."""

    x, y, w, h = bbox
    return (x + w / 2.0, y + h / 2.0)


def box_area(bbox: BBox) -> float:
    _, _, w, h = bbox
    return max(0.0, w) * max(0.0, h)
