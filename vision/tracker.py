"""Per-label object tracker with smoothing, confirmation and eviction.

One ``TrackedObject`` exists per class label. Several physical instances that
share a label are intentionally collapsed: before tracking, only the largest
box of each label in a cycle is kept, since the closest instance is the one
that matters for guidance.

All geometry is derived from pixel boxes and the frame size of the cycle, so
thresholds are expressed as fractions (of frame area, width or diagonal) and
behave the same at any camera resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any, Iterable, Iterator, Mapping

from config import section
from core.logging import logger
from vision.detections import BBox, Detection, box_area, box_center

MAX_STABILITY = 5
CONFIRM_STABILITY = 2


class Motion(str, Enum):
    STATIC = "static"
    LATERAL = "lateral"
    APPROACHING = "approaching"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Distance(str, Enum):
    FAR = "far"
    NEAR = "near"
    VERY_CLOSE = "very_close"


class Zone(str, Enum):
    FAR_LEFT = "far_left"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    FAR_RIGHT = "far_right"


ZONES = (Zone.FAR_LEFT, Zone.LEFT, Zone.CENTER, Zone.RIGHT, Zone.FAR_RIGHT)

_DISTANCE_BY_URGENCY = {
    Urgency.LOW: Distance.FAR,
    Urgency.MEDIUM: Distance.NEAR,
    Urgency.HIGH: Distance.VERY_CLOSE,
}


@dataclass(frozen=True)
class TrackerConfig:
    """Configuration for the object tracker."""

    smoothing_retain: float = 0.7
    stable_delta_fraction: float = 0.075
    lateral_delta_fraction: float = 0.04
    approach_growth: float = 0.025
    high_area_ratio: float = 0.4
    medium_area_ratio: float = 0.15
    eviction_ms: int = 1200
    confirm_stability: int = CONFIRM_STABILITY

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "TrackerConfig":
        cfg = section(config, "tracker")
        defaults = cls()
        return cls(
            smoothing_retain=float(cfg.get("smoothing_retain", defaults.smoothing_retain)),
            stable_delta_fraction=float(
                cfg.get("stable_delta_fraction", defaults.stable_delta_fraction)
            ),
            lateral_delta_fraction=float(
                cfg.get("lateral_delta_fraction", defaults.lateral_delta_fraction)
            ),
            approach_growth=float(cfg.get("approach_growth", defaults.approach_growth)),
            high_area_ratio=float(cfg.get("high_area_ratio", defaults.high_area_ratio)),
            medium_area_ratio=float(cfg.get("medium_area_ratio", defaults.medium_area_ratio)),
            eviction_ms=int(cfg.get("eviction_ms", defaults.eviction_ms)),
            confirm_stability=max(
                1,
                min(MAX_STABILITY, int(cfg.get("confirm_stability", defaults.confirm_stability))),
            ),
        )


@dataclass
class TrackedObject:
    """Smoothed state for one class label."""

    label: str
    smoothed_box: BBox | None = None
    stability: int = 0
    motion: Motion = Motion.STATIC
    urgency: Urgency = Urgency.LOW
    zone: Zone = Zone.CENTER
    confidence: float = 0.0
    area_ratio: float = 0.0
    last_seen_ms: int = 0
    last_announced_ms: int | None = None
    prev_urgency: Urgency | None = None
    confirm_stability: int = field(default=CONFIRM_STABILITY, repr=False)
    observations: int = field(default=0, repr=False)

    @property
    def distance(self) -> Distance:
        return _DISTANCE_BY_URGENCY[self.urgency]

    def is_confirmed(self) -> bool:
        return self.stability >= self.confirm_stability

    def mark_announced(self, now_ms: int) -> None:
        self.last_announced_ms = now_ms
        self.prev_urgency = self.urgency


@dataclass(frozen=True)
class OverlayItem:
    """Per-cycle drawing record for rendering layers."""

    box: BBox
    display_label: str
    urgency: Urgency
    motion: Motion


def classify_urgency(area_ratio: float, config: TrackerConfig) -> Urgency:
    if area_ratio > config.high_area_ratio:
        return Urgency.HIGH
    if area_ratio > config.medium_area_ratio:
        return Urgency.MEDIUM
    return Urgency.LOW


def classify_zone(center_x: float, frame_width: float) -> Zone:
    """Map a horizontal centre to one of five equal-width sectors.

    Centres outside the frame clamp to the outermost sectors.
    """

    if frame_width <= 0:
        return Zone.CENTER
    index = int(math.floor(center_x / frame_width * len(ZONES)))
    index = max(0, min(len(ZONES) - 1, index))
    return ZONES[index]


def collapse_by_label(detections: Iterable[Detection]) -> list[Detection]:
    """Keep the largest detection per label, preserving first-seen order."""

    largest: dict[str, Detection] = {}
    for detection in detections:
        current = largest.get(detection.label)
        if current is None or detection.area > current.area:
            largest[detection.label] = detection
    return list(largest.values())


class ObjectTracker:
    """Own the label -> ``TrackedObject`` table for one pipeline."""

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config or TrackerConfig()
        self._objects: dict[str, TrackedObject] = {}

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, label: object) -> bool:
        return label in self._objects

    def __iter__(self) -> Iterator[TrackedObject]:
        return iter(list(self._objects.values()))

    def get(self, label: str) -> TrackedObject | None:
        return self._objects.get(label)

    def confirmed(self) -> list[TrackedObject]:
        """Return objects that passed multi-frame confirmation."""

        return [obj for obj in self._objects.values() if obj.is_confirmed()]

    def update(
        self,
        detections: Iterable[Detection],
        frame_size: tuple[int, int],
        now_ms: int,
    ) -> list[TrackedObject]:
        """Fold one cycle of relevant detections into the tracking table."""

        frame_w, frame_h = frame_size
        if frame_w <= 0 or frame_h <= 0:
            logger.warning("[TRACKER] Ignoring cycle with invalid frame size %s", frame_size)
            return []

        updated: list[TrackedObject] = []
        for detection in collapse_by_label(detections):
            obj = self._objects.get(detection.label)
            if obj is None:
                obj = TrackedObject(
                    label=detection.label,
                    confirm_stability=self.config.confirm_stability,
                )
                self._objects[detection.label] = obj
                logger.debug("[TRACKER] New object %s", detection.label)
            self._observe(obj, detection, float(frame_w), float(frame_h), now_ms)
            updated.append(obj)
        return updated

    def sweep(self, now_ms: int) -> list[str]:
        """Evict objects unseen for longer than the eviction window."""

        evicted: list[str] = []
        for label, obj in list(self._objects.items()):
            if now_ms - obj.last_seen_ms > self.config.eviction_ms:
                obj.stability = 0
                del self._objects[label]
                evicted.append(label)
        if evicted:
            logger.info("[TRACKER] Evicted %s", ", ".join(evicted))
        return evicted

    def clear(self) -> None:
        for obj in self._objects.values():
            obj.stability = 0
        self._objects.clear()

    def overlays(self, display_label: Any = None) -> list[OverlayItem]:
        """Return drawing records; ``display_label`` maps a label to its text."""

        items: list[OverlayItem] = []
        for obj in self._objects.values():
            if obj.smoothed_box is None:
                continue
            text = display_label(obj.label) if callable(display_label) else obj.label
            items.append(
                OverlayItem(
                    box=obj.smoothed_box,
                    display_label=text,
                    urgency=obj.urgency,
                    motion=obj.motion,
                )
            )
        return items

    def _observe(
        self,
        obj: TrackedObject,
        detection: Detection,
        frame_w: float,
        frame_h: float,
        now_ms: int,
    ) -> None:
        config = self.config
        frame_area = frame_w * frame_h
        area_ratio = box_area(detection.bbox) / frame_area
        first_sighting = obj.smoothed_box is None

        previous_box = detection.bbox if first_sighting else obj.smoothed_box
        previous_area_ratio = area_ratio if first_sighting else obj.area_ratio

        prev_cx, prev_cy = box_center(previous_box)
        new_cx, new_cy = detection.center
        dx = abs(new_cx - prev_cx)
        dy = abs(new_cy - prev_cy)

        stable_limit = config.stable_delta_fraction * math.hypot(frame_w, frame_h)
        if dx < stable_limit and dy < stable_limit:
            obj.stability = min(MAX_STABILITY, obj.stability + 1)
        else:
            obj.stability = max(0, obj.stability - 1)

        if area_ratio - previous_area_ratio > config.approach_growth:
            obj.motion = Motion.APPROACHING
        elif dx > config.lateral_delta_fraction * frame_w:
            obj.motion = Motion.LATERAL
        else:
            obj.motion = Motion.STATIC

        obj.smoothed_box = _smooth(previous_box, detection.bbox, config.smoothing_retain)
        obj.urgency = classify_urgency(area_ratio, config)
        obj.zone = classify_zone(box_center(obj.smoothed_box)[0], frame_w)
        obj.confidence = detection.confidence
        obj.area_ratio = area_ratio
        obj.last_seen_ms = now_ms
        obj.observations += 1

        logger.debug(
            "[TRACKER] %s stability=%s motion=%s urgency=%s zone=%s ratio=%.3f",
            obj.label,
            obj.stability,
            obj.motion.value,
            obj.urgency.value,
            obj.zone.value,
            area_ratio,
        )


def _smooth(previous: BBox, new: BBox, retain: float) -> BBox:
    take = 1.0 - retain
    return (
        previous[0] * retain + new[0] * take,
        previous[1] * retain + new[1] * take,
        previous[2] * retain + new[2] * take,
        previous[3] * retain + new[3] * take,
    )
