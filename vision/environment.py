"""Indoor/outdoor environment classifier and class-relevance filter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from config import section
from core.logging import logger
from vision.detections import Detection


class EnvironmentMode(str, Enum):
    """Coarse surroundings inferred from detected classes."""

    SCANNING = "scanning"
    INDOOR = "indoor"
    OUTDOOR = "outdoor"


INDOOR_CLASSES = frozenset(
    {
        "chair",
        "couch",
        "bed",
        "dining table",
        "toilet",
        "tv",
        "laptop",
        "mouse",
        "remote",
        "keyboard",
        "microwave",
        "oven",
        "toaster",
        "sink",
        "refrigerator",
        "book",
        "clock",
        "vase",
        "potted plant",
        "cup",
        "bottle",
    }
)

OUTDOOR_CLASSES = frozenset(
    {
        "car",
        "bus",
        "truck",
        "motorcycle",
        "train",
        "traffic light",
        "stop sign",
        "fire hydrant",
        "parking meter",
        "bench",
        "horse",
        "cow",
        "sheep",
    }
)

# Relevant wherever the user walks.
COMMON_CLASSES = frozenset(
    {
        "person",
        "bicycle",
        "dog",
        "cat",
        "backpack",
        "suitcase",
        "umbrella",
        "handbag",
    }
)


@dataclass(frozen=True)
class EnvironmentConfig:
    """Configuration for the environment classifier."""

    min_confidence: float = 0.6
    off_context_confidence: float = 0.85
    dominance_margin: int = 1
    indoor_classes: frozenset[str] = INDOOR_CLASSES
    outdoor_classes: frozenset[str] = OUTDOOR_CLASSES
    common_classes: frozenset[str] = COMMON_CLASSES

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "EnvironmentConfig":
        cfg = section(config, "environment")
        defaults = cls()
        return cls(
            min_confidence=float(cfg.get("min_confidence", defaults.min_confidence)),
            off_context_confidence=float(
                cfg.get("off_context_confidence", defaults.off_context_confidence)
            ),
            dominance_margin=int(cfg.get("dominance_margin", defaults.dominance_margin)),
            indoor_classes=_label_set(cfg.get("indoor_classes"), defaults.indoor_classes),
            outdoor_classes=_label_set(cfg.get("outdoor_classes"), defaults.outdoor_classes),
            common_classes=_label_set(cfg.get("common_classes"), defaults.common_classes),
        )


def _label_set(value: Any, default: frozenset[str]) -> frozenset[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(str(item).strip().lower() for item in value)
    return default


class EnvironmentClassifier:
    """Accumulate per-cycle evidence and switch mode only on a clear majority."""

    def __init__(self, config: EnvironmentConfig | None = None) -> None:
        self.config = config or EnvironmentConfig()
        overlap = self.config.indoor_classes & self.config.outdoor_classes
        if overlap:
            raise ValueError(f"Indoor and outdoor class sets overlap: {sorted(overlap)}")
        self._mode = EnvironmentMode.SCANNING
        self._indoor_evidence = 0
        self._outdoor_evidence = 0

    @property
    def mode(self) -> EnvironmentMode:
        return self._mode

    @property
    def evidence(self) -> tuple[int, int]:
        """Return ``(indoor, outdoor)`` evidence counted in the last cycle."""

        return (self._indoor_evidence, self._outdoor_evidence)

    def observe(self, detections: Iterable[Detection]) -> EnvironmentMode:
        indoor = 0
        outdoor = 0
        for detection in detections:
            label = detection.label.lower()
            if label in self.config.indoor_classes:
                indoor += 1
            elif label in self.config.outdoor_classes:
                outdoor += 1
        self._indoor_evidence = indoor
        self._outdoor_evidence = outdoor

        margin = self.config.dominance_margin
        if indoor - outdoor > margin:
            self._switch(EnvironmentMode.INDOOR, indoor, outdoor)
        elif outdoor - indoor > margin:
            self._switch(EnvironmentMode.OUTDOOR, indoor, outdoor)
        return self._mode

    def allowlist(self, mode: EnvironmentMode | None = None) -> frozenset[str] | None:
        """Return labels expected in ``mode``; ``None`` means everything is expected."""

        mode = mode or self._mode
        if mode is EnvironmentMode.INDOOR:
            return self.config.indoor_classes | self.config.common_classes
        if mode is EnvironmentMode.OUTDOOR:
            return self.config.outdoor_classes | self.config.common_classes
        return None

    def is_relevant(self, detection: Detection) -> bool:
        if detection.confidence < self.config.min_confidence:
            return False
        allowed = self.allowlist()
        if allowed is None or detection.label.lower() in allowed:
            return True
        return detection.confidence > self.config.off_context_confidence

    def filter(self, detections: Iterable[Detection]) -> list[Detection]:
        return [detection for detection in detections if self.is_relevant(detection)]

    def _switch(self, new_mode: EnvironmentMode, indoor: int, outdoor: int) -> None:
        if new_mode is self._mode:
            return
        old_mode = self._mode
        self._mode = new_mode
        logger.info(
            "[ENVIRONMENT] %s -> %s (indoor=%s outdoor=%s)",
            old_mode.value,
            new_mode.value,
            indoor,
            outdoor,
        )
