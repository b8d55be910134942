"""Vision package exports."""

from vision.clearance import ClearanceAnalyzer, ClearanceResult, Direction, TIE_BREAK_DIRECTION
from vision.detections import Detection, DetectionEvent
from vision.environment import EnvironmentClassifier, EnvironmentConfig, EnvironmentMode
from vision.lighting import LowLightConfig, LowLightMonitor
from vision.sampler import FrameSampler, SamplerConfig, SamplerDecision
from vision.tracker import (
    Distance,
    Motion,
    ObjectTracker,
    OverlayItem,
    TrackedObject,
    TrackerConfig,
    Urgency,
    Zone,
)

__all__ = [
    "ClearanceAnalyzer",
    "ClearanceResult",
    "Detection",
    "DetectionEvent",
    "Direction",
    "Distance",
    "EnvironmentClassifier",
    "EnvironmentConfig",
    "EnvironmentMode",
    "FrameSampler",
    "LowLightConfig",
    "LowLightMonitor",
    "Motion",
    "ObjectTracker",
    "OverlayItem",
    "SamplerConfig",
    "SamplerDecision",
    "TIE_BREAK_DIRECTION",
    "TrackedObject",
    "TrackerConfig",
    "Urgency",
    "Zone",
]
