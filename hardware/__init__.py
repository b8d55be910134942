"""Hardware adapters package."""

from hardware.camera_source import CameraFrame, CameraSettings, FrameSource, Picamera2FrameSource
from hardware.imx500_detector import Imx500Detector, Imx500DetectorSettings

__all__ = [
    "CameraFrame",
    "CameraSettings",
    "FrameSource",
    "Imx500Detector",
    "Imx500DetectorSettings",
    "Picamera2FrameSource",
]
