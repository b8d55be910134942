"""Camera frame sources feeding the guidance pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
import importlib
import importlib.util
import threading
import time
from typing import Any, Mapping, Protocol

from config import section
from core.logging import logger


@dataclass(frozen=True)
class CameraFrame:
    """One captured frame plus the metadata the sensor attached to it."""

    image: Any
    size: tuple[int, int]
    timestamp_ms: int
    metadata: dict[str, Any] = field(default_factory=dict)
    luma: Any = None


class FrameSource(Protocol):
    """Minimal camera interface polled by the pipeline every tick."""

    def is_ready(self) -> bool:
        """Return whether frames are streaming. Must not block."""

    def frame_size(self) -> tuple[int, int]:
        """Return ``(width, height)`` of captured frames."""

    def capture(self) -> CameraFrame:
        """Capture the current frame."""


@dataclass(frozen=True)
class CameraSettings:
    """Runtime settings for the Picamera2 source."""

    main_size: tuple[int, int] = (640, 480)
    lores_size: tuple[int, int] = (160, 120)
    warmup_frames: int = 3
    imx500_enabled: bool = False
    imx500_model: str = "/usr/share/imx500-models/imx500_network_ssd_mobilenetv2_fpnlite_320x320_pp.rpk"

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "CameraSettings":
        camera_cfg = section(config, "camera")
        imx500_cfg = section(config, "imx500")
        defaults = cls()
        return cls(
            main_size=_size(camera_cfg.get("main_size"), defaults.main_size),
            lores_size=_size(camera_cfg.get("lores_size"), defaults.lores_size),
            warmup_frames=max(0, int(camera_cfg.get("warmup_frames", defaults.warmup_frames))),
            imx500_enabled=bool(imx500_cfg.get("enabled", defaults.imx500_enabled)),
            imx500_model=str(imx500_cfg.get("model", defaults.imx500_model)),
        )


def _size(value: Any, default: tuple[int, int]) -> tuple[int, int]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return (int(value[0]), int(value[1]))
    return default


def _require_camera_deps() -> tuple[Any, Any]:
    if importlib.util.find_spec("picamera2") is None:
        raise RuntimeError("picamera2 is required for Picamera2FrameSource")
    if importlib.util.find_spec("numpy") is None:
        raise RuntimeError("numpy is required for Picamera2FrameSource")

    picamera2 = importlib.import_module("picamera2")
    numpy = importlib.import_module("numpy")
    return picamera2, numpy


class Picamera2FrameSource:
    """Picamera2-backed source with an optional IMX500 on-sensor model."""

    def __init__(self, settings: CameraSettings | None = None) -> None:
        self.settings = settings or CameraSettings()
        picamera2, _numpy = _require_camera_deps()
        self._lock = threading.Lock()
        self._started = False
        self._frames_seen = 0

        self.model_stack: Any = None
        camera_num = None
        if self.settings.imx500_enabled:
            self.model_stack = self._create_model_stack(self.settings.imx500_model)
            camera_num = getattr(self.model_stack, "camera_num", None)

        if camera_num is not None:
            self.camera = picamera2.Picamera2(camera_num)
        else:
            self.camera = picamera2.Picamera2()

        self._configuration = self.camera.create_preview_configuration(
            main={"size": self.settings.main_size, "format": "RGB888"},
            lores={"size": self.settings.lores_size, "format": "YUV420"},
            buffer_count=4,
        )
        self.camera.configure(self._configuration)

    def _create_model_stack(self, model: str) -> Any:
        try:
            imx500_module = importlib.import_module("picamera2.devices.imx500")
        except Exception:
            logger.exception("[CAMERA] IMX500 support unavailable; running without on-sensor model")
            return None
        model_stack_cls = getattr(imx500_module, "IMX500", None)
        if model_stack_cls is None:
            return None
        logger.info("[CAMERA] Loading IMX500 model %s", model)
        return model_stack_cls(model)

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self.camera.start()
            self._frames_seen = 0
        self._warm_up()
        with self._lock:
            self._started = True
        logger.info(
            "[CAMERA] Started (main=%sx%s imx500=%s)",
            self.settings.main_size[0],
            self.settings.main_size[1],
            self.model_stack is not None,
        )

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._started = False
        for method_name in ("stop", "close"):
            method = getattr(self.camera, method_name, None)
            if callable(method):
                try:
                    method()
                except Exception:
                    logger.exception("[CAMERA] Failed to %s camera", method_name)

    def _warm_up(self) -> None:
        # Discard warmup frames while auto-exposure settles.
        for _ in range(self.settings.warmup_frames):
            try:
                self.camera.capture_metadata()
            except Exception:
                logger.exception("[CAMERA] Warmup capture failed")
                break
            self._frames_seen += 1

    def is_ready(self) -> bool:
        with self._lock:
            return self._started

    def frame_size(self) -> tuple[int, int]:
        return self.settings.main_size

    def capture(self) -> CameraFrame:
        request = self.camera.capture_request()
        try:
            image = request.make_array("main")
            yuv = request.make_array("lores")
            metadata = dict(request.get_metadata() or {})
        finally:
            request.release()

        lores_h = self.settings.lores_size[1]
        luma = yuv[:lores_h, :].copy()
        height, width = image.shape[:2]
        return CameraFrame(
            image=image,
            size=(int(width), int(height)),
            timestamp_ms=int(time.time() * 1000),
            metadata=metadata,
            luma=luma,
        )
