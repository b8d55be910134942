"""Detector that reads IMX500 on-sensor inference results from frame metadata."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from config import section
from core.logging import logger
from hardware.camera_source import CameraFrame
from vision.detections import Detection
from vision.normalize import normalize_detections

# COCO labels in the order used by the stock IMX500 SSD/YOLO network packages.
COCO_LABELS: tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck",
    "boat", "traffic light", "fire hydrant", "stop sign", "parking meter", "bench",
    "bird", "cat", "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra",
    "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove",
    "skateboard", "surfboard", "tennis racket", "bottle", "wine glass", "cup",
    "fork", "knife", "spoon", "bowl", "banana", "apple", "sandwich", "orange",
    "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
    "refrigerator", "book", "clock", "vase", "scissors", "teddy bear",
    "hair drier", "toothbrush",
)

# Metadata keys under which pre-decoded detections may be attached.
_METADATA_KEYS = ("imx500_detections", "detections", "objects", "ai_outputs", "imx500")


@dataclass(frozen=True)
class Imx500DetectorSettings:
    """Runtime settings for IMX500 result decoding."""

    min_confidence: float = 0.4
    labels: tuple[str, ...] = COCO_LABELS

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "Imx500DetectorSettings":
        cfg = section(config, "imx500")
        labels_value = cfg.get("labels")
        labels = (
            tuple(str(item) for item in labels_value)
            if isinstance(labels_value, list)
            else COCO_LABELS
        )
        return cls(min_confidence=float(cfg.get("min_confidence", 0.4)), labels=labels)


class Imx500Detector:
    """Decode detections for a captured frame.

    With a model stack (``picamera2.devices.imx500.IMX500``) the raw output
    tensors are decoded and converted to frame pixels; otherwise any
    detections already present in the frame metadata are normalized.
    """

    def __init__(
        self,
        model_stack: Any = None,
        camera: Any = None,
        settings: Imx500DetectorSettings | None = None,
    ) -> None:
        self._model_stack = model_stack
        self._camera = camera
        self.settings = settings or Imx500DetectorSettings()

    async def detect(self, frame: CameraFrame) -> list[Detection]:
        raw = self._read_raw_detections(frame)
        return normalize_detections(
            raw, frame.size, min_confidence=self.settings.min_confidence
        )

    def _read_raw_detections(self, frame: CameraFrame) -> list[Any]:
        metadata = frame.metadata or {}
        model_stack = self._model_stack
        if model_stack is not None and hasattr(model_stack, "get_outputs"):
            outputs = model_stack.get_outputs(metadata, add_batch=True)
            if outputs is None:
                return []
            return self._decode_outputs(outputs, metadata)

        for key in _METADATA_KEYS:
            candidate = metadata.get(key)
            if candidate is not None:
                return list(candidate) if isinstance(candidate, (list, tuple)) else [candidate]
        return []

    def _decode_outputs(self, outputs: Any, metadata: dict[str, Any]) -> list[dict[str, Any]]:
        boxes, scores, classes = outputs[0][0], outputs[1][0], outputs[2][0]
        decoded: list[dict[str, Any]] = []
        for box, score, class_id in zip(boxes, scores, classes):
            confidence = float(score)
            if confidence < self.settings.min_confidence:
                continue
            index = int(class_id)
            label = self.settings.labels[index] if 0 <= index < len(self.settings.labels) else "unknown"
            try:
                bbox = self._model_stack.convert_inference_coords(box, metadata, self._camera)
            except Exception:
                logger.exception("[IMX500] Failed to convert inference coordinates")
                continue
            decoded.append({"label": label, "score": confidence, "bbox": tuple(bbox)})
        return decoded
