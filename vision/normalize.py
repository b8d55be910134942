"""Convert raw detector payloads into pixel-space ``Detection`` objects."""

from __future__ import annotations

import math
from typing import Any, Iterable

from vision.detections import Detection

_LABEL_KEYS = ("label", "class", "class_name", "name")
_SCORE_KEYS = ("score", "confidence")
_BOX_KEYS = ("bbox", "box", "rect", "rectangle")
_CORNER_KEYS = ("xmin", "ymin", "xmax", "ymax")
_PAYLOAD_FIELDS = (
    _LABEL_KEYS
    + _SCORE_KEYS
    + _BOX_KEYS
    + _CORNER_KEYS
    + ("x", "y", "w", "h", "width", "height")
)


def normalize_detections(
    raw_detections: Iterable[Any],
    frame_size: tuple[int, int],
    *,
    min_confidence: float = 0.0,
) -> list[Detection]:
    """Normalize raw payloads, dropping unusable or low-confidence entries.

    Accepts coco-ssd style mappings (``{"class", "score", "bbox"}``), corner
    payloads (``xmin``/``ymin``/``xmax``/``ymax``), plain objects exposing the
    same attributes, and ready-made ``Detection`` instances. Boxes are clamped
    to the frame.
    """

    normalized: list[Detection] = []
    for raw in raw_detections:
        detection = normalize_detection(raw, frame_size)
        if detection is None:
            continue
        if detection.confidence < min_confidence:
            continue
        normalized.append(detection)
    return normalized


def normalize_detection(raw: Any, frame_size: tuple[int, int]) -> Detection | None:
    if isinstance(raw, Detection):
        bbox = _clamp_bbox(*raw.bbox, frame_size=frame_size)
        if bbox is None:
            return None
        return Detection(
            label=raw.label,
            confidence=_clamp_confidence(raw.confidence),
            bbox=bbox,
            metadata=dict(raw.metadata),
        )

    payload = _to_mapping(raw)
    if payload is None:
        return None

    bbox = _extract_bbox(payload, frame_size)
    if bbox is None:
        return None

    metadata = {k: v for k, v in payload.items() if k not in _PAYLOAD_FIELDS}
    return Detection(
        label=_extract_label(payload),
        confidence=_extract_confidence(payload),
        bbox=bbox,
        metadata=metadata,
    )


def _to_mapping(raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, dict):
        return raw

    mapping: dict[str, Any] = {}
    for name in _PAYLOAD_FIELDS:
        if hasattr(raw, name):
            mapping[name] = getattr(raw, name)
    return mapping or None


def _extract_confidence(payload: dict[str, Any]) -> float:
    value = payload.get("score", payload.get("confidence", 0.0))
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    return _clamp_confidence(confidence)


def _clamp_confidence(confidence: float) -> float:
    if math.isnan(confidence) or math.isinf(confidence):
        return 0.0
    return max(0.0, min(1.0, confidence))


def _extract_label(payload: dict[str, Any]) -> str:
    value = None
    for key in _LABEL_KEYS:
        if payload.get(key) is not None:
            value = payload[key]
            break
    label = str(value).strip().lower() if value is not None else ""
    return label or "unknown"


def _extract_bbox(
    payload: dict[str, Any], frame_size: tuple[int, int]
) -> tuple[float, float, float, float] | None:
    raw_bbox = None
    for key in _BOX_KEYS:
        if payload.get(key) is not None:
            raw_bbox = payload[key]
            break

    if isinstance(raw_bbox, (list, tuple)) and len(raw_bbox) >= 4:
        values = [_to_finite_float(item) for item in raw_bbox[:4]]
        if None in values:
            return None
        x, y, w, h = values
        return _clamp_bbox(x, y, w, h, frame_size=frame_size)

    if set(_CORNER_KEYS).issubset(payload.keys()):
        corners = [_to_finite_float(payload.get(key)) for key in _CORNER_KEYS]
        if None in corners:
            return None
        xmin, ymin, xmax, ymax = corners
        return _clamp_bbox(xmin, ymin, xmax - xmin, ymax - ymin, frame_size=frame_size)

    if "x" not in payload or "y" not in payload:
        return None
    x = _to_finite_float(payload.get("x"))
    y = _to_finite_float(payload.get("y"))
    w = _to_finite_float(payload.get("w", payload.get("width")))
    h = _to_finite_float(payload.get("h", payload.get("height")))
    if None in (x, y, w, h):
        return None
    return _clamp_bbox(x, y, w, h, frame_size=frame_size)


def _to_finite_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _clamp_bbox(
    x: float, y: float, w: float, h: float, *, frame_size: tuple[int, int]
) -> tuple[float, float, float, float] | None:
    frame_w, frame_h = frame_size
    x0 = max(0.0, min(float(frame_w), x))
    y0 = max(0.0, min(float(frame_h), y))
    x1 = max(x0, min(float(frame_w), x + w))
    y1 = max(y0, min(float(frame_h), y + h))
    if x1 - x0 <= 0.0 or y1 - y0 <= 0.0:
        return None
    return (x0, y0, x1 - x0, y1 - y0)
