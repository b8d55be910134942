"""Frame sampler that throttles detector invocations per display tick."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from config import section
from core.logging import logger
from vision.detections import Detection, DetectionEvent


class SamplerDecision(str, Enum):
    """Outcome of one sampler poll."""

    SKIP = "skip"
    REUSE = "reuse"
    INFER = "infer"


@dataclass(frozen=True)
class SamplerConfig:
    """Configuration for the frame sampler."""

    min_interval_ms: int = 150

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "SamplerConfig":
        cfg = section(config, "sampler")
        return cls(min_interval_ms=max(0, int(cfg.get("min_interval_ms", 150))))


class FrameSampler:
    """Decide per tick whether to run a new inference or reuse the last one."""

    def __init__(self, config: SamplerConfig | None = None) -> None:
        self._config = config or SamplerConfig()
        self._last_inference_ms: int | None = None
        self._last_event: DetectionEvent | None = None
        self._not_ready_logged = False

    @property
    def last_inference_ms(self) -> int | None:
        return self._last_inference_ms

    @property
    def last_event(self) -> DetectionEvent | None:
        return self._last_event

    @property
    def last_detections(self) -> list[Detection]:
        if self._last_event is None:
            return []
        return list(self._last_event.detections)

    def poll(self, now_ms: int, ready: bool) -> SamplerDecision:
        if not ready:
            if not self._not_ready_logged:
                logger.info("[SAMPLER] Frame source not ready; waiting")
                self._not_ready_logged = True
            return SamplerDecision.SKIP

        if self._not_ready_logged:
            logger.info("[SAMPLER] Frame source ready")
            self._not_ready_logged = False

        if (
            self._last_inference_ms is not None
            and (now_ms - self._last_inference_ms) < self._config.min_interval_ms
        ):
            return SamplerDecision.REUSE

        self._last_inference_ms = now_ms
        return SamplerDecision.INFER

    def remember(self, event: DetectionEvent) -> None:
        """Store the snapshot of the latest completed inference."""

        self._last_event = event

    def reset(self) -> None:
        self._last_inference_ms = None
        self._last_event = None
