"""Low-light detection from frame luma using EMA, hysteresis and debounce."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
from typing import Any, Mapping

from config import section
from core.logging import logger


@dataclass(frozen=True)
class LowLightConfig:
    """Configuration for the low-light monitor (luma on a 0-255 scale)."""

    enabled: bool = True
    enter_threshold: float = 40.0
    exit_threshold: float = 55.0
    debounce_frames: int = 3
    ema_alpha: float = 0.3

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "LowLightConfig":
        cfg = section(config, "lighting")
        defaults = cls()
        return cls(
            enabled=bool(cfg.get("enabled", defaults.enabled)),
            enter_threshold=float(cfg.get("enter_threshold", defaults.enter_threshold)),
            exit_threshold=float(cfg.get("exit_threshold", defaults.exit_threshold)),
            debounce_frames=int(cfg.get("debounce_frames", defaults.debounce_frames)),
            ema_alpha=float(cfg.get("ema_alpha", defaults.ema_alpha)),
        )


@dataclass(frozen=True)
class LowLightResult:
    """Result of a single monitor update."""

    luma: float
    ema_luma: float
    low_light: bool
    changed: bool


def mean_luma(image: Any) -> float | None:
    """Return mean luma of an image array, or ``None`` when unavailable.

    Accepts single-channel luma planes and RGB frames (ITU-R BT.601 weights).
    """

    if image is None or importlib.util.find_spec("numpy") is None:
        return None
    np = importlib.import_module("numpy")
    array = np.asarray(image)
    if array.size == 0:
        return None
    if array.ndim == 3 and array.shape[2] >= 3:
        rgb = array[..., :3].astype(np.float32)
        luma = rgb[..., 0] * 0.299 + rgb[..., 1] * 0.587 + rgb[..., 2] * 0.114
        return float(luma.mean())
    return float(array.astype(np.float32).mean())


class LowLightMonitor:
    """State machine flagging sustained dark scenes for status display."""

    def __init__(self, config: LowLightConfig | None = None) -> None:
        self._config = config or LowLightConfig()
        self._ema_luma: float | None = None
        self._low_light = False
        self._debounce_count = 0

    @property
    def low_light(self) -> bool:
        return self._low_light

    def reset(self) -> None:
        self._ema_luma = None
        self._low_light = False
        self._debounce_count = 0

    def update_from_image(self, image: Any) -> LowLightResult | None:
        if not self._config.enabled:
            return None
        luma = mean_luma(image)
        if luma is None:
            return None
        return self.update(luma)

    def update(self, luma: float) -> LowLightResult:
        if self._ema_luma is None:
            ema_luma = luma
        else:
            alpha = self._config.ema_alpha
            ema_luma = alpha * luma + (1.0 - alpha) * self._ema_luma
        self._ema_luma = ema_luma

        changed = False
        debounce_frames = max(self._config.debounce_frames, 1)

        if not self._low_light:
            crossing = ema_luma <= self._config.enter_threshold
        else:
            crossing = ema_luma >= self._config.exit_threshold

        if crossing:
            self._debounce_count += 1
            if self._debounce_count >= debounce_frames:
                self._low_light = not self._low_light
                self._debounce_count = 0
                changed = True
                logger.info(
                    "[LIGHTING] low_light=%s (ema_luma=%.1f)",
                    self._low_light,
                    ema_luma,
                )
        else:
            self._debounce_count = 0

        return LowLightResult(
            luma=luma,
            ema_luma=ema_luma,
            low_light=self._low_light,
            changed=changed,
        )
