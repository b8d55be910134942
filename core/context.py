"""Per-cycle context snapshots shared by pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
import threading


@dataclass(frozen=True)
class CycleContext:
    """Immutable view of user settings for one inference cycle."""

    locale: str = "en"
    muted: bool = False
    frame_size: tuple[int, int] = (0, 0)
    now_ms: int = 0


@dataclass
class GuidanceSettings:
    """Mutable user settings; stages only ever see ``snapshot()`` copies."""

    locale: str = "en"
    muted: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def update(self, *, locale: str | None = None, muted: bool | None = None) -> None:
        with self._lock:
            if locale is not None:
                self.locale = locale
            if muted is not None:
                self.muted = muted

    def snapshot(self, frame_size: tuple[int, int], now_ms: int) -> CycleContext:
        with self._lock:
            return CycleContext(
                locale=self.locale,
                muted=self.muted,
                frame_size=frame_size,
                now_ms=now_ms,
            )

