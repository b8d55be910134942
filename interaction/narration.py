"""Single-flight narration queue with priority preemption and shedding.

The queue is a two-state machine (idle, speaking) plus a bounded list of
pending entries. High-priority requests always win: they cancel whatever is
speaking and discard everything pending. Normal requests are deduplicated
and shed once the backlog is full, never blocked.

Engines may report completion from their own worker thread, so all state is
guarded by a re-entrant lock (callbacks can enqueue from inside a completion).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
import threading
from typing import Any, Callable, Mapping

from config import section
from core.logging import log_announcement, log_error, log_warning, logger
from interaction.narration_hal import NarrationEngine


class NarrationPriority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"


class NarrationState(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


class NarrationOutcome(str, Enum):
    """Terminal outcome reported to each entry's completion callback."""

    SPOKEN = "spoken"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DROPPED = "dropped"


EntryCallback = Callable[["QueueEntry", NarrationOutcome], None]


@dataclass(frozen=True)
class NarrationConfig:
    """Configuration for the narration queue."""

    max_pending: int = 2
    voice_locales: dict[str, str] = field(
        default_factory=lambda: {"en": "en-IN", "ta": "ta-IN"}
    )
    fallback_locale: str = "en-IN"
    fallback_text: str = (
        "Voice for the selected language is missing. "
        "Please install it in accessibility settings."
    )

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "NarrationConfig":
        cfg = section(config, "narration")
        defaults = cls()
        voice_locales = dict(defaults.voice_locales)
        configured = cfg.get("voice_locales")
        if isinstance(configured, Mapping):
            voice_locales.update({str(k): str(v) for k, v in configured.items()})
        return cls(
            max_pending=max(0, int(cfg.get("max_pending", defaults.max_pending))),
            voice_locales=voice_locales,
            fallback_locale=str(cfg.get("fallback_locale", defaults.fallback_locale)),
            fallback_text=str(cfg.get("fallback_text", defaults.fallback_text)),
        )


@dataclass(frozen=True)
class QueueEntry:
    text: str
    locale: str
    priority: NarrationPriority = NarrationPriority.NORMAL
    on_complete: EntryCallback | None = field(default=None, compare=False, repr=False)


class NarrationQueue:
    """Serialize announcements into one speech channel."""

    def __init__(self, engine: NarrationEngine, config: NarrationConfig | None = None) -> None:
        self._engine = engine
        self.config = config or NarrationConfig()
        self._lock = threading.RLock()
        self._state = NarrationState.IDLE
        self._current: QueueEntry | None = None
        self._pending: deque[QueueEntry] = deque()
        self._utterance_id = 0
        self._closed = False

    @property
    def state(self) -> NarrationState:
        with self._lock:
            return self._state

    @property
    def current(self) -> QueueEntry | None:
        with self._lock:
            return self._current

    def pending(self) -> list[QueueEntry]:
        with self._lock:
            return list(self._pending)

    def enqueue(
        self,
        text: str,
        locale: str,
        priority: NarrationPriority = NarrationPriority.NORMAL,
        on_complete: EntryCallback | None = None,
    ) -> bool:
        """Submit an utterance; return whether it was accepted.

        Rejected entries still receive ``NarrationOutcome.DROPPED``.
        """

        entry = QueueEntry(text=text, locale=locale, priority=priority, on_complete=on_complete)
        with self._lock:
            if self._closed:
                self._notify(entry, NarrationOutcome.DROPPED)
                return False

            if self._state is NarrationState.IDLE and not self._pending:
                self._start(entry)
                return True

            if priority is NarrationPriority.HIGH:
                self._preempt(entry)
                return True

            if any(item.text == text for item in self._pending):
                logger.debug("[NARRATION] Duplicate pending text dropped: %s", text)
                self._notify(entry, NarrationOutcome.DROPPED)
                return False

            if len(self._pending) >= self.config.max_pending:
                logger.debug("[NARRATION] Backlog full; dropped: %s", text)
                self._notify(entry, NarrationOutcome.DROPPED)
                return False

            self._pending.append(entry)
            if self._state is NarrationState.IDLE:
                self._start(self._pending.popleft())
            return True

    def close(self) -> None:
        """Cancel speech, discard the backlog and refuse further entries."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancel_all()
        logger.info("[NARRATION] Queue closed")

    def _preempt(self, entry: QueueEntry) -> None:
        logger.info("[NARRATION] Preempting for high-priority: %s", entry.text)
        self._cancel_all()
        self._start(entry)

    def _cancel_all(self) -> None:
        current = self._current
        discarded = list(self._pending)
        self._pending.clear()
        if current is not None:
            # Invalidate the in-flight token so its late completion is ignored.
            self._utterance_id += 1
            self._current = None
            self._state = NarrationState.IDLE
            try:
                self._engine.cancel()
            except Exception:
                logger.exception("[NARRATION] Engine cancel failed")
            self._notify(current, NarrationOutcome.CANCELLED)
        for item in discarded:
            self._notify(item, NarrationOutcome.CANCELLED)

    def _start(self, entry: QueueEntry) -> None:
        self._utterance_id += 1
        token = self._utterance_id
        self._current = entry
        self._state = NarrationState.SPEAKING

        text, locale = self._resolve_voice(entry)
        log_announcement(text, locale, entry.priority.value)
        try:
            self._engine.speak(
                text,
                locale,
                lambda error=None: self._on_engine_complete(token, error),
            )
        except Exception:
            logger.exception("[NARRATION] Engine failed to speak: %s", text)
            self._finish(token, NarrationOutcome.FAILED)

    def _resolve_voice(self, entry: QueueEntry) -> tuple[str, str]:
        voice_locale = self.config.voice_locales.get(entry.locale, entry.locale)
        try:
            available = self._engine.has_voice(voice_locale)
        except Exception:
            logger.exception("[NARRATION] Voice lookup failed for %s", voice_locale)
            available = False
        if available:
            return entry.text, voice_locale
        log_warning(
            f"[NARRATION] No voice for {voice_locale}; "
            f"speaking fallback notice in {self.config.fallback_locale}"
        )
        return self.config.fallback_text, self.config.fallback_locale

    def _on_engine_complete(self, token: int, error: BaseException | None) -> None:
        with self._lock:
            if token != self._utterance_id or self._current is None:
                return
            if error is not None:
                log_error(f"[NARRATION] Utterance failed: {error}")
            self._finish(token, NarrationOutcome.FAILED if error else NarrationOutcome.SPOKEN)

    def _finish(self, token: int, outcome: NarrationOutcome) -> None:
        if token != self._utterance_id or self._current is None:
            return
        entry = self._current
        self._current = None
        self._state = NarrationState.IDLE
        self._notify(entry, outcome)
        if self._state is NarrationState.IDLE and self._pending and not self._closed:
            self._start(self._pending.popleft())

    def _notify(self, entry: QueueEntry, outcome: NarrationOutcome) -> None:
        if entry.on_complete is None:
            return
        try:
            entry.on_complete(entry, outcome)
        except Exception:
            logger.exception("[NARRATION] Completion callback failed")
