"""Announcement policy: decide whether, what and how urgently to narrate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from config import section
from core.context import CycleContext
from core.logging import logger
from guidance.phrases import PhraseTable
from interaction.narration import NarrationPriority
from vision.clearance import ClearanceResult
from vision.tracker import Motion, TrackedObject, Urgency


@dataclass(frozen=True)
class PolicyConfig:
    """Timing and confidence thresholds for announcements."""

    collision_gap_ms: int = 1200
    high_debounce_ms: int = 2500
    normal_debounce_ms: int = 4500
    clear_confidence: float = 0.7
    probable_confidence: float = 0.5

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "PolicyConfig":
        cfg = section(config, "policy")
        defaults = cls()
        return cls(
            collision_gap_ms=int(cfg.get("collision_gap_ms", defaults.collision_gap_ms)),
            high_debounce_ms=int(cfg.get("high_debounce_ms", defaults.high_debounce_ms)),
            normal_debounce_ms=int(cfg.get("normal_debounce_ms", defaults.normal_debounce_ms)),
            clear_confidence=float(cfg.get("clear_confidence", defaults.clear_confidence)),
            probable_confidence=float(
                cfg.get("probable_confidence", defaults.probable_confidence)
            ),
        )


@dataclass(frozen=True)
class AnnouncementCandidate:
    """One narration request produced for one tracked object."""

    text: str
    urgency: Urgency
    locale: str
    priority: NarrationPriority
    label: str
    reason: str


class AnnouncementPolicy:
    """Turn confirmed tracker state into prioritized announcements."""

    def __init__(self, phrases: PhraseTable, config: PolicyConfig | None = None) -> None:
        self.phrases = phrases
        self.config = config or PolicyConfig()

    def evaluate(
        self,
        objects: Iterable[TrackedObject],
        clearance: ClearanceResult,
        context: CycleContext,
    ) -> list[AnnouncementCandidate]:
        """Return announcements for this cycle and record them on the objects.

        Objects are visited in the order given; each is judged independently.
        """

        if context.muted:
            return []

        candidates: list[AnnouncementCandidate] = []
        for obj in objects:
            if not obj.is_confirmed():
                continue
            candidate = self._collision(obj, context)
            if candidate is None:
                candidate = self._tiered(obj, clearance, context)
            if candidate is None:
                continue
            obj.mark_announced(context.now_ms)
            candidates.append(candidate)
            logger.info(
                "[POLICY] %s %s (urgency=%s motion=%s zone=%s conf=%.2f)",
                candidate.reason,
                obj.label,
                obj.urgency.value,
                obj.motion.value,
                obj.zone.value,
                obj.confidence,
            )
        return candidates

    def debounce_ms(self, urgency: Urgency) -> int:
        if urgency is Urgency.HIGH:
            return self.config.high_debounce_ms
        return self.config.normal_debounce_ms

    def _elapsed_ms(self, obj: TrackedObject, now_ms: int) -> int | None:
        if obj.last_announced_ms is None:
            return None
        return now_ms - obj.last_announced_ms

    def _collision(
        self, obj: TrackedObject, context: CycleContext
    ) -> AnnouncementCandidate | None:
        if obj.urgency is not Urgency.HIGH or obj.motion is not Motion.APPROACHING:
            return None
        elapsed = self._elapsed_ms(obj, context.now_ms)
        if elapsed is not None and elapsed <= self.config.collision_gap_ms:
            return None
        return AnnouncementCandidate(
            text=self.phrases.danger(obj.label, obj.zone, context.locale),
            urgency=obj.urgency,
            locale=context.locale,
            priority=NarrationPriority.HIGH,
            label=obj.label,
            reason="collision",
        )

    def _tiered(
        self,
        obj: TrackedObject,
        clearance: ClearanceResult,
        context: CycleContext,
    ) -> AnnouncementCandidate | None:
        elapsed = self._elapsed_ms(obj, context.now_ms)
        # prev_urgency is None until the first announcement, so any change,
        # including de-escalation, bypasses the debounce.
        urgency_changed = obj.prev_urgency is not None and obj.prev_urgency is not obj.urgency
        debounce_elapsed = elapsed is None or elapsed > self.debounce_ms(obj.urgency)
        if not (debounce_elapsed or urgency_changed):
            return None

        locale = context.locale
        if obj.confidence >= self.config.clear_confidence:
            if obj.urgency is Urgency.HIGH:
                action = self.phrases.careful(locale)
            else:
                action = self.phrases.move(clearance.direction, locale)
            text = self.phrases.object_in_zone(obj.label, obj.zone, action, locale)
            reason = "clear"
        elif obj.confidence >= self.config.probable_confidence:
            text = self.phrases.obstacle_in_zone(obj.zone, clearance.direction, locale)
            reason = "probable"
        else:
            return None

        return AnnouncementCandidate(
            text=text,
            urgency=obj.urgency,
            locale=locale,
            priority=NarrationPriority.NORMAL,
            label=obj.label,
            reason=reason if not urgency_changed else f"{reason}-urgency-change",
        )
