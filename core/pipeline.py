"""Perception-to-guidance pipeline driven by a fixed-rate asyncio tick."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import threading
import time
from typing import Any, Awaitable, Callable, Mapping, Protocol

from config import section
from core.context import GuidanceSettings
from core.logging import log_info, logger
from guidance.phrases import PhraseTable
from guidance.policy import AnnouncementCandidate, AnnouncementPolicy, PolicyConfig
from hardware.camera_source import CameraFrame, FrameSource
from interaction.narration import (
    NarrationConfig,
    NarrationOutcome,
    NarrationPriority,
    NarrationQueue,
    NarrationState,
    QueueEntry,
)
from interaction.narration_hal import NarrationEngine
from vision.clearance import ClearanceAnalyzer, ClearanceResult
from vision.detections import Detection, DetectionEvent
from vision.environment import EnvironmentClassifier, EnvironmentConfig, EnvironmentMode
from vision.lighting import LowLightConfig, LowLightMonitor
from vision.sampler import FrameSampler, SamplerConfig, SamplerDecision
from vision.tracker import ObjectTracker, OverlayItem, TrackerConfig


class Detector(Protocol):
    """Asynchronous object detector."""

    def detect(self, frame: CameraFrame) -> Awaitable[list[Detection]]:
        """Return detections for ``frame`` in frame pixel coordinates."""


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level pipeline settings."""

    tick_hz: float = 30.0
    locale: str = "en"
    muted: bool = False
    welcome_on_start: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "PipelineConfig":
        cfg = section(config, "pipeline")
        tick_hz = float(cfg.get("tick_hz", 30.0))
        return cls(
            tick_hz=tick_hz if tick_hz > 0 else 30.0,
            locale=str(cfg.get("locale", "en")),
            muted=bool(cfg.get("muted", False)),
            welcome_on_start=bool(cfg.get("welcome_on_start", True)),
        )


@dataclass(frozen=True)
class PipelineStatus:
    """Snapshot published to status subscribers after each cycle."""

    overlays: list[OverlayItem] = field(default_factory=list)
    environment: EnvironmentMode = EnvironmentMode.SCANNING
    low_light: bool = False
    narration_state: NarrationState = NarrationState.IDLE
    ready: bool = False
    locale: str = "en"
    muted: bool = False
    clearance: ClearanceResult | None = None
    timestamp_ms: int = 0


StatusCallback = Callable[[PipelineStatus], None]


class GuidancePipeline:
    """Own every stage and run sample, detect, track, decide and narrate.

    Inference runs as an asyncio task with at most one in flight; the
    tracking and policy pass runs when that task completes.
    """

    def __init__(
        self,
        source: FrameSource,
        detector: Detector,
        engine: NarrationEngine,
        *,
        config: PipelineConfig | None = None,
        sampler: FrameSampler | None = None,
        environment: EnvironmentClassifier | None = None,
        tracker: ObjectTracker | None = None,
        clearance: ClearanceAnalyzer | None = None,
        lighting: LowLightMonitor | None = None,
        policy: AnnouncementPolicy | None = None,
        narration: NarrationQueue | None = None,
        phrases: PhraseTable | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.source = source
        self.detector = detector
        self.phrases = phrases or PhraseTable()
        self.sampler = sampler or FrameSampler()
        self.environment = environment or EnvironmentClassifier()
        self.tracker = tracker or ObjectTracker()
        self.clearance = clearance or ClearanceAnalyzer()
        self.lighting = lighting or LowLightMonitor()
        self.policy = policy or AnnouncementPolicy(self.phrases)
        self.narration = narration or NarrationQueue(engine)
        self.settings = GuidanceSettings(locale=self.config.locale, muted=self.config.muted)
        self._clock = clock or (lambda: int(time.monotonic() * 1000))

        self._lock = threading.Lock()
        self._subscribers: set[StatusCallback] = set()
        self._inference_task: asyncio.Task[None] | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._stopped = False
        self._closed = False
        self._started = False
        self._ready = False
        self._last_clearance: ClearanceResult | None = None
        self._last_cycle_ms = 0

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None,
        source: FrameSource,
        detector: Detector,
        engine: NarrationEngine,
    ) -> "GuidancePipeline":
        """Build a pipeline with every stage configured from ``config``."""

        phrases = PhraseTable()
        return cls(
            source,
            detector,
            engine,
            config=PipelineConfig.from_config(config),
            sampler=FrameSampler(SamplerConfig.from_config(config)),
            environment=EnvironmentClassifier(EnvironmentConfig.from_config(config)),
            tracker=ObjectTracker(TrackerConfig.from_config(config)),
            lighting=LowLightMonitor(LowLightConfig.from_config(config)),
            policy=AnnouncementPolicy(phrases, PolicyConfig.from_config(config)),
            narration=NarrationQueue(engine, NarrationConfig.from_config(config)),
            phrases=phrases,
        )

    @property
    def ready(self) -> bool:
        with self._lock:
            return self._ready

    @property
    def stopped(self) -> bool:
        return self._stopped

    def subscribe(self, callback: StatusCallback) -> None:
        """Subscribe to per-cycle status updates."""

        with self._lock:
            self._subscribers.add(callback)

    def unsubscribe(self, callback: StatusCallback) -> None:
        with self._lock:
            self._subscribers.discard(callback)

    def start(self) -> None:
        """Announce the welcome phrase; ``ready`` flips when it completes."""

        if self._started:
            return
        self._started = True
        self._stopped = False
        logger.info(
            "[PIPELINE] Starting (tick_hz=%s locale=%s muted=%s)",
            self.config.tick_hz,
            self.settings.locale,
            self.settings.muted,
        )
        if self.config.welcome_on_start:
            self._announce_welcome(self.settings.locale)
        else:
            self._mark_ready()

    async def run(self) -> None:
        """Tick until ``stop()`` is called."""

        self.start()
        self._run_task = asyncio.current_task()
        interval_s = 1.0 / self.config.tick_hz
        try:
            while not self._stopped:
                tick_started = time.monotonic()
                await self.tick(self._clock())
                elapsed = time.monotonic() - tick_started
                await asyncio.sleep(max(0.0, interval_s - elapsed))
        except asyncio.CancelledError:
            logger.info("[PIPELINE] Tick loop cancelled")
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Stop ticking, cancel in-flight inference and silence narration."""

        if self._stopped:
            return
        self._stopped = True
        run_task = self._run_task
        if run_task is not None and not run_task.done() and run_task is not _current_task():
            run_task.cancel()
        self._shutdown()

    async def tick(self, now_ms: int) -> SamplerDecision:
        """Run one display tick.

        The tick only sweeps, polls the sampler and schedules work. Frame capture
        runs on a worker thread inside the inference task, and the tracking pass
        runs when that task completes.
        """

        if self._stopped:
            return SamplerDecision.SKIP

        self.tracker.sweep(now_ms)
        decision = self.sampler.poll(now_ms, self._source_ready())
        if decision is not SamplerDecision.INFER:
            return decision

        if self._inference_task is not None and not self._inference_task.done():
            logger.debug("[PIPELINE] Inference still in flight; skipping")
            return SamplerDecision.REUSE

        self._inference_task = asyncio.create_task(self._infer(now_ms))
        return decision

    async def wait_for_inference(self) -> None:
        """Wait until the in-flight inference (if any) has been processed."""

        task = self._inference_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def set_locale(self, locale: str) -> None:
        if locale == self.settings.locale:
            return
        self.settings.update(locale=locale)
        logger.info("[PIPELINE] Locale changed to %s", locale)
        if self._started and not self._stopped:
            self._announce_welcome(locale)

    def set_muted(self, muted: bool) -> None:
        self.settings.update(muted=muted)
        logger.info("[PIPELINE] Muted=%s", muted)

    def get_status(self) -> PipelineStatus:
        with self._lock:
            ready = self._ready
            clearance = self._last_clearance
            timestamp_ms = self._last_cycle_ms
        snapshot = self.settings.snapshot(self._frame_size(), timestamp_ms)
        return PipelineStatus(
            overlays=self.tracker.overlays(self._display_label),
            environment=self.environment.mode,
            low_light=self.lighting.low_light,
            narration_state=self.narration.state,
            ready=ready,
            locale=snapshot.locale,
            muted=snapshot.muted,
            clearance=clearance,
            timestamp_ms=timestamp_ms,
        )

    def process(self, detections: list[Detection], frame: CameraFrame, now_ms: int) -> list[AnnouncementCandidate]:
        """Run the tracking and policy pass for one completed inference."""

        if self._stopped:
            return []

        frame_size = frame.size if frame.size[0] > 0 else self._frame_size()
        self.sampler.remember(
            DetectionEvent(
                timestamp_ms=now_ms,
                detections=list(detections),
                frame_size=frame_size,
                frame_id=frame.timestamp_ms,
            )
        )
        self.lighting.update_from_image(frame.luma if frame.luma is not None else frame.image)

        self.environment.observe(detections)
        relevant = self.environment.filter(detections)
        self.tracker.update(relevant, frame_size, now_ms)
        clearance = self.clearance.analyze(detections, frame_size[0])
        context = self.settings.snapshot(frame_size, now_ms)

        candidates: list[AnnouncementCandidate] = []
        if self.ready:
            candidates = self.policy.evaluate(list(self.tracker), clearance, context)
            for candidate in candidates:
                self.narration.enqueue(
                    candidate.text,
                    candidate.locale,
                    priority=candidate.priority,
                )

        with self._lock:
            self._last_clearance = clearance
            self._last_cycle_ms = now_ms
        self._publish_status()
        return candidates

    async def _infer(self, now_ms: int) -> None:
        try:
            frame = await asyncio.to_thread(self.source.capture)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[PIPELINE] Frame capture failed")
            return
        if self._stopped:
            return

        try:
            detections = list(await self.detector.detect(frame))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[PIPELINE] Detector failed; continuing with no detections")
            detections = []

        if self._stopped:
            logger.debug("[PIPELINE] Ignoring late inference result after stop")
            return
        logger.debug("[PIPELINE] %s detections at %sms", len(detections), now_ms)
        try:
            self.process(detections, frame, now_ms)
        except Exception:
            logger.exception("[PIPELINE] Tracking pass failed")

    def _announce_welcome(self, locale: str) -> None:
        def _on_welcome(entry: QueueEntry, outcome: NarrationOutcome) -> None:
            logger.info("[PIPELINE] Welcome %s", outcome.value)
            self._mark_ready()

        self.narration.enqueue(
            self.phrases.welcome(locale),
            locale,
            priority=NarrationPriority.NORMAL,
            on_complete=_on_welcome,
        )

    def _mark_ready(self) -> None:
        with self._lock:
            if self._ready:
                return
            self._ready = True
        log_info("[PIPELINE] Guidance ready", style="bold green")

    def _shutdown(self) -> None:
        self._stopped = True
        if self._closed:
            return
        self._closed = True
        task = self._inference_task
        self._inference_task = None
        if task is not None and not task.done():
            task.cancel()
        self.narration.close()
        self.tracker.clear()
        logger.info("[PIPELINE] Stopped")

    def _source_ready(self) -> bool:
        try:
            return bool(self.source.is_ready())
        except Exception:
            logger.exception("[PIPELINE] Frame source readiness check failed")
            return False

    def _frame_size(self) -> tuple[int, int]:
        try:
            width, height = self.source.frame_size()
        except Exception:
            return (0, 0)
        return (int(width), int(height))

    def _display_label(self, label: str) -> str:
        return self.phrases.lookup(label, self.settings.locale)

    def _publish_status(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        if not subscribers:
            return
        status = self.get_status()
        for callback in subscribers:
            try:
                callback(status)
            except Exception:
                logger.exception("[PIPELINE] Status subscriber failed")


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
