"""Tests for the asyncio guidance pipeline using in-process fakes."""

from __future__ import annotations

import asyncio
import itertools
import time

from core.pipeline import GuidancePipeline, PipelineConfig, PipelineStatus
from guidance.phrases import TEMPLATES
from hardware.camera_source import CameraFrame
from interaction.narration import NarrationState
from interaction.narration_hal import FakeNarrationEngine
from vision.clearance import Direction
from vision.detections import Detection
from vision.environment import EnvironmentMode
from vision.sampler import SamplerDecision

CAR = Detection(label="car", confidence=0.9, bbox=(80.0, 40.0, 60.0, 50.0))
WELCOME = TEMPLATES["en"].welcome


class _FakeSource:
    def __init__(self, ready: bool = True, size: tuple[int, int] = (100, 100)) -> None:
        self.ready = ready
        self.size = size
        self.captures = 0

    def is_ready(self) -> bool:
        return self.ready

    def frame_size(self) -> tuple[int, int]:
        return self.size

    def capture(self) -> CameraFrame:
        self.captures += 1
        return CameraFrame(image=None, size=self.size, timestamp_ms=self.captures)


class _SlowSource(_FakeSource):
    def __init__(self, delay_s: float) -> None:
        super().__init__()
        self.delay_s = delay_s

    def capture(self) -> CameraFrame:
        time.sleep(self.delay_s)
        return super().capture()


class _BrokenSource(_FakeSource):
    def capture(self) -> CameraFrame:
        raise OSError("sensor timeout")


class _ScriptedDetector:
    def __init__(self, batches: list[list[Detection]] | None = None, error: Exception | None = None) -> None:
        self.batches = list(batches or [])
        self.error = error
        self.calls = 0

    async def detect(self, frame: CameraFrame) -> list[Detection]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.batches.pop(0) if self.batches else []


class _BlockingDetector:
    def __init__(self, release: asyncio.Event, detections: list[Detection]) -> None:
        self.release = release
        self.detections = detections

    async def detect(self, frame: CameraFrame) -> list[Detection]:
        await self.release.wait()
        return list(self.detections)


async def _cycles(pipeline: GuidancePipeline, times: list[int]) -> list[SamplerDecision]:
    decisions = []
    for now_ms in times:
        decisions.append(await pipeline.tick(now_ms))
        await pipeline.wait_for_inference()
    return decisions


def test_car_scenario_announces_once_confirmed() -> None:
    engine = FakeNarrationEngine(auto_complete=True)
    pipeline = GuidancePipeline(_FakeSource(), _ScriptedDetector([[CAR]] * 3), engine)
    spoken_after_cycle: list[int] = []

    async def scenario() -> None:
        pipeline.start()
        for now_ms in (0, 200, 400):
            await pipeline.tick(now_ms)
            await pipeline.wait_for_inference()
            spoken_after_cycle.append(len(engine.spoken))

    asyncio.run(scenario())

    assert pipeline.ready is True
    assert spoken_after_cycle == [1, 2, 2]
    assert engine.spoken == [
        (WELCOME, "en-IN"),
        ("Car is on your far right, move left.", "en-IN"),
    ]


def test_sampler_reuses_between_inferences() -> None:
    detector = _ScriptedDetector([[CAR]] * 3)
    pipeline = GuidancePipeline(_FakeSource(), detector, FakeNarrationEngine(auto_complete=True))

    decisions = asyncio.run(_cycles(pipeline, [0, 33, 66, 150]))

    assert decisions == [
        SamplerDecision.INFER,
        SamplerDecision.REUSE,
        SamplerDecision.REUSE,
        SamplerDecision.INFER,
    ]
    assert detector.calls == 2


def test_source_not_ready_skips_detection() -> None:
    source = _FakeSource(ready=False)
    detector = _ScriptedDetector([[CAR]])
    pipeline = GuidancePipeline(source, detector, FakeNarrationEngine())

    decisions = asyncio.run(_cycles(pipeline, [0, 16, 32]))

    assert decisions == [SamplerDecision.SKIP] * 3
    assert detector.calls == 0
    assert source.captures == 0


def test_tick_does_not_wait_for_frame_capture() -> None:
    source = _SlowSource(delay_s=0.3)
    detector = _ScriptedDetector([[CAR]])
    pipeline = GuidancePipeline(source, detector, FakeNarrationEngine(auto_complete=True))
    gaps: list[float] = []

    async def heartbeat(done: asyncio.Event) -> None:
        last = time.monotonic()
        while not done.is_set():
            await asyncio.sleep(0.01)
            now = time.monotonic()
            gaps.append(now - last)
            last = now

    async def scenario() -> SamplerDecision:
        done = asyncio.Event()
        beat = asyncio.create_task(heartbeat(done))
        await asyncio.sleep(0.02)
        started = time.monotonic()
        decision = await pipeline.tick(0)
        tick_s = time.monotonic() - started
        await pipeline.wait_for_inference()
        done.set()
        await beat
        assert tick_s < 0.05
        return decision

    decision = asyncio.run(scenario())

    assert decision is SamplerDecision.INFER
    assert source.captures == 1
    assert detector.calls == 1
    assert max(gaps) < 0.15


def test_capture_failure_skips_cycle() -> None:
    statuses: list[PipelineStatus] = []
    detector = _ScriptedDetector([[CAR]])
    pipeline = GuidancePipeline(_BrokenSource(), detector, FakeNarrationEngine(auto_complete=True))
    pipeline.subscribe(statuses.append)

    decisions = asyncio.run(_cycles(pipeline, [0, 200]))

    assert decisions == [SamplerDecision.INFER, SamplerDecision.INFER]
    assert detector.calls == 0
    assert statuses == []
    assert pipeline.stopped is False


def test_detector_failure_continues_with_empty_cycle() -> None:
    statuses: list[PipelineStatus] = []
    pipeline = GuidancePipeline(
        _FakeSource(),
        _ScriptedDetector(error=RuntimeError("model crashed")),
        FakeNarrationEngine(auto_complete=True),
    )
    pipeline.subscribe(statuses.append)

    asyncio.run(_cycles(pipeline, [0, 200]))

    assert len(pipeline.tracker) == 0
    assert len(statuses) == 2
    assert statuses[-1].overlays == []


def test_stop_discards_late_inference() -> None:
    engine = FakeNarrationEngine(auto_complete=True)

    async def scenario() -> tuple[GuidancePipeline, SamplerDecision]:
        release = asyncio.Event()
        pipeline = GuidancePipeline(_FakeSource(), _BlockingDetector(release, [CAR]), engine)
        pipeline.start()
        await pipeline.tick(0)
        await asyncio.sleep(0)
        pipeline.stop()
        release.set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return pipeline, await pipeline.tick(500)

    pipeline, decision = asyncio.run(scenario())

    assert decision is SamplerDecision.SKIP
    assert len(pipeline.tracker) == 0
    assert pipeline.narration.state is NarrationState.IDLE
    assert pipeline.narration.enqueue("late", "en") is False
    assert engine.spoken == [(WELCOME, "en-IN")]


def test_muted_pipeline_stays_silent() -> None:
    engine = FakeNarrationEngine(auto_complete=True)
    pipeline = GuidancePipeline(_FakeSource(), _ScriptedDetector([[CAR]] * 3), engine)

    async def scenario() -> None:
        pipeline.start()
        pipeline.set_muted(True)
        await _cycles(pipeline, [0, 200, 400])

    asyncio.run(scenario())

    assert engine.spoken == [(WELCOME, "en-IN")]
    assert pipeline.tracker.get("car").last_announced_ms is None


def test_announcements_wait_for_welcome_to_finish() -> None:
    engine = FakeNarrationEngine()
    pipeline = GuidancePipeline(_FakeSource(), _ScriptedDetector([[CAR]] * 3), engine)

    async def scenario() -> None:
        pipeline.start()
        await _cycles(pipeline, [0, 200])
        assert pipeline.ready is False
        assert engine.spoken == [(WELCOME, "en-IN")]
        engine.finish()
        await _cycles(pipeline, [400])

    asyncio.run(scenario())

    assert pipeline.ready is True
    assert engine.last_text == "Car is on your far right, move left."


def test_locale_change_reannounces_welcome() -> None:
    engine = FakeNarrationEngine(voices={"en-IN", "ta-IN"}, auto_complete=True)
    pipeline = GuidancePipeline(_FakeSource(), _ScriptedDetector(), engine)

    pipeline.start()
    pipeline.set_locale("ta")

    assert engine.spoken[-1] == (TEMPLATES["ta"].welcome, "ta-IN")
    assert pipeline.get_status().locale == "ta"


def test_status_exposes_overlays_and_environment() -> None:
    statuses: list[PipelineStatus] = []
    pipeline = GuidancePipeline(
        _FakeSource(), _ScriptedDetector([[CAR]]), FakeNarrationEngine(auto_complete=True)
    )
    pipeline.subscribe(statuses.append)

    async def scenario() -> None:
        pipeline.start()
        await _cycles(pipeline, [0])

    asyncio.run(scenario())

    status = statuses[-1]
    assert status.ready is True
    assert status.environment is EnvironmentMode.SCANNING
    assert status.low_light is False
    assert status.clearance.direction is Direction.LEFT
    assert [item.display_label for item in status.overlays] == ["Car"]


def test_failing_subscriber_does_not_block_others() -> None:
    received: list[PipelineStatus] = []
    pipeline = GuidancePipeline(
        _FakeSource(), _ScriptedDetector([[CAR]]), FakeNarrationEngine(auto_complete=True)
    )

    def _broken(status: PipelineStatus) -> None:
        raise ValueError("ui gone")

    pipeline.subscribe(_broken)
    pipeline.subscribe(received.append)

    asyncio.run(_cycles(pipeline, [0]))

    assert len(received) == 1


def test_run_loop_ticks_until_stopped() -> None:
    clock = itertools.count(0, 200)
    pipeline = GuidancePipeline(
        _FakeSource(),
        _ScriptedDetector([[CAR]]),
        FakeNarrationEngine(auto_complete=True),
        config=PipelineConfig(tick_hz=200),
        clock=lambda: next(clock),
    )
    pipeline.subscribe(lambda status: pipeline.stop())

    asyncio.run(pipeline.run())

    assert pipeline.stopped is True
    assert pipeline.narration.enqueue("after", "en") is False


def test_from_config_wires_sections() -> None:
    pipeline = GuidancePipeline.from_config(
        {
            "pipeline": {"tick_hz": 10, "locale": "ta"},
            "narration": {"max_pending": 1},
            "sampler": {"min_interval_ms": 500},
        },
        _FakeSource(),
        _ScriptedDetector(),
        FakeNarrationEngine(),
    )

    assert pipeline.config.tick_hz == 10.0
    assert pipeline.settings.locale == "ta"
    assert pipeline.narration.config.max_pending == 1
