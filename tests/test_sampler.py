"""Tests for the frame sampler."""

from __future__ import annotations

from vision.detections import Detection, DetectionEvent
from vision.sampler import FrameSampler, SamplerConfig, SamplerDecision


def test_not_ready_skips_without_touching_marker() -> None:
    sampler = FrameSampler()

    assert sampler.poll(0, ready=False) is SamplerDecision.SKIP
    assert sampler.poll(16, ready=False) is SamplerDecision.SKIP
    assert sampler.last_inference_ms is None


def test_min_interval_gates_inference() -> None:
    sampler = FrameSampler(SamplerConfig(min_interval_ms=150))

    assert sampler.poll(0, ready=True) is SamplerDecision.INFER
    assert sampler.poll(100, ready=True) is SamplerDecision.REUSE
    assert sampler.poll(149, ready=True) is SamplerDecision.REUSE
    assert sampler.poll(150, ready=True) is SamplerDecision.INFER
    assert sampler.last_inference_ms == 150


def test_remembers_last_event() -> None:
    sampler = FrameSampler()
    assert sampler.last_detections == []
    detections = [Detection("car", 0.9, (0.0, 0.0, 10.0, 10.0))]

    sampler.remember(DetectionEvent(timestamp_ms=150, detections=detections, frame_size=(100, 100)))
    sampler.last_detections.clear()

    assert len(sampler.last_detections) == 1
    assert sampler.last_event.timestamp_ms == 150

    sampler.reset()
    assert sampler.last_detections == []
    assert sampler.last_inference_ms is None


def test_from_config_reads_interval() -> None:
    config = SamplerConfig.from_config({"sampler": {"min_interval_ms": 300}})

    assert config.min_interval_ms == 300
    assert SamplerConfig.from_config({}).min_interval_ms == 150
