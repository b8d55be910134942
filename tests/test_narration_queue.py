"""Tests for the single-channel narration queue."""

from __future__ import annotations

from interaction.narration import (
    NarrationConfig,
    NarrationOutcome,
    NarrationPriority,
    NarrationQueue,
    NarrationState,
)
from interaction.narration_hal import FakeNarrationEngine


class _Recorder:
    def __init__(self) -> None:
        self.outcomes: list[tuple[str, NarrationOutcome]] = []

    def __call__(self, entry, outcome: NarrationOutcome) -> None:
        self.outcomes.append((entry.text, outcome))


def _queue(engine: FakeNarrationEngine | None = None) -> tuple[NarrationQueue, FakeNarrationEngine]:
    engine = engine or FakeNarrationEngine()
    return NarrationQueue(engine, NarrationConfig()), engine


def test_idle_queue_speaks_immediately_with_voice_locale() -> None:
    queue, engine = _queue()

    assert queue.enqueue("Car is ahead, move left.", "en") is True

    assert queue.state is NarrationState.SPEAKING
    assert engine.spoken == [("Car is ahead, move left.", "en-IN")]


def test_completion_drains_pending_in_order() -> None:
    queue, engine = _queue()
    recorder = _Recorder()
    queue.enqueue("one", "en", on_complete=recorder)
    queue.enqueue("two", "en", on_complete=recorder)
    queue.enqueue("three", "en", on_complete=recorder)

    engine.finish()
    assert engine.last_text == "two"
    engine.finish()
    assert engine.last_text == "three"
    engine.finish()

    assert queue.state is NarrationState.IDLE
    assert recorder.outcomes == [
        ("one", NarrationOutcome.SPOKEN),
        ("two", NarrationOutcome.SPOKEN),
        ("three", NarrationOutcome.SPOKEN),
    ]


def test_high_priority_preempts_and_clears_backlog() -> None:
    queue, engine = _queue()
    recorder = _Recorder()
    queue.enqueue("one", "en", on_complete=recorder)
    queue.enqueue("two", "en", on_complete=recorder)
    queue.enqueue("three", "en", on_complete=recorder)

    queue.enqueue("Warning!", "en", priority=NarrationPriority.HIGH, on_complete=recorder)

    assert engine.cancel_count == 1
    assert engine.last_text == "Warning!"
    assert queue.current.text == "Warning!"
    assert queue.pending() == []
    assert recorder.outcomes == [
        ("one", NarrationOutcome.CANCELLED),
        ("two", NarrationOutcome.CANCELLED),
        ("three", NarrationOutcome.CANCELLED),
    ]


def test_third_pending_request_is_shed() -> None:
    queue, _ = _queue()
    recorder = _Recorder()
    queue.enqueue("speaking", "en")
    queue.enqueue("two", "en")
    queue.enqueue("three", "en")

    accepted = queue.enqueue("four", "en", on_complete=recorder)

    assert accepted is False
    assert [entry.text for entry in queue.pending()] == ["two", "three"]
    assert recorder.outcomes == [("four", NarrationOutcome.DROPPED)]


def test_duplicate_pending_text_is_dropped() -> None:
    queue, _ = _queue()
    queue.enqueue("speaking", "en")
    queue.enqueue("Obstacle ahead, move left.", "en")

    assert queue.enqueue("Obstacle ahead, move left.", "en") is False
    assert len(queue.pending()) == 1


def test_missing_voice_speaks_fallback_notice() -> None:
    queue, engine = _queue(FakeNarrationEngine(voices={"en", "en-IN"}))

    queue.enqueue("வணக்கம்", "ta")

    assert engine.spoken == [(NarrationConfig().fallback_text, "en-IN")]


def test_engine_exception_fails_entry_without_wedging() -> None:
    engine = FakeNarrationEngine(fail_with=RuntimeError("no audio device"))
    queue, _ = _queue(engine)
    recorder = _Recorder()

    assert queue.enqueue("hello", "en", on_complete=recorder) is True

    assert recorder.outcomes == [("hello", NarrationOutcome.FAILED)]
    assert queue.state is NarrationState.IDLE

    engine.fail_with = None
    queue.enqueue("again", "en")
    assert engine.last_text == "again"


def test_engine_error_completion_marks_failed_and_continues() -> None:
    queue, engine = _queue()
    recorder = _Recorder()
    queue.enqueue("one", "en", on_complete=recorder)
    queue.enqueue("two", "en", on_complete=recorder)

    engine.finish(RuntimeError("synth error"))

    assert recorder.outcomes == [("one", NarrationOutcome.FAILED)]
    assert engine.last_text == "two"


def test_stale_completion_after_preemption_is_ignored() -> None:
    queue, engine = _queue()
    recorder = _Recorder()
    queue.enqueue("normal", "en", on_complete=recorder)
    queue.enqueue("urgent", "en", priority=NarrationPriority.HIGH, on_complete=recorder)

    # Completion for the cancelled utterance arrives late.
    engine.finish()
    assert queue.state is NarrationState.SPEAKING
    assert queue.current.text == "urgent"

    engine.finish()
    assert queue.state is NarrationState.IDLE
    assert recorder.outcomes == [
        ("normal", NarrationOutcome.CANCELLED),
        ("urgent", NarrationOutcome.SPOKEN),
    ]


def test_close_cancels_and_refuses_new_entries() -> None:
    queue, engine = _queue()
    recorder = _Recorder()
    queue.enqueue("one", "en", on_complete=recorder)
    queue.enqueue("two", "en", on_complete=recorder)

    queue.close()
    accepted = queue.enqueue("three", "en", on_complete=recorder)

    assert accepted is False
    assert engine.cancel_count == 1
    assert queue.state is NarrationState.IDLE
    assert recorder.outcomes == [
        ("one", NarrationOutcome.CANCELLED),
        ("two", NarrationOutcome.CANCELLED),
        ("three", NarrationOutcome.DROPPED),
    ]


def test_callback_failure_does_not_break_queue() -> None:
    queue, engine = _queue()

    def _boom(entry, outcome) -> None:
        raise ValueError("callback bug")

    queue.enqueue("one", "en", on_complete=_boom)
    queue.enqueue("two", "en")
    engine.finish()

    assert engine.last_text == "two"


def test_auto_complete_engine_returns_to_idle() -> None:
    queue, engine = _queue(FakeNarrationEngine(auto_complete=True))

    queue.enqueue("one", "en")

    assert queue.state is NarrationState.IDLE
    assert engine.spoken == [("one", "en-IN")]
