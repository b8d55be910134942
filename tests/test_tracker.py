"""Tests for object tracking, confirmation and eviction."""

from __future__ import annotations

from vision.detections import Detection
from vision.tracker import (
    Distance,
    Motion,
    ObjectTracker,
    TrackerConfig,
    Urgency,
    Zone,
    classify_zone,
    collapse_by_label,
)

FRAME = (100, 100)


def _car(bbox=(80.0, 40.0, 60.0, 50.0), confidence: float = 0.9) -> Detection:
    return Detection(label="car", confidence=confidence, bbox=bbox)


def test_first_sighting_is_not_confirmed() -> None:
    tracker = ObjectTracker()

    tracker.update([_car()], FRAME, now_ms=0)

    obj = tracker.get("car")
    assert obj is not None
    assert obj.stability == 1
    assert not obj.is_confirmed()
    assert tracker.confirmed() == []


def test_car_scenario_confirms_on_second_cycle() -> None:
    tracker = ObjectTracker()

    tracker.update([_car()], FRAME, now_ms=0)
    tracker.update([_car()], FRAME, now_ms=200)
    obj = tracker.get("car")

    assert obj.stability == 2
    assert obj.is_confirmed()
    assert obj.area_ratio == 0.3
    assert obj.urgency is Urgency.MEDIUM
    assert obj.distance is Distance.NEAR
    # Centre x=110 lies outside the 100px frame and clamps to the last sector.
    assert obj.zone is Zone.FAR_RIGHT
    assert obj.motion is Motion.STATIC

    tracker.update([_car()], FRAME, now_ms=400)
    assert obj.stability == 3


def test_stability_is_capped() -> None:
    tracker = ObjectTracker()
    for step in range(10):
        tracker.update([_car()], FRAME, now_ms=step * 100)

    assert tracker.get("car").stability == 5


def test_eviction_resets_stability_on_reappearance() -> None:
    tracker = ObjectTracker()
    tracker.update([_car()], FRAME, now_ms=0)
    tracker.update([_car()], FRAME, now_ms=100)
    stale = tracker.get("car")
    assert stale.stability == 2

    assert tracker.sweep(now_ms=1300) == []
    assert tracker.sweep(now_ms=1301) == ["car"]
    assert "car" not in tracker
    assert stale.stability == 0

    tracker.update([_car()], FRAME, now_ms=1500)
    fresh = tracker.get("car")
    assert fresh is not stale
    assert fresh.stability == 1
    assert fresh.last_announced_ms is None


def test_large_jump_decrements_stability() -> None:
    tracker = ObjectTracker()
    tracker.update([_car((0.0, 0.0, 10.0, 10.0))], FRAME, now_ms=0)
    tracker.update([_car((0.0, 0.0, 10.0, 10.0))], FRAME, now_ms=100)

    tracker.update([_car((60.0, 60.0, 10.0, 10.0))], FRAME, now_ms=200)

    assert tracker.get("car").stability == 1


def test_lateral_motion_detected() -> None:
    tracker = ObjectTracker()
    tracker.update([_car((0.0, 0.0, 20.0, 20.0))], FRAME, now_ms=0)

    tracker.update([_car((10.0, 0.0, 20.0, 20.0))], FRAME, now_ms=100)

    assert tracker.get("car").motion is Motion.LATERAL


def test_approaching_takes_precedence_over_lateral() -> None:
    tracker = ObjectTracker()
    tracker.update([_car((0.0, 0.0, 20.0, 20.0))], FRAME, now_ms=0)

    # Moves sideways and grows by more than the approach threshold.
    tracker.update([_car((10.0, 0.0, 30.0, 30.0))], FRAME, now_ms=100)

    assert tracker.get("car").motion is Motion.APPROACHING


def test_urgency_tiers_follow_area_ratio() -> None:
    tracker = ObjectTracker()
    tracker.update(
        [
            Detection("person", 0.9, (0.0, 0.0, 70.0, 70.0)),
            Detection("chair", 0.9, (0.0, 0.0, 20.0, 20.0)),
        ],
        FRAME,
        now_ms=0,
    )

    assert tracker.get("person").urgency is Urgency.HIGH
    assert tracker.get("chair").urgency is Urgency.LOW


def test_smoothing_blends_toward_new_box() -> None:
    tracker = ObjectTracker(TrackerConfig(smoothing_retain=0.7))
    tracker.update([_car((0.0, 0.0, 10.0, 10.0))], FRAME, now_ms=0)

    tracker.update([_car((10.0, 0.0, 10.0, 10.0))], FRAME, now_ms=100)

    x, y, w, h = tracker.get("car").smoothed_box
    assert abs(x - 3.0) < 1e-9
    assert y == 0.0
    assert abs(w - 10.0) < 1e-9
    assert abs(h - 10.0) < 1e-9


def test_classify_zone_clamps_to_outer_sectors() -> None:
    assert classify_zone(-15.0, 100.0) is Zone.FAR_LEFT
    assert classify_zone(10.0, 100.0) is Zone.FAR_LEFT
    assert classify_zone(30.0, 100.0) is Zone.LEFT
    assert classify_zone(50.0, 100.0) is Zone.CENTER
    assert classify_zone(70.0, 100.0) is Zone.RIGHT
    assert classify_zone(100.0, 100.0) is Zone.FAR_RIGHT
    assert classify_zone(250.0, 100.0) is Zone.FAR_RIGHT


def test_same_label_collapses_to_largest_box() -> None:
    small = Detection("person", 0.95, (0.0, 0.0, 10.0, 10.0))
    large = Detection("person", 0.7, (50.0, 0.0, 30.0, 30.0))

    assert collapse_by_label([small, large]) == [large]


def test_invalid_frame_size_is_ignored() -> None:
    tracker = ObjectTracker()

    assert tracker.update([_car()], (0, 100), now_ms=0) == []
    assert len(tracker) == 0


def test_overlays_use_display_label() -> None:
    tracker = ObjectTracker()
    tracker.update([_car()], FRAME, now_ms=0)

    overlays = tracker.overlays(lambda label: label.upper())

    assert len(overlays) == 1
    assert overlays[0].display_label == "CAR"
    assert overlays[0].urgency is Urgency.MEDIUM
