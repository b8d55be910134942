"""Tests for left/right clearance analysis."""

from __future__ import annotations

from guidance.phrases import PhraseTable
from vision.clearance import TIE_BREAK_DIRECTION, ClearanceAnalyzer, Direction
from vision.detections import Detection


def test_recommends_less_obstructed_side() -> None:
    detections = [
        Detection("couch", 0.9, (0.0, 0.0, 50.0, 100.0)),
        Detection("chair", 0.9, (60.0, 0.0, 10.0, 100.0)),
    ]

    result = ClearanceAnalyzer().analyze(detections, frame_width=100)

    assert result.left_area == 5000.0
    assert result.right_area == 1000.0
    assert result.direction is Direction.RIGHT
    assert PhraseTable().move(result.direction, "en") == "move right"


def test_tie_breaks_left() -> None:
    result = ClearanceAnalyzer().analyze([], frame_width=100)

    assert TIE_BREAK_DIRECTION is Direction.LEFT
    assert result.direction is Direction.LEFT
    assert (result.left_area, result.right_area) == (0.0, 0.0)


def test_box_straddling_midpoint_is_split() -> None:
    detections = [Detection("person", 0.9, (40.0, 0.0, 30.0, 10.0))]

    result = ClearanceAnalyzer().analyze(detections, frame_width=100)

    assert result.left_area == 100.0
    assert result.right_area == 200.0
    assert result.direction is Direction.LEFT


def test_symmetric_obstruction_uses_tie_break() -> None:
    detections = [Detection("person", 0.9, (40.0, 0.0, 20.0, 10.0))]

    result = ClearanceAnalyzer().analyze(detections, frame_width=100)

    assert result.left_area == result.right_area
    assert result.direction is TIE_BREAK_DIRECTION
