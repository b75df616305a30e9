import pytest

from progress import AnalysisCancelled, CancellationToken, ProgressTracker


def test_progress_never_goes_backwards():
    tracker = ProgressTracker()
    tracker.report("optimization", 50)
    event = tracker.report("parsing", 10)
    assert event.stage == "optimization"
    assert event.progress == pytest.approx(50)


def test_child_ranges_map_into_parent():
    events = []
    tracker = ProgressTracker(events.append)
    allocation = tracker.child(40, 80)
    allocation.report("optimization", 50, current_item=5, total_items=10)
    assert events[-1].progress == pytest.approx(60)
    assert events[-1].current_item == 5

    nested = allocation.child(50, 100)
    nested.report("optimization", 0)
    assert events[-1].progress == pytest.approx(60)
    assert tracker.last is events[-1]
    assert len(tracker.events) == 2


def test_progress_is_clamped():
    tracker = ProgressTracker(start=10, end=20)
    assert tracker.report("parsing", 250).progress == pytest.approx(20)
    with pytest.raises(ValueError, match="progress range"):
        ProgressTracker(start=50, end=10)


def test_unknown_stage_raises():
    with pytest.raises(ValueError, match="Unknown progress stage"):
        ProgressTracker().report("uploading", 10)


def test_event_as_dict():
    event = ProgressTracker().report("complete", 100, message="done")
    assert event.as_dict() == {
        "stage": "complete",
        "progress": 100.0,
        "current_item": 0,
        "total_items": 0,
        "message": "done",
    }


def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel("user pressed stop")
    assert token.cancelled
    with pytest.raises(AnalysisCancelled, match="user pressed stop"):
        token.raise_if_cancelled()
