import time

from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileMovedEvent

from latest_drop.selector import SelectionCriteria
from latest_drop.watcher import SourceEventHandler, StabilityTracker
from tests.conftest import make_file


def _tracker(stable=5):
    calls = []
    return StabilityTracker(stable, lambda: calls.append(1)), calls


def test_tracked_file_settles_after_stable_time(src):
    tracker, _ = _tracker(stable=5)
    f = make_file(src, "a.csv")
    tracker.track(f)
    now = time.time()
    assert tracker.check(now) is False
    assert tracker.check(now + 6) is True
    assert tracker.pending_count == 0


def test_growing_file_resets_the_clock(src):
    tracker, _ = _tracker(stable=5)
    f = make_file(src, "a.csv", content="x")
    tracker.track(f)
    f.write_text("xxxxxxxx", encoding="utf-8")
    now = time.time()
    assert tracker.check(now + 6) is False
    assert tracker.pending_count == 1
    assert tracker.check(now + 12) is True


def test_vanished_file_is_dropped(src):
    tracker, _ = _tracker()
    f = make_file(src, "a.csv")
    tracker.track(f)
    f.unlink()
    assert tracker.check(time.time() + 60) is False
    assert tracker.pending_count == 0


def test_handler_applies_selection_filters(src):
    tracker, _ = _tracker()
    handler = SourceEventHandler(tracker, SelectionCriteria(src, file_extension=".csv"))
    wanted = make_file(src, "a.csv")
    other = make_file(src, "b.txt")
    handler.on_created(FileCreatedEvent(str(wanted)))
    handler.on_created(FileCreatedEvent(str(other)))
    handler.on_created(DirCreatedEvent(str(src / "folder")))
    assert tracker.pending_count == 1


def test_handler_ignores_nested_files(src):
    tracker, _ = _tracker()
    sub = src / "sub"
    sub.mkdir()
    nested = make_file(sub, "a.csv")
    SourceEventHandler(tracker, SelectionCriteria(src)).on_created(FileCreatedEvent(str(nested)))
    assert tracker.pending_count == 0


def test_handler_tracks_rename_target(src):
    tracker, _ = _tracker()
    final = make_file(src, "export.csv")
    handler = SourceEventHandler(tracker, SelectionCriteria(src, file_extension="csv"))
    handler.on_moved(FileMovedEvent(str(src / "export.tmp"), str(final)))
    assert tracker.pending_count == 1
