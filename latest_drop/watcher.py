"""Watch trigger for Latest Drop.

Uses the watchdog library to monitor the source folder. Once a new or
modified file that passes the selection filters has been stable for the
configured time, a normal run is started. Runs never overlap: they are
started one after another from the stability tracker's thread.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from latest_drop.errors import ConfigurationInvalid
from latest_drop.selector import SelectionCriteria

logger = logging.getLogger(__name__)


class StabilityTracker:
    """Fires *on_stable* once tracked files have been unchanged for a while.

    All files that settle in the same poll are reported with a single
    call, since one run picks the latest file anyway.
    """

    def __init__(
        self,
        stable_seconds: int,
        on_stable: Callable[[], Any],
        poll_seconds: float = 1.0,
    ):
        self._stable_seconds = stable_seconds
        self._on_stable = on_stable
        self._poll_seconds = poll_seconds
        # file_path -> (last_change_time, last_size)
        self._pending = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll, daemon=True, name="StabilityTracker"
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)

    def track(self, path: Path) -> None:
        """Register or update a file for stability tracking."""
        try:
            size = path.stat().st_size
        except OSError:
            return
        with self._lock:
            self._pending[path] = (time.time(), size)
        logger.debug("Tracking %s (size=%d)", path, size)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def check(self, now: float | None = None) -> bool:
        """Drop settled files from the pending set; return True if any settled."""
        now = time.time() if now is None else now
        settled = []
        with self._lock:
            for path, (last_seen, last_size) in list(self._pending.items()):
                try:
                    current_size = path.stat().st_size
                except OSError:
                    # File vanished — drop it
                    del self._pending[path]
                    continue
                if current_size != last_size:
                    self._pending[path] = (now, current_size)
                elif now - last_seen >= self._stable_seconds:
                    settled.append(path)
            for p in settled:
                del self._pending[p]
        for p in settled:
            logger.info("File stable: %s", p)
        return bool(settled)

    def _poll(self) -> None:
        while not self._stop.is_set():
            if self.check():
                try:
                    self._on_stable()
                except Exception:
                    logger.exception("Error in triggered run")
            self._stop.wait(timeout=self._poll_seconds)


class SourceEventHandler(FileSystemEventHandler):
    """Feeds matching new/modified files into the stability tracker."""

    def __init__(self, tracker: StabilityTracker, criteria: SelectionCriteria):
        super().__init__()
        self._tracker = tracker
        self._criteria = criteria
        self._root = Path(criteria.source_directory).resolve()

    def _consider(self, src_path: str) -> None:
        path = Path(src_path)
        # Direct children only
        if path.resolve().parent != self._root:
            return
        if not self._criteria.matches(path.name):
            logger.debug("Ignoring %s (does not match filters)", path.name)
            return
        self._tracker.track(path)

    def on_created(self, event: FileCreatedEvent) -> None:  # type: ignore[override]
        if not event.is_directory:
            self._consider(event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:  # type: ignore[override]
        if not event.is_directory:
            self._consider(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:  # type: ignore[override]
        if not event.is_directory:
            self._consider(event.dest_path)


class SourceWatcher:
    """watchdog observer + stability tracker for one source folder."""

    def __init__(
        self,
        criteria: SelectionCriteria,
        on_trigger: Callable[[], Any],
        stable_seconds: int = 10,
    ):
        self.source_folder = str(criteria.source_directory)
        self._tracker = StabilityTracker(stable_seconds, on_trigger)
        self._handler = SourceEventHandler(self._tracker, criteria)
        self._observer: Any | None = None

    def start(self) -> None:
        """Start watching the source folder."""
        if not Path(self.source_folder).is_dir():
            logger.error("Source folder does not exist: %s", self.source_folder)
            raise FileNotFoundError(
                f"Source folder does not exist: {self.source_folder}"
            )
        observer = Observer()
        self._observer = observer
        observer.schedule(self._handler, self.source_folder, recursive=False)
        observer.start()
        self._tracker.start()
        logger.info("Watching '%s'", self.source_folder)

    def stop(self) -> None:
        """Stop watching and release resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self._tracker.stop()
        logger.info("Watcher stopped.")

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()


def watch_and_run(cfg, run: Callable[[], int]) -> int:
    """Run once now, then again whenever the source folder settles, until signalled."""
    try:
        cfg.validate()
    except ConfigurationInvalid:
        # Let the run report the configuration problem
        return run()

    run()
    watcher = SourceWatcher(cfg.criteria(), run, stable_seconds=cfg.watch_stable_seconds)
    try:
        watcher.start()
    except FileNotFoundError:
        return 1

    stop = threading.Event()

    def _handler(sig, frame):
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    print("Latest Drop watching (press Ctrl-C to stop)…")
    while not stop.is_set():
        stop.wait(timeout=1)
    watcher.stop()
    return 0
