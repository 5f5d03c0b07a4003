"""Filesystem watcher for replays written while the uploader runs.

Uses the watchdog library to observe every replay directory and turns
content-write notifications into a lazy sequence of paths.
"""

import logging
import queue
import threading
from pathlib import Path
from typing import Iterable, Iterator, Optional

from watchdog.events import FileModifiedEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import EventSourceFailed

__all__ = ["ReplayWatcher", "WriteEventHandler", "WatchState"]

logger = logging.getLogger(__name__)

# How long events() blocks before re-checking the stop signal and observer
POLL_INTERVAL = 0.5


class WatchState:
    """Last observed size per path.

    Replays are written incrementally, so a single game produces many
    write notifications. A path only counts as changed when its size
    differs from the size recorded at the last handled event.
    """

    def __init__(self):
        self._sizes: dict[Path, int] = {}

    def observe(self, path: Path, size: int) -> bool:
        """Record ``size`` for ``path``; return True if it changed."""
        if self._sizes.get(path) == size:
            return False
        self._sizes[path] = size
        return True

    def get(self, path: Path) -> Optional[int]:
        return self._sizes.get(path)

    def __len__(self) -> int:
        return len(self._sizes)


class WriteEventHandler(FileSystemEventHandler):
    """Forwards file modification events into a queue.

    Creations, moves, deletions and directory events are ignored; only
    content writes can lead to an upload.
    """

    def __init__(self, events: "queue.Queue[Path]"):
        super().__init__()
        self._events = events

    def on_modified(self, event: FileModifiedEvent) -> None:  # type: ignore[override]
        if event.is_directory:
            return
        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode()
        self._events.put(Path(src_path).absolute())


class ReplayWatcher:
    """Watches a set of directories for replay writes.

    Usage:
        with ReplayWatcher(catalog.list_subdirectories()) as watcher:
            for path in watcher.events(stop_event):
                ...
    """

    def __init__(self, directories: Iterable[Path]):
        self.directories = [Path(d) for d in directories]
        self._queue: "queue.Queue[Path]" = queue.Queue()
        self._handler = WriteEventHandler(self._queue)
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        """Register every directory and start the observer.

        Raises:
            EventSourceFailed: If a directory cannot be watched
        """
        observer = Observer()
        try:
            for directory in self.directories:
                observer.schedule(self._handler, str(directory), recursive=False)
            observer.start()
        except OSError as e:
            raise EventSourceFailed(f"Cannot watch replay folders: {e}") from e
        self._observer = observer
        logger.info(f"Watching {len(self.directories)} folders for new replays")

    def stop(self) -> None:
        """Stop the observer and release resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("Watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def events(self, stop_event: threading.Event) -> Iterator[Path]:
        """Yield written paths until ``stop_event`` is set.

        Raises:
            EventSourceFailed: If the observer dies while watching
        """
        while not stop_event.is_set():
            try:
                yield self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if not self.is_running:
                    raise EventSourceFailed("Filesystem observer stopped unexpectedly")

    def __enter__(self) -> "ReplayWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
