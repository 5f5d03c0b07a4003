"""Sync engine - decides which replays to upload and in which order."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config import Config
from .catalog import ReplayFile
from .errors import ReplaySyncError, StatUnavailable
from .protocols import ReplayCatalogProtocol, ReplayClientProtocol
from .replay_client import UploadOutcome
from .watcher import ReplayWatcher, WatchState

logger = logging.getLogger(__name__)


@dataclass
class BacklogResult:
    """Outcome of processing the backlog."""

    found: int = 0
    uploaded: list[UploadOutcome] = field(default_factory=list)
    failed_path: Optional[Path] = None
    error: Optional[ReplaySyncError] = None
    stopped: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.stopped

    @property
    def remaining(self) -> int:
        """Replays found but not uploaded."""
        return self.found - len(self.uploaded)


class SyncEngine:
    """Uploads the replay backlog, then optionally follows new writes.

    Uploads are strictly sequential. The first failure ends backlog
    processing; a re-run derives its starting point from the remote
    marker again, so no local progress is kept.
    """

    def __init__(
        self,
        client: ReplayClientProtocol,
        catalog: ReplayCatalogProtocol,
        config: Config,
        watcher_factory: Callable[[Iterable[Path]], ReplayWatcher] = ReplayWatcher,
    ):
        self.client = client
        self.catalog = catalog
        self.config = config
        self.watch_state = WatchState()
        self._watcher_factory = watcher_factory

    def select_backlog(self) -> list[ReplayFile]:
        """Find replays not yet uploaded, oldest first.

        Raises:
            MarkerUnavailable: If the last replay cannot be determined
            WalkFailed: If the replay folder cannot be walked
        """
        if self.config.upload_all:
            replays = self.catalog.list_all()
        else:
            marker = self.client.get_last_replay()
            replays = self.catalog.list_newer_than(marker)
        # The service derives the next marker from what it saw last
        return sorted(replays, key=lambda r: r.modified)

    def run_backlog(self, stop_event: Optional[threading.Event] = None) -> BacklogResult:
        """Upload every backlog replay, stopping at the first error.

        A set ``stop_event`` ends processing before the next upload.
        """
        result = BacklogResult()
        try:
            backlog = self.select_backlog()
        except ReplaySyncError as e:
            logger.error(f"Failed to collect backlog: {e}")
            result.error = e
            return result

        result.found = len(backlog)
        logger.info(f"{len(backlog)} replays to upload")

        for replay in backlog:
            if stop_event is not None and stop_event.is_set():
                result.stopped = True
                break
            try:
                result.uploaded.append(self.client.upload_replay(replay.path))
            except ReplaySyncError as e:
                logger.error(f"Failed to upload {replay.path}: {e}")
                result.failed_path = replay.path
                result.error = e
                break

        if result.stopped:
            logger.info(f"Backlog stopped, {result.remaining} replays left")
        elif result.success:
            logger.info(f"Backlog done: {len(result.uploaded)} replays uploaded")
        else:
            logger.error(f"Backlog aborted, {result.remaining} replays left")
        return result

    def handle_write(self, path: Path) -> Optional[UploadOutcome]:
        """Upload a written file if it is a replay whose size changed.

        Returns:
            The upload outcome, or None if nothing was uploaded
        """
        try:
            record = self.catalog.stat_replay(path)
        except StatUnavailable as e:
            logger.debug(f"Ignoring {path}: {e}")
            return None
        if not self.catalog.is_replay_record(record):
            return None
        size = record.size

        if not self.watch_state.observe(path, size):
            logger.debug(f"Ignoring {path}: size unchanged ({size} bytes)")
            return None
        return self.client.upload_replay(path)

    def watch(self, stop_event: threading.Event) -> None:
        """Upload replays as they are written until ``stop_event`` is set.

        Raises:
            ReplaySyncError: Any error aborts the watch loop
        """
        directories = self.catalog.list_subdirectories()
        with self._watcher_factory(directories) as watcher:
            for path in watcher.events(stop_event):
                self.handle_write(path)

    def run(self, stop_event: Optional[threading.Event] = None) -> BacklogResult:
        """Process the backlog, then watch if configured.

        Watching only starts after a successful backlog. Errors while
        watching are raised rather than recorded in the result.
        """
        stop_event = stop_event or threading.Event()
        result = self.run_backlog(stop_event)
        if not result.success or not self.config.watch:
            return result

        self.watch(stop_event)
        return result
