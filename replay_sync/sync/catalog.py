"""Replay catalog - finds replay files below a directory."""

import logging
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Union

from ..config import DEFAULT_REPLAY_SUFFIX as REPLAY_SUFFIX
from .errors import StatUnavailable, WalkFailed
from .replay_client import ReplayMarker

__all__ = ["ReplayCatalog", "ReplayFile", "REPLAY_SUFFIX"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayFile:
    """A candidate replay file on disk."""

    path: Path
    modified: datetime
    is_regular: bool
    size: int = 0

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result) -> "ReplayFile":
        return cls(
            path=path,
            modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            is_regular=stat.S_ISREG(st.st_mode),
            size=st.st_size,
        )


class ReplayCatalog:
    """Classifies and lists replay files below a root directory.

    Symlinks are followed when stat'ing entries but symlinked directories
    are not descended into.
    """

    def __init__(self, root_dir: Union[str, Path], suffix: str = REPLAY_SUFFIX):
        self.root_dir = Path(root_dir)
        self.suffix = suffix

    def is_replay_record(self, record: ReplayFile) -> bool:
        """Apply the replay rule to an already stat'd record."""
        return record.is_regular and record.path.name.endswith(self.suffix)

    def stat_replay(self, path: Union[str, Path]) -> ReplayFile:
        """Stat a single path.

        Raises:
            StatUnavailable: If the path cannot be stat'd
        """
        path = Path(path)
        try:
            st = os.stat(path)
        except OSError as e:
            raise StatUnavailable(f"Cannot stat {path}: {e}") from e
        return ReplayFile.from_stat(path, st)

    def is_replay_file(self, path: Union[str, Path]) -> bool:
        """Check whether a path is a regular file with the replay suffix.

        Raises:
            StatUnavailable: If the path cannot be stat'd
        """
        return self.is_replay_record(self.stat_replay(path))

    def _on_walk_error(self, error: OSError) -> None:
        raise WalkFailed(f"Error while walking {self.root_dir}: {error}") from error

    def _walk_dirs(self) -> Iterator[tuple[str, list[str]]]:
        if not self.root_dir.is_dir():
            raise WalkFailed(f"Replay folder does not exist: {self.root_dir}")
        for dirpath, _dirnames, filenames in os.walk(self.root_dir, onerror=self._on_walk_error):
            yield dirpath, filenames

    def _walk(self) -> Iterator[ReplayFile]:
        """Yield every replay below the root in traversal order."""
        for dirpath, filenames in self._walk_dirs():
            for name in filenames:
                path = Path(dirpath) / name
                try:
                    record = ReplayFile.from_stat(path, os.stat(path))
                except OSError as e:
                    raise WalkFailed(f"Error while walking {self.root_dir}: {e}") from e
                if self.is_replay_record(record):
                    yield record

    def list_all(self) -> list[ReplayFile]:
        """List all replays below the root, unsorted.

        Raises:
            WalkFailed: On any error while walking (no partial results)
        """
        replays = list(self._walk())
        logger.debug(f"Found {len(replays)} replays in {self.root_dir}")
        return replays

    def list_newer_than(self, marker: ReplayMarker) -> list[ReplayFile]:
        """List replays modified strictly after the marker's cutoff.

        A marker without a replay time selects every replay.

        Raises:
            WalkFailed: On any error while walking
        """
        cutoff = marker.cutoff
        if cutoff is None:
            return self.list_all()

        replays = [r for r in self._walk() if r.modified > cutoff]
        logger.debug(
            f"Found {len(replays)} replays newer than {cutoff.isoformat()} in {self.root_dir}"
        )
        return replays

    def list_subdirectories(self) -> list[Path]:
        """List the root and every directory below it.

        Raises:
            WalkFailed: On any error while walking
        """
        return [Path(dirpath) for dirpath, _ in self._walk_dirs()]
