"""Protocol types for SyncEngine dependencies.

Defines the interfaces that SyncEngine requires from its collaborators,
enabling easier testing and looser coupling.
"""

from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from .catalog import ReplayFile
from .replay_client import ReplayMarker, UploadOutcome


@runtime_checkable
class ReplayClientProtocol(Protocol):
    """Interface for talking to the replay service."""

    def get_last_replay(self) -> ReplayMarker: ...

    def upload_replay(self, path: Union[str, Path]) -> UploadOutcome: ...


@runtime_checkable
class ReplayCatalogProtocol(Protocol):
    """Interface for discovering replays on disk."""

    def is_replay_file(self, path: Union[str, Path]) -> bool: ...

    def is_replay_record(self, record: ReplayFile) -> bool: ...

    def stat_replay(self, path: Union[str, Path]) -> ReplayFile: ...

    def list_all(self) -> list[ReplayFile]: ...

    def list_newer_than(self, marker: ReplayMarker) -> list[ReplayFile]: ...

    def list_subdirectories(self) -> list[Path]: ...
