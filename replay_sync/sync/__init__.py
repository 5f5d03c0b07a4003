"""Sync module - finds local replays and uploads them to sc2replaystats."""

from .catalog import ReplayCatalog, ReplayFile
from .errors import ReplaySyncError
from .protocols import ReplayCatalogProtocol, ReplayClientProtocol
from .replay_client import ReplayMarker, ReplayStatsClient, UploadOutcome
from .sync_engine import BacklogResult, SyncEngine
from .watcher import ReplayWatcher, WatchState

__all__ = [
    "ReplayCatalog",
    "ReplayFile",
    "ReplaySyncError",
    "ReplayCatalogProtocol",
    "ReplayClientProtocol",
    "ReplayMarker",
    "ReplayStatsClient",
    "UploadOutcome",
    "BacklogResult",
    "SyncEngine",
    "ReplayWatcher",
    "WatchState",
]
