"""Replay Sync - uploads StarCraft II replays to sc2replaystats."""

__version__ = "1.0.0"
