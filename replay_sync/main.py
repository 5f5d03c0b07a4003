"""Replay Sync - Main entry point."""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

from . import __version__
from .auth import KeychainManager
from .config import Config, setup_logging
from .sync import BacklogResult, ReplayCatalog, ReplayStatsClient, ReplaySyncError, SyncEngine

logger = logging.getLogger(__name__)


class ReplaySyncApp:
    """Wires the client, catalog and engine together for one run."""

    def __init__(self, config: Config):
        self.config = config
        self.client = ReplayStatsClient(
            api_url=config.api_url,
            token=config.token,
            account_hash=config.account_hash,
            timeout=config.timeout,
            dump_path=config.dump_path,
        )
        self.catalog = ReplayCatalog(config.replay_dir, suffix=config.replay_suffix)
        self.sync_engine = SyncEngine(self.client, self.catalog, config)
        self._stop_event = threading.Event()

    def run(self) -> bool:
        """Run the backlog and, if configured, the watch loop.

        Returns:
            True if everything succeeded
        """
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info(f"Replay Sync {__version__} starting for {self.config.replay_dir}")
        try:
            result: BacklogResult = self.sync_engine.run(self._stop_event)
        except ReplaySyncError as e:
            logger.error(f"Watching stopped: {e}")
            return False
        return result.success

    def stop(self) -> None:
        self._stop_event.set()

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, stopping after the current upload")
        # A second signal terminates immediately
        signal.signal(signum, signal.SIG_DFL)
        self.stop()

    def __enter__(self) -> "ReplaySyncApp":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.client.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="replay-sync",
        description="Upload StarCraft II replays to sc2replaystats.",
    )
    parser.add_argument("--hash", dest="account_hash", help="hash of the account for the replays")
    parser.add_argument("--token", help="authentication token to use")
    parser.add_argument("--dir", dest="replay_dir", help="root folder for replays")
    parser.add_argument(
        "--all",
        dest="upload_all",
        action="store_true",
        default=None,
        help="upload all replays instead of only the ones newer than the last upload",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        default=None,
        help="keep watching the replay folder for new replays",
    )
    parser.add_argument("--config", help="path to a JSON config file")
    parser.add_argument("--api-url", help="sc2replaystats API base URL")
    parser.add_argument(
        "--save-token",
        action="store_true",
        help="store the given token in the system keychain",
    )
    parser.add_argument(
        "--debug", dest="debug_mode", action="store_true", default=None, help="verbose logging"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Merge config file and command line into one Config."""
    return Config.load(args.config).with_overrides(
        account_hash=args.account_hash,
        token=args.token,
        replay_dir=args.replay_dir,
        upload_all=args.upload_all,
        watch=args.watch,
        api_url=args.api_url,
        debug_mode=args.debug_mode,
    )


def apply_keychain(
    config: Config, args: argparse.Namespace, keychain: Optional[KeychainManager] = None
) -> Config:
    """Store or fill in the token using the system keychain."""
    if not config.account_hash:
        if args.save_token:
            logger.warning("--save-token needs an account hash, token not stored")
        return config

    keychain = keychain or KeychainManager()
    if args.save_token and config.token:
        keychain.store(config.account_hash, config.token)
    elif not config.token:
        config = config.with_overrides(token=keychain.load(config.account_hash))
    return config


def resolve_config(
    args: argparse.Namespace, keychain: Optional[KeychainManager] = None
) -> Config:
    """Merge config file, command line and keychain into one Config."""
    return apply_keychain(load_config(args), args, keychain)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args)

    # Keychain access logs, so logging comes first
    setup_logging(config.debug_mode)
    config = apply_keychain(config, args)

    missing = config.validate()
    if missing:
        parser.error(f"missing required settings: {', '.join(missing)}")

    with ReplaySyncApp(config) as app:
        ok = app.run()
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
