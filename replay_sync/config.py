"""Configuration management for Replay Sync."""

import dataclasses
import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Union

from platformdirs import user_config_dir, user_log_dir

__all__ = [
    "Config",
    "setup_logging",
    "DEFAULT_API_URL",
    "DEFAULT_DUMP_PATH",
]

logger = logging.getLogger(__name__)

APP_NAME = "Replay Sync"
APP_AUTHOR = "replay-sync"

# API endpoints
DEFAULT_API_URL = "http://api.sc2replaystats.com"

# Written to the working directory when an upload response can't be decoded
DEFAULT_DUMP_PATH = "sc2replayuploader.dump"

DEFAULT_REPLAY_SUFFIX = ".SC2Replay"
DEFAULT_TIMEOUT = 60  # seconds

REQUIRED_SETTINGS = ("account_hash", "token", "replay_dir")


@dataclass(frozen=True)
class Config:
    """Main configuration object."""

    api_url: str = DEFAULT_API_URL
    account_hash: Optional[str] = None
    token: Optional[str] = None
    replay_dir: Optional[str] = None
    upload_all: bool = False
    watch: bool = False
    replay_suffix: str = DEFAULT_REPLAY_SUFFIX
    timeout: float = DEFAULT_TIMEOUT
    dump_path: str = DEFAULT_DUMP_PATH
    debug_mode: bool = False

    def __post_init__(self):
        if self.replay_dir:
            object.__setattr__(self, "replay_dir", str(Path(self.replay_dir).expanduser()))

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get the configuration directory path."""
        return Path(user_config_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_log_dir(cls) -> Path:
        """Get the log directory path."""
        return Path(user_log_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_config_file(cls) -> Path:
        """Get the config file path."""
        return cls.get_config_dir() / "config.json"

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """Load config from file, or return defaults."""
        config_file = Path(path).expanduser() if path else cls.get_config_file()
        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    data = json.load(f)
                return cls._from_dict(data)
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_file}: {e}, using defaults")
        return cls()

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def with_overrides(self, **overrides) -> "Config":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def validate(self) -> list[str]:
        """Return the names of required settings that are missing."""
        return [name for name in REQUIRED_SETTINGS if not getattr(self, name)]

    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        """Save config to file. The token is never written."""
        config_file = Path(path).expanduser() if path else self.get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = asdict(self)
        data.pop("token", None)
        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Config saved to {config_file}")


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    log_dir = Config.get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "replay-sync.log"

    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)
