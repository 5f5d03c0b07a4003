"""sc2replaystats API client - looks up the last replay and uploads new ones."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Union

import requests

from ..config import DEFAULT_API_URL, DEFAULT_DUMP_PATH
from .errors import (
    MarkerUnavailable,
    QueueIdMalformed,
    ReplayReadError,
    ResponseMalformed,
    UploadRejected,
)
from .http_client import BaseApiClient

__all__ = [
    "ReplayStatsClient",
    "ReplayMarker",
    "UploadOutcome",
    "UPLOADER_IDENTIFIER",
    "REPLAY_BUFFER",
]

logger = logging.getLogger(__name__)

# Identifies this uploader to the API
UPLOADER_IDENTIFIER = "https://github.com/poettler-ric/sc2replayuploader"

LAST_REPLAY_ENDPOINT = "account/last-replay"
REPLAY_ENDPOINT = "replay"
REPLAY_FILE_FIELD = "replay_file"

# Tolerates clock differences between the local filesystem and the
# replay dates recorded by sc2replaystats
REPLAY_BUFFER = timedelta(minutes=5)

RFC3339_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d{1,6})?([Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)
# Optional sign, ASCII digits only
QUEUE_ID_PATTERN = re.compile(r"[+-]?[0-9]+", re.ASCII)


@dataclass(frozen=True)
class ReplayMarker:
    """The last replay sc2replaystats recorded for the account.

    ``replay_time`` is None when the account has no replay yet.
    """

    replay_time: Optional[datetime]
    raw: str = ""

    @property
    def has_replay(self) -> bool:
        return self.replay_time is not None

    @property
    def cutoff(self) -> Optional[datetime]:
        """Local files modified after this time count as new."""
        if self.replay_time is None:
            return None
        return self.replay_time - REPLAY_BUFFER

    @classmethod
    def from_dict(cls, data: dict) -> "ReplayMarker":
        """Create a marker from the last-replay response body.

        Raises:
            MarkerUnavailable: If the replay date is not an RFC3339 timestamp
        """
        raw = data.get("replay_date")
        if raw is None or raw == "":
            return cls(replay_time=None)
        if not isinstance(raw, str):
            raise MarkerUnavailable(f"Unexpected replay_date: {raw!r}")
        if not RFC3339_PATTERN.fullmatch(raw):
            raise MarkerUnavailable(f"replay_date {raw!r} is not an RFC3339 timestamp")

        if raw[-1] in "Zz":
            raw_iso = raw[:-1] + "+00:00"
        else:
            raw_iso = raw
        try:
            replay_time = datetime.fromisoformat(raw_iso)
        except ValueError as e:
            raise MarkerUnavailable(f"Cannot parse replay_date {raw!r}: {e}") from e
        return cls(replay_time=replay_time, raw=raw)


@dataclass
class UploadOutcome:
    """Result of a replay upload."""

    status_code: int
    queue_id_raw: str = ""
    queue_id: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status_code == 200 and self.queue_id is not None


class ReplayStatsClient(BaseApiClient):
    """Client for the sc2replaystats replay API."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        token: Optional[str] = None,
        account_hash: Optional[str] = None,
        timeout: float = 30,
        dump_path: Union[str, Path] = DEFAULT_DUMP_PATH,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            api_url: sc2replaystats API base URL
            token: API token for authentication
            account_hash: Hash of the account the replays belong to
            timeout: Request timeout in seconds
            dump_path: Where undecodable upload responses are written
            session: Optional requests session (for testing)
        """
        super().__init__(api_url, token=token, timeout=timeout, session=session)
        self.account_hash = account_hash
        self.dump_path = Path(dump_path)

    def get_last_replay(self) -> ReplayMarker:
        """Get the last replay recorded for the account.

        Raises:
            MarkerUnavailable: On non-200 responses or unparseable bodies
            ReplayTransportError: If the service cannot be reached
        """
        response = self._request("GET", LAST_REPLAY_ENDPOINT)
        if response.status_code != 200:
            raise MarkerUnavailable(
                f"Last replay lookup failed ({response.status_code})",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MarkerUnavailable(
                f"Last replay response is not JSON: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(data, dict):
            raise MarkerUnavailable(
                "Last replay response is not a JSON object",
                status_code=response.status_code,
                body=response.text,
            )

        marker = ReplayMarker.from_dict(data)
        if marker.has_replay:
            logger.info(f"Last uploaded replay: {marker.replay_time.isoformat()}")
        else:
            logger.info("No replay recorded for this account yet")
        return marker

    def upload_replay(self, path: Union[str, Path]) -> UploadOutcome:
        """Upload a replay file.

        Args:
            path: Replay file to upload

        Returns:
            UploadOutcome with the parsed queue id

        Raises:
            UploadRejected: For non-200 responses (carries the raw body)
            ResponseMalformed: If a 200 body is not JSON
            QueueIdMalformed: If the queue id is missing or not numeric
            ReplayReadError: If the file cannot be read
            ReplayTransportError: If the service cannot be reached
        """
        path = Path(path)
        logger.info(f"Uploading {path.name}")

        try:
            content = path.read_bytes()
        except OSError as e:
            raise ReplayReadError(f"Cannot read {path}: {e}") from e

        response = self._request(
            "POST",
            REPLAY_ENDPOINT,
            data={
                "upload_method": UPLOADER_IDENTIFIER,
                "hashkey": self.account_hash or "",
            },
            files={REPLAY_FILE_FIELD: (path.name, content)},
        )

        if response.status_code != 200:
            raise UploadRejected(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            self._write_dump(response.content)
            raise ResponseMalformed(f"Upload response is not JSON: {e}") from e

        raw = data.get("replay_queue_id") if isinstance(data, dict) else None
        if not isinstance(raw, str) or not QUEUE_ID_PATTERN.fullmatch(raw):
            raise QueueIdMalformed(raw)
        queue_id = int(raw)

        logger.info(f"Uploaded {path.name} (queue id {queue_id})")
        return UploadOutcome(status_code=response.status_code, queue_id_raw=raw, queue_id=queue_id)

    def _write_dump(self, body: bytes) -> None:
        """Keep an undecodable response around for inspection."""
        try:
            self.dump_path.write_bytes(body)
            logger.warning(f"Undecodable response written to {self.dump_path}")
        except OSError as e:
            logger.error(f"Couldn't write dump file {self.dump_path}: {e}")
