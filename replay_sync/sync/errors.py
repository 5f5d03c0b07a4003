"""Errors raised while discovering and uploading replays."""

from typing import Optional

__all__ = [
    "ReplaySyncError",
    "MarkerUnavailable",
    "StatUnavailable",
    "WalkFailed",
    "ResponseMalformed",
    "QueueIdMalformed",
    "UploadRejected",
    "EventSourceFailed",
    "ReplayTransportError",
    "ReplayReadError",
]


class ReplaySyncError(Exception):
    """Base class for replay sync errors."""

    pass


class MarkerUnavailable(ReplaySyncError):
    """The last uploaded replay could not be determined."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class StatUnavailable(ReplaySyncError):
    """A path could not be stat'd (usually removed in the meantime)."""

    pass


class WalkFailed(ReplaySyncError):
    """Walking the replay directory tree failed."""

    pass


class ResponseMalformed(ReplaySyncError):
    """The upload response body was not valid JSON."""

    pass


class QueueIdMalformed(ReplaySyncError):
    """The upload response carried a missing or non-numeric queue id."""

    def __init__(self, raw: object):
        self.raw = raw
        super().__init__(f"Malformed replay queue id: {raw!r}")


class UploadRejected(ReplaySyncError):
    """The service answered an upload with a non-200 status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upload rejected ({status_code}): {body}")


class EventSourceFailed(ReplaySyncError):
    """The filesystem event source stopped delivering events."""

    pass


class ReplayTransportError(ReplaySyncError):
    """The request never produced an HTTP response."""

    pass


class ReplayReadError(ReplaySyncError):
    """A local replay file could not be read."""

    pass
