"""Base HTTP client for the sc2replaystats API."""

import logging
from typing import Optional

import requests

from .. import __version__
from .errors import ReplayTransportError

__all__ = ["BaseApiClient"]

logger = logging.getLogger(__name__)


class BaseApiClient:
    """Base HTTP client.

    Handles:
    - Session management
    - Authentication headers
    - Request timeout
    - Classification of transport failures

    Status codes and bodies are left to subclasses, since every endpoint
    treats non-200 responses differently.
    """

    USER_AGENT = f"replay-sync/{__version__}"

    def __init__(
        self,
        api_url: str,
        token: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """Initialize base API client.

        Args:
            api_url: sc2replaystats API base URL
            token: API token, sent verbatim as the Authorization header
            timeout: Request timeout in seconds
            session: Optional requests session (for dependency injection/testing)
        """
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()
        self._owns_session = session is None

    def _get_headers(self) -> dict:
        """Get request headers with authentication."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = self.token
        return headers

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Send a single request and return the raw response.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to api_url)
            **kwargs: Passed through to ``requests.Session.request``

        Raises:
            ReplayTransportError: If no response was received
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        headers = self._get_headers()
        headers.update(kwargs.pop("headers", {}))
        kwargs.setdefault("timeout", self.timeout)

        try:
            response = self._session.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.ConnectionError as e:
            raise ReplayTransportError(f"Cannot connect to {self.api_url}") from e
        except requests.exceptions.Timeout as e:
            raise ReplayTransportError(f"{method} {url} timed out") from e
        except requests.exceptions.RequestException as e:
            raise ReplayTransportError(f"{method} {url} failed: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "BaseApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
