"""HTTP fetching utilities for remote image sources."""

from __future__ import annotations

import logging
from threading import Lock

import requests
from requests import Session

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

_session_lock = Lock()
_session: Session | None = None


class FetchError(Exception):
    """Raised when image bytes cannot be obtained from a source."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {source}: {reason}")
        self.source = source
        self.reason = reason


def _get_session() -> Session:
    """Return a shared requests session configured with default headers."""
    global _session
    if _session is None:
        with _session_lock:
            if _session is None:
                session = requests.Session()
                session.headers.update(
                    {
                        "User-Agent": _USER_AGENT,
                        "Accept": "image/*,*/*;q=0.8",
                    }
                )
                _session = session
    return _session


def is_remote(source: str) -> bool:
    """Return ``True`` when *source* names an HTTP(S) resource."""
    return source.strip().lower().startswith(("http://", "https://"))


def fetch_image_bytes(url: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Download *url* and return the response body.

    A single attempt is made. Timeouts, transport failures and HTTP error
    statuses all raise :class:`FetchError`.
    """
    session = _get_session()
    try:
        response = session.get(url, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except requests.Timeout as exc:
        raise FetchError(url, f"timed out after {timeout:.0f}s") from exc
    except requests.HTTPError as exc:
        raise FetchError(url, f"server returned status {exc.response.status_code}") from exc
    except requests.RequestException as exc:
        raise FetchError(url, str(exc)) from exc
    logger.debug("Fetched %d bytes from %s", len(response.content), url)
    return response.content
