"""HTTP page retrieval for backlink verification."""
from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Union

import httpx

from .models import FetchedPage, FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MAX_ERROR_LENGTH = 100

_DNS_ERROR_RE = re.compile(
    r"name or service not known|nodename nor servname|getaddrinfo|"
    r"temporary failure in name resolution|no address associated|name resolution",
    re.IGNORECASE,
)
_REFUSED_RE = re.compile(r"connection refused|errno 111|errno 61", re.IGNORECASE)

FetchOutcome = Union[FetchedPage, FetchFailure]


class PageFetcher:
    """Fetch pages with a bounded timeout and a bounded number of redirect hops.

    Every HTTP response is returned as a :class:`FetchedPage`, whatever its
    status; only transport problems become a :class:`FetchFailure`.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=False)
        return self._client

    def fetch(self, url: str) -> FetchOutcome:
        try:
            return self._get(url)
        except httpx.TimeoutException:
            logger.warning("Timeout fetching %s", url)
            return FetchFailure(kind=FetchFailure.TIMEOUT, message="Connection timeout")
        except httpx.ConnectError as exc:
            failure = _classify_connect_error(exc)
            logger.warning("Could not connect to %s: %s", url, exc)
            return failure
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
            logger.warning("Error fetching %s: %s", url, exc)
            return FetchFailure(kind=FetchFailure.TRANSPORT, message=_truncate(exc))

    def _get(self, url: str) -> FetchedPage:
        request = self.client.build_request(
            "GET", url, headers=self._headers(), timeout=self.timeout
        )
        response = self.client.send(request, follow_redirects=False)
        hops = 0
        while response.is_redirect and response.next_request is not None and hops < self.max_redirects:
            hops += 1
            next_request = response.next_request
            response.close()
            logger.debug("Following redirect %d for %s -> %s", hops, url, next_request.url)
            response = self.client.send(next_request, follow_redirects=False)
        return FetchedPage(
            url=str(response.url),
            status_code=response.status_code,
            body=response.text,
            reason=response.reason_phrase,
        )

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()


def _truncate(exc: Exception) -> str:
    message = str(exc) or exc.__class__.__name__
    return message[:MAX_ERROR_LENGTH]


def _classify_connect_error(exc: httpx.ConnectError) -> FetchFailure:
    message = str(exc)
    if _DNS_ERROR_RE.search(message):
        return FetchFailure(kind=FetchFailure.DNS, message="Domain not found (DNS error)")
    if _REFUSED_RE.search(message):
        return FetchFailure(kind=FetchFailure.CONNECT, message="Connection refused")
    return FetchFailure(kind=FetchFailure.CONNECT, message=_truncate(exc))


__all__ = ["PageFetcher", "FetchOutcome", "DEFAULT_USER_AGENT"]
