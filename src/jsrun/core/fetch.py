"""HTTP download of remote sources."""

from __future__ import annotations

import logging
from functools import cached_property
from typing import Protocol
from urllib.parse import urlsplit

import requests

from jsrun import __version__
from jsrun.source.errors import FetchFailure

logger = logging.getLogger(__name__)

_GITHUB_API_HOST = "api.github.com"


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


class HttpFetcher:
    """Download URLs with ``requests``.

    No retries: a failure is reported as :class:`FetchFailure` and the caller
    decides what to do.
    """

    def __init__(self, *, timeout: float = 30.0, github_token: str | None = None) -> None:
        self._timeout = timeout
        self._github_token = github_token

    @cached_property
    def session(self) -> requests.Session:
        session = requests.Session()
        session.headers["User-Agent"] = f"jsrun/{__version__}"
        return session

    def _headers(self, url: str) -> dict[str, str]:
        if self._github_token and urlsplit(url).hostname == _GITHUB_API_HOST:
            return {"Authorization": f"token {self._github_token}"}
        return {}

    def fetch(self, url: str) -> bytes:
        logger.debug("Fetching %s", url)
        try:
            resp = self.session.get(url, headers=self._headers(url), timeout=self._timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise FetchFailure(url, f"HTTP {e.response.status_code}") from e
        except requests.RequestException as e:
            raise FetchFailure(url, str(e)) from e
        logger.debug("Fetched %d bytes from %s", len(resp.content), url)
        return resp.content
