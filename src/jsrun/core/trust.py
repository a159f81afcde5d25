"""Allow-list of URL prefixes that may be fetched."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, Field

from jsrun.core.cache import atomic_write_bytes
from jsrun.core.lock import file_lock

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

_BOUNDARIES = ("/", "?", "#")


class TrustPolicy(Protocol):
    def is_trusted(self, url: str) -> bool: ...


def normalize_trust_url(url: str) -> str:
    """Drop the fragment so trusting one bundle member trusts the whole bundle."""
    parts = urlsplit(url.strip())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def matches_prefix(url: str, prefix: str) -> bool:
    if url == prefix:
        return True
    if not url.startswith(prefix):
        return False
    return prefix.endswith(_BOUNDARIES) or url[len(prefix)] in _BOUNDARIES


class TrustedSources(BaseModel):
    """On-disk format of the trust store."""

    urls: list[str] = Field(default_factory=list)


class TrustStore:
    """Persistent trust store backed by a JSON file.

    Every mutation is a locked read-modify-write so two concurrent
    invocations never lose each other's entries.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> TrustedSources:
        if not self._path.exists():
            return TrustedSources()
        return TrustedSources.model_validate_json(self._path.read_text(encoding="utf-8"))

    def _write(self, data: TrustedSources) -> None:
        content = data.model_dump_json(indent=2) + "\n"
        atomic_write_bytes(self._path, content.encode("utf-8"))

    @property
    def urls(self) -> list[str]:
        return list(self._read().urls)

    def is_trusted(self, url: str) -> bool:
        return any(matches_prefix(url, prefix) for prefix in self._read().urls)

    def add(self, url: str) -> bool:
        """Trust *url* (and everything below it). Returns False if already trusted."""
        prefix = normalize_trust_url(url)
        with file_lock(self._path):
            data = self._read()
            if prefix in data.urls:
                return False
            data.urls.append(prefix)
            self._write(data)
        logger.info("Trusted %s", prefix)
        return True

    def remove(self, urls: Iterable[str]) -> list[str]:
        """Remove entries; returns the ones that were actually present."""
        targets = {normalize_trust_url(u) for u in urls}
        with file_lock(self._path):
            data = self._read()
            removed = [u for u in data.urls if u in targets]
            if removed:
                data.urls = [u for u in data.urls if u not in targets]
                self._write(data)
        for u in removed:
            logger.info("Untrusted %s", u)
        return removed
