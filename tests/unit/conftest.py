"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from jsrun.core.cache import ContentCache
from jsrun.source.errors import FetchFailure
from jsrun.source.resource import ResourceResolver

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

_JSRUN_ENV_VARS = (
    "JSRUN_HOME",
    "JSRUN_CACHE_DIR",
    "JSRUN_OFFLINE",
    "JSRUN_FRESH",
    "JSRUN_CONNECT_TIMEOUT",
    "JSRUN_GITHUB_TOKEN",
    "JSRUN_LOG",
    "GITHUB_TOKEN",
    "JAVA_HOME",
    "NO_COLOR",
)


@pytest.fixture(autouse=True)
def _clean_jsrun_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove JSRUN_* env vars and point the home directory into tmp_path."""
    for var in _JSRUN_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("JSRUN_HOME", str(tmp_path / "home"))


class FakeFetcher:
    """Serves canned responses and records every requested URL."""

    def __init__(self, responses: Mapping[str, bytes | str] | None = None) -> None:
        self.responses: dict[str, bytes | str] = dict(responses or {})
        self.calls: list[str] = []

    def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if url not in self.responses:
            raise FetchFailure(url, "HTTP 404")
        data = self.responses[url]
        return data.encode("utf-8") if isinstance(data, str) else data


class FakeTrust:
    """Trusts URLs starting with one of the given prefixes (everything by default)."""

    def __init__(self, *prefixes: str) -> None:
        self.prefixes = prefixes

    def is_trusted(self, url: str) -> bool:
        return not self.prefixes or url.startswith(self.prefixes)


def gist_payload(files: Mapping[str, str]) -> str:
    """JSON body of the gists API for a gist holding *files*."""
    return json.dumps(
        {
            "files": {
                name: {"filename": name, "content": content, "truncated": False}
                for name, content in files.items()
            }
        }
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_resolver(tmp_path: Path, fetcher: FakeFetcher) -> Callable[..., ResourceResolver]:
    """Factory fixture: a resolver over tmp_path with a fake fetcher and trust policy."""

    def _make(**kwargs: object) -> ResourceResolver:
        kwargs.setdefault("trust", FakeTrust())
        kwargs.setdefault("cache", ContentCache(tmp_path / "cache" / "urls"))
        kwargs.setdefault("fetcher", fetcher)
        kwargs.setdefault("cwd", tmp_path)
        return ResourceResolver(**kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory fixture: write *text* to ``tmp_path/<name>`` and return the path."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
