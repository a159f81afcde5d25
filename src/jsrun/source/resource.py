"""Resolution of reference strings (paths, URLs, bundle members) to local files."""

from __future__ import annotations

import glob
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urldefrag, urljoin, urlsplit

from pydantic import BaseModel, Field, ValidationError

from jsrun.source.errors import FetchFailure, ResourceNotFound, UntrustedSource

if TYPE_CHECKING:
    from jsrun.core.cache import ContentCache
    from jsrun.core.fetch import Fetcher
    from jsrun.core.trust import TrustPolicy

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = frozenset({"http", "https"})
_GLOB_CHARS = re.compile(r"[*?\[]")
_SOURCE_SUFFIXES = (".java", ".jsh")
_GIST_HOST = "gist.github.com"
_GIST_API = "https://api.github.com/gists/"


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """A reference string together with the local file it resolved to.

    Attributes:
        original: The reference as written (path, URL, URL with fragment).
        file: Readable local file holding the content.
        is_url: Whether the content came from a remote URL.
        cache_location: Cache entry directory the bytes were materialized to.
        bundle: For members of a multi-file remote bundle, the bundle URL.
    """

    original: str
    file: Path
    is_url: bool = False
    cache_location: Path | None = None
    bundle: str | None = None

    @property
    def identity(self) -> Path:
        """Concrete file identity used for de-duplication."""
        return self.file.resolve()

    @property
    def name(self) -> str:
        return self.file.name


def is_remote(reference: str) -> bool:
    return urlsplit(reference).scheme.lower() in _REMOTE_SCHEMES


def is_glob(reference: str) -> bool:
    return _GLOB_CHARS.search(reference) is not None


def fragment_for(filename: str) -> str:
    """Fragment GitHub uses to anchor a gist file (``Two.java`` -> ``file-two-java``)."""
    return "file-" + re.sub(r"[^a-z0-9]", "-", filename.lower())


def swizzle_url(url: str) -> str:
    """Rewrite web "blob" pages to their raw-content URLs."""
    m = re.match(r"^https://github\.com/([^/]+)/([^/]+)/blob/(.+)$", url)
    if m:
        return f"https://raw.githubusercontent.com/{m.group(1)}/{m.group(2)}/{m.group(3)}"
    m = re.match(r"^(https://gitlab\.com/.+)/-/blob/(.+)$", url)
    if m:
        return f"{m.group(1)}/-/raw/{m.group(2)}"
    return url


def _file_name_from_url(url: str) -> str:
    name = Path(urlsplit(url).path).name
    return name or "index"


# ---------------------------------------------------------------------------
# Remote bundles (GitHub gists)
# ---------------------------------------------------------------------------


class BundleFile(BaseModel):
    filename: str
    content: str | None = None
    raw_url: str | None = None
    truncated: bool = False


class Bundle(BaseModel):
    """A multi-file remote bundle; only its member list matters here."""

    url: str
    files: dict[str, BundleFile] = Field(default_factory=dict)

    def member(self, fragment: str | None) -> BundleFile:
        """Select a member by URL fragment, or the first source file without one."""
        members = list(self.files.values())
        if not members:
            raise ResourceNotFound(self.url)
        if not fragment:
            return next((f for f in members if f.filename.endswith(_SOURCE_SUFFIXES)), members[0])
        for f in members:
            if fragment_for(f.filename) == fragment.lower():
                return f
        raise ResourceNotFound(f"{self.url}#{fragment}")


class _GistPayload(BaseModel):
    files: dict[str, BundleFile] = Field(default_factory=dict)


def _gist_api_url(url: str) -> str:
    segments = [s for s in urlsplit(url).path.split("/") if s]
    if not segments:
        raise ResourceNotFound(url)
    gist_id = segments[1] if len(segments) > 1 else segments[0]
    return _GIST_API + gist_id.removesuffix(".js")


def is_bundle_url(url: str) -> bool:
    return urlsplit(url).hostname == _GIST_HOST


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ResourceResolver:
    """Turns reference strings into :class:`ResourceRef` objects.

    One resolver instance represents one resolution pass: the same reference
    always yields the same ``ResourceRef``, and a URL's bytes are read or
    fetched at most once.

    Args:
        trust: Trust policy consulted before any network access.
        cache: Persistent content cache keyed by URL.
        fetcher: Network collaborator.
        fresh: Ignore persisted cache entries (once per URL per pass).
        offline: Never touch the network; uncached URLs fail.
        cwd: Directory top-level relative references are resolved against.
    """

    def __init__(
        self,
        *,
        trust: TrustPolicy,
        cache: ContentCache,
        fetcher: Fetcher,
        fresh: bool = False,
        offline: bool = False,
        cwd: Path | None = None,
    ) -> None:
        self._trust = trust
        self._cache = cache
        self._fetcher = fetcher
        self._fresh = fresh
        self._offline = offline
        self._cwd = cwd
        self._resolved: dict[str, ResourceRef] = {}
        self._payloads: dict[str, bytes] = {}
        self._bundles: dict[str, Bundle] = {}

    # -- public API ---------------------------------------------------------

    def resolve(self, reference: str, *, base: ResourceRef | None = None) -> ResourceRef:
        """Resolve one reference, relative to *base* when it is relative."""
        key = self._absolute(reference, base)
        ref = self._resolved.get(key)
        if ref is None:
            if is_remote(key):
                ref = self._resolve_url(key)
            else:
                ref = self._resolve_local(reference, Path(key))
            self._resolved[key] = ref
        return ref

    def resolve_includes(
        self, reference: str, *, base: ResourceRef | None = None
    ) -> list[ResourceRef]:
        """Like :meth:`resolve`, but expands local glob patterns (sorted)."""
        local = not is_remote(reference) and (base is None or not base.is_url)
        if not (local and is_glob(reference)):
            return [self.resolve(reference, base=base)]

        root = base.file.parent if base is not None else self._base_dir()
        pattern = reference if os.path.isabs(reference) else str(root / reference)
        matches = sorted(p for p in glob.glob(pattern, recursive=True) if os.path.isfile(p))
        if not matches:
            raise ResourceNotFound(reference)
        return [self.resolve(m) for m in matches]

    # -- helpers ------------------------------------------------------------

    def _base_dir(self) -> Path:
        return self._cwd if self._cwd is not None else Path.cwd()

    def _absolute(self, reference: str, base: ResourceRef | None) -> str:
        if is_remote(reference):
            return reference
        if reference.startswith("file:"):
            rest = reference.removeprefix("file:")
            return os.path.normpath(rest[2:] if rest.startswith("//") else rest)
        if base is not None and base.bundle is not None:
            return self._sibling_member(reference, base.bundle)
        if base is not None and base.is_url:
            return urljoin(base.original, reference)

        path = Path(reference).expanduser()
        if not path.is_absolute():
            root = base.file.parent if base is not None else self._base_dir()
            path = root / path
        return os.path.normpath(path)

    def _sibling_member(self, reference: str, bundle_url: str) -> str:
        """URL of the bundle member a relative include names.

        Bundles are flat, so only the last path segment counts.
        """
        fragment = fragment_for(reference.rsplit("/", 1)[-1])
        bundle = self._bundle(bundle_url)
        if not any(fragment_for(f.filename) == fragment for f in bundle.files.values()):
            raise ResourceNotFound(reference)
        return f"{bundle_url}#{fragment}"

    def _resolve_local(self, reference: str, path: Path) -> ResourceRef:
        if not path.is_file():
            raise ResourceNotFound(reference)
        logger.debug("Resolved %s -> %s", reference, path)
        return ResourceRef(original=reference, file=path)

    def _resolve_url(self, url: str) -> ResourceRef:
        if not self._trust.is_trusted(url):
            raise UntrustedSource(url)

        base_url, fragment = urldefrag(url)
        if is_bundle_url(base_url):
            return self._resolve_bundle_member(url, base_url, fragment)

        fetch_url = swizzle_url(base_url)
        data = self._payload(fetch_url)
        name = _file_name_from_url(fetch_url)
        path = self._cache.materialize(fetch_url, name, data)
        logger.debug("Resolved %s -> %s", url, path)
        return ResourceRef(
            original=url,
            file=path,
            is_url=True,
            cache_location=self._cache.entry_dir(fetch_url),
        )

    def _resolve_bundle_member(self, url: str, bundle_url: str, fragment: str) -> ResourceRef:
        bundle = self._bundle(bundle_url)
        member = bundle.member(fragment)
        content = member.content
        if content is None or member.truncated:
            if not member.raw_url:
                raise FetchFailure(url, f"no content for bundle member {member.filename}")
            content = self._payload(member.raw_url).decode("utf-8")
        path = self._cache.materialize(bundle_url, member.filename, content.encode("utf-8"))
        logger.debug("Resolved bundle member %s -> %s", url, path)
        return ResourceRef(
            original=url,
            file=path,
            is_url=True,
            cache_location=self._cache.entry_dir(bundle_url),
            bundle=bundle_url,
        )

    def _bundle(self, bundle_url: str) -> Bundle:
        bundle = self._bundles.get(bundle_url)
        if bundle is None:
            api_url = _gist_api_url(bundle_url)
            data = self._payload(api_url)
            try:
                payload = _GistPayload.model_validate_json(data)
            except ValidationError as e:
                raise FetchFailure(api_url, f"unexpected bundle format: {e}") from e
            bundle = Bundle(url=bundle_url, files=payload.files)
            logger.debug("Loaded bundle %s (%d files)", bundle_url, len(bundle.files))
            self._bundles[bundle_url] = bundle
        return bundle

    def _payload(self, url: str) -> bytes:
        """Bytes for *url*: in-memory, then persisted cache, then network."""
        data = self._payloads.get(url)
        if data is not None:
            return data
        if not self._fresh:
            data = self._cache.get(url)
        if data is None:
            if self._offline:
                raise FetchFailure(url, "not cached and offline mode is enabled")
            data = self._fetcher.fetch(url)
            self._cache.put(url, data)
        self._payloads[url] = data
        return data
