"""Transitive closure of a main source and its included sources."""

from __future__ import annotations

import logging
from collections import deque
from functools import cached_property
from typing import TYPE_CHECKING

from jsrun.core.cache import canonical_json, sha256_hex
from jsrun.source.source import Source

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from jsrun.build.dependencies import MavenRepo
    from jsrun.source.properties import Substitutor
    from jsrun.source.resource import ResourceRef, ResourceResolver

logger = logging.getLogger(__name__)


def _ordered_unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class SourceSet:
    """Ordered, de-duplicated sources: main first, then in discovery order.

    Instances are never mutated; aggregated values are computed on first
    access and cached.
    """

    def __init__(self, sources: Iterable[Source] = ()) -> None:
        self._sources = tuple(sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(self._sources)

    def __bool__(self) -> bool:
        return bool(self._sources)

    @property
    def sources(self) -> list[Source]:
        return list(self._sources)

    @property
    def resource_refs(self) -> list[ResourceRef]:
        return [s.resource_ref for s in self._sources if s.resource_ref is not None]

    @cached_property
    def dependencies(self) -> list[str]:
        """Union of every source's (substituted) dependencies, first occurrence order."""
        return _ordered_unique(d for s in self._sources for d in s.dependencies)

    @cached_property
    def repositories(self) -> list[MavenRepo]:
        return list(dict.fromkeys(r for s in self._sources for r in s.repositories))

    @cached_property
    def compile_options(self) -> list[str]:
        return [o for s in self._sources for o in s.compile_options]

    @cached_property
    def runtime_options(self) -> list[str]:
        return [o for s in self._sources for o in s.runtime_options]

    @cached_property
    def stable_id(self) -> str:
        """Content-derived cache key of the whole closure.

        Covers each source's file name and text, the dependency set (order
        independent), repositories and compile options.
        """
        digestable = {
            "sources": [
                {
                    "name": s.resource_ref.name if s.resource_ref is not None else None,
                    "digest": s.content_digest,
                }
                for s in self._sources
            ],
            "dependencies": sorted(set(self.dependencies)),
            "repositories": [r.url for r in self.repositories],
            "compile_options": self.compile_options,
        }
        return sha256_hex(canonical_json(digestable))


def discover(
    main: Source,
    resolver: ResourceResolver,
    *,
    substitute: Substitutor | None = None,
) -> SourceSet:
    """Walk inclusion lists breadth-first and return the closure of *main*.

    Sources are keyed by resolved file identity, so different spellings of
    the same file and cyclic inclusions are visited once. Any resolution
    error aborts the walk; nothing partial is returned.
    """
    visited: set[Path] = set()
    if main.resource_ref is not None:
        visited.add(main.resource_ref.identity)

    ordered: list[Source] = []
    worklist: deque[Source] = deque([main])
    while worklist:
        source = worklist.popleft()
        ordered.append(source)
        for include in source.includes:
            for ref in resolver.resolve_includes(include, base=source.resource_ref):
                identity = ref.identity
                if identity in visited:
                    logger.debug("Skipping already included %s", ref.original)
                    continue
                visited.add(identity)
                logger.debug("Including %s from %s", ref.original, source.origin)
                worklist.append(Source.from_resource(ref, substitute=substitute))

    logger.debug("Discovered %d source(s) from %s", len(ordered), main.origin)
    return SourceSet(ordered)
