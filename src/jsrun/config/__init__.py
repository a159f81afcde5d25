"""Configuration loading and the convenience resolution API."""

from __future__ import annotations

import logging
import shutil
from typing import TYPE_CHECKING

from jsrun.build.context import RunContext
from jsrun.build.dependencies import parse_repository
from jsrun.build.project import Project, is_jar
from jsrun.config.loader import ConfigError, load_config, load_config_or_default
from jsrun.config.schema import Config, Settings
from jsrun.core.cache import ContentCache
from jsrun.core.fetch import HttpFetcher
from jsrun.core.trust import TrustStore
from jsrun.source.properties import substitutor
from jsrun.source.resource import ResourceResolver
from jsrun.source.source import Source

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from jsrun.build.dependencies import DependencyResolver, MavenRepo
    from jsrun.build.project import Builder
    from jsrun.core.fetch import Fetcher
    from jsrun.core.trust import TrustPolicy

__all__ = [
    "Config",
    "ConfigError",
    "RunContext",
    "Settings",
    "clear_cache",
    "for_resource",
    "load",
    "load_config",
    "resource_resolver",
    "trust",
    "trusted",
    "untrust",
]

logger = logging.getLogger(__name__)


def load(path: Path | str | None = None) -> Config:
    """Load a configuration file, or the defaults when none exists."""
    return load_config_or_default(path)


def resource_resolver(
    config: Config,
    *,
    fetcher: Fetcher | None = None,
    trust_policy: TrustPolicy | None = None,
    cwd: Path | None = None,
) -> ResourceResolver:
    """Build a resolver wired to the configured cache, trust store and network."""
    settings = config.settings
    return ResourceResolver(
        trust=trust_policy or TrustStore(settings.trust_file),
        cache=ContentCache(settings.urls_dir),
        fetcher=fetcher
        or HttpFetcher(timeout=settings.connect_timeout, github_token=settings.github_token),
        fresh=settings.fresh,
        offline=settings.offline,
        cwd=cwd,
    )


def _repositories(tokens: Iterable[str]) -> list[MavenRepo]:
    repos: list[MavenRepo] = []
    for token in tokens:
        try:
            repos.append(parse_repository(token))
        except ValueError as exc:
            raise ConfigError(f"Invalid repository: {exc}") from exc
    return repos


def for_resource(
    reference: str,
    ctx: RunContext | None = None,
    config: Config | None = None,
    *,
    resolver: ResourceResolver | None = None,
    dependency_resolver: DependencyResolver | None = None,
    builder: Builder | None = None,
) -> Project:
    """Resolve *reference* (path, URL or jar) into a :class:`Project`.

    Follows every ``//SOURCES`` inclusion. Properties from the run context
    override those from the configuration file; both override the
    environment.
    """
    config = config or load()
    ctx = ctx or RunContext()
    resolver = resolver or resource_resolver(config)

    properties = {**config.properties, **ctx.properties}
    substitute = substitutor(properties, environment=True)

    ref = resolver.resolve(reference)
    jars_dir = config.settings.jars_dir
    if is_jar(ref.file):
        prj = Project(ref, dependency_resolver=dependency_resolver, jar_cache_dir=jars_dir)
    else:
        main = Source.from_resource(ref, substitute=substitute)
        prj = Project.from_source(
            main,
            resource_resolver=resolver,
            substitute=substitute,
            dependency_resolver=dependency_resolver,
            builder=builder,
            jar_cache_dir=jars_dir,
        )

    prj.properties = properties
    prj.add_repositories(_repositories([*config.repositories, *ctx.repositories]))
    prj.add_runtime_options(config.runtime_options)
    if ctx.main_class:
        prj.main_class = ctx.main_class
    prj.native_image = ctx.native_image
    return prj


def trust(url: str, config: Config | None = None) -> bool:
    """Add *url* to the trust store. Returns False if it was already trusted."""
    config = config or load()
    return TrustStore(config.settings.trust_file).add(url)


def untrust(urls: Iterable[str], config: Config | None = None) -> list[str]:
    """Remove URLs from the trust store; returns those that were present."""
    config = config or load()
    return TrustStore(config.settings.trust_file).remove(urls)


def trusted(config: Config | None = None) -> list[str]:
    config = config or load()
    return TrustStore(config.settings.trust_file).urls


def clear_cache(config: Config | None = None) -> None:
    """Delete downloaded sources and built jars."""
    config = config or load()
    ContentCache(config.settings.urls_dir).clear()
    jars = config.settings.jars_dir
    if jars.exists():
        shutil.rmtree(jars)
    logger.info("Cleared caches under %s", config.settings.cache_root)
