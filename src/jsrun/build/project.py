"""Project: everything needed to turn sources into something runnable."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, Field

from jsrun.build.dependencies import ClassPath, LocalRepositoryResolver
from jsrun.build.errors import ArtifactNotFound, NoBuilderError
from jsrun.build.strategy import CmdGenerator
from jsrun.source.source import SourceType, main_ref_for_text
from jsrun.source.sourceset import SourceSet, discover

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from jsrun.build.context import RunContext
    from jsrun.build.dependencies import DependencyResolver, MavenRepo
    from jsrun.source.properties import Substitutor
    from jsrun.source.resource import ResourceRef, ResourceResolver
    from jsrun.source.source import Source

logger = logging.getLogger(__name__)

ATTR_PREMAIN_CLASS = "Premain-Class"
ATTR_AGENT_CLASS = "Agent-Class"

DEFAULT_JAR_CACHE = Path("~/.jsrun/cache/jars")

_MANIFEST = "META-INF/MANIFEST.MF"


def is_jar(path: Path) -> bool:
    return path.suffix == ".jar"


def _parse_manifest(text: str) -> dict[str, str]:
    # Continuation lines start with a single space.
    attrs: dict[str, str] = {}
    key: str | None = None
    for line in text.splitlines():
        if line.startswith(" ") and key is not None:
            attrs[key] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if sep:
            key = name.strip()
            attrs[key] = value.strip()
    return attrs


class Jar(BaseModel):
    """Handle to a built (or pre-built) jar file."""

    path: Path
    manifest: dict[str, str] = Field(default_factory=dict)

    @property
    def main_class(self) -> str | None:
        return self.manifest.get("Main-Class")

    @classmethod
    def load(cls, path: Path) -> Jar:
        with zipfile.ZipFile(path) as zf:
            try:
                text = zf.read(_MANIFEST).decode("utf-8")
            except KeyError:
                text = ""
        return cls(path=path, manifest=_parse_manifest(text))


class Builder(Protocol):
    def build(self, project: Project) -> Jar: ...


class _ExistingJarBuilder:
    """Builder for projects wrapping a pre-built jar: nothing to compile."""

    def build(self, project: Project) -> Jar:
        jar = project.as_jar()
        if jar is None:
            raise ArtifactNotFound(project.jar_file)
        return jar


class Project:
    """The resolved build surface handed to builders and command generators.

    A project is either created from a main :class:`Source` (see
    :meth:`from_source`), or wraps a pre-built ``.jar`` reference, in which
    case there is no main source, the source set is empty and the project can
    run but not be rebuilt.

    The classpath and the jar location are computed lazily. Both are keyed
    by content (repositories + dependencies, and the source set's stable id),
    so they are recomputed whenever their inputs change.
    """

    def __init__(
        self,
        resource_ref: ResourceRef,
        *,
        main_source: Source | None = None,
        source_set: SourceSet | None = None,
        dependency_resolver: DependencyResolver | None = None,
        builder: Builder | None = None,
        jar_cache_dir: Path | None = None,
    ) -> None:
        self._resource_ref = resource_ref
        self._main_source = main_source
        self._source_set = source_set if source_set is not None else SourceSet()
        self._dependency_resolver = dependency_resolver
        self._builder = builder
        self._jar_cache_dir = (jar_cache_dir or DEFAULT_JAR_CACHE).expanduser()

        self._repositories: list[MavenRepo] = []
        self._runtime_options: list[str] = []
        self._properties: dict[str, str] = {}
        self._manifest_attributes: dict[str, str] = {}
        self.java_version: str | None = None
        self.description: str | None = None
        self.gav: str | None = None
        self.main_class: str | None = None
        self.native_image: bool = False

        self._prebuilt_jar: Path | None = resource_ref.file if is_jar(resource_ref.file) else None
        self._classpaths: dict[tuple[tuple[MavenRepo, ...], tuple[str, ...]], ClassPath] = {}
        self._jar_file: tuple[str, Path] | None = None
        self._jar: Jar | None = None

    @classmethod
    def from_source(
        cls,
        main: Source,
        *,
        resource_resolver: ResourceResolver | None = None,
        substitute: Substitutor | None = None,
        **kwargs: object,
    ) -> Project:
        """Discover the closure of *main* and copy its directive values.

        Raises:
            ValueError: *main* includes other sources but no resolver was given.
        """
        if resource_resolver is not None:
            source_set = discover(main, resource_resolver, substitute=substitute)
        elif main.includes:
            raise ValueError("A resource resolver is required to follow //SOURCES")
        else:
            source_set = SourceSet([main])

        ref = main.resource_ref
        if ref is None:
            ref = main_ref_for_text()
        prj = cls(ref, main_source=main, source_set=source_set, **kwargs)  # type: ignore[arg-type]
        prj.description = main.description
        prj.gav = main.gav
        prj.java_version = main.java_version or next(
            (s.java_version for s in source_set if s.java_version), None
        )
        prj.add_runtime_options(source_set.runtime_options)
        for source in source_set:
            prj.manifest_attributes.update(source.manifest)
        if main.agent_main_class:
            prj.set_agent_main_class(main.agent_main_class)
        if main.premain_class:
            prj.set_premain_class(main.premain_class)
        logger.info("Created project for %s (%d sources)", ref.original, len(source_set))
        return prj

    # -- identity / sources --------------------------------------------------

    @property
    def resource_ref(self) -> ResourceRef:
        return self._resource_ref

    @property
    def main_source(self) -> Source | None:
        return self._main_source

    @property
    def main_source_set(self) -> SourceSet:
        return self._source_set

    @main_source_set.setter
    def main_source_set(self, source_set: SourceSet) -> None:
        self._source_set = source_set

    @property
    def is_jshell(self) -> bool:
        return self._main_source is not None and self._main_source.source_type is SourceType.JSHELL

    @property
    def enable_cds(self) -> bool:
        return self._main_source is not None and self._main_source.enable_cds()

    # -- user inputs -----------------------------------------------------------

    @property
    def repositories(self) -> list[MavenRepo]:
        return list(self._repositories)

    def add_repository(self, repository: MavenRepo) -> Project:
        self._repositories.append(repository)
        return self

    def add_repositories(self, repositories: Iterable[MavenRepo]) -> Project:
        self._repositories.extend(repositories)
        return self

    @property
    def runtime_options(self) -> list[str]:
        return list(self._runtime_options)

    def add_runtime_option(self, option: str) -> Project:
        self._runtime_options.append(option)
        return self

    def add_runtime_options(self, options: Iterable[str]) -> Project:
        self._runtime_options.extend(options)
        return self

    @property
    def properties(self) -> dict[str, str]:
        return self._properties

    @properties.setter
    def properties(self, properties: Mapping[str, str]) -> None:
        self._properties = dict(properties)

    @property
    def manifest_attributes(self) -> dict[str, str]:
        return self._manifest_attributes

    def set_agent_main_class(self, class_name: str) -> None:
        self._manifest_attributes[ATTR_AGENT_CLASS] = class_name

    def set_premain_class(self, class_name: str) -> None:
        self._manifest_attributes[ATTR_PREMAIN_CLASS] = class_name

    # -- derived, cached values ------------------------------------------------

    def all_repositories(self) -> list[MavenRepo]:
        """Project repositories first, then those declared in sources."""
        return list(dict.fromkeys([*self._repositories, *self._source_set.repositories]))

    def resolve_classpath(self) -> ClassPath:
        """Resolve dependencies; at most once per (repositories, dependencies) pair."""
        if self._main_source is None:
            return ClassPath()

        repositories = tuple(self.all_repositories())
        dependencies = tuple(self._source_set.dependencies)
        key = (repositories, dependencies)
        cp = self._classpaths.get(key)
        if cp is None:
            if dependencies:
                resolver = self._dependency_resolver or LocalRepositoryResolver()
                cp = resolver.resolve(list(repositories), list(dependencies))
            else:
                cp = ClassPath()
            logger.debug("Resolved classpath with %d artifact(s)", len(cp))
            self._classpaths[key] = cp
        return cp

    @property
    def jar_file(self) -> Path | None:
        """Where the built jar lives: ``<main file name>.<stable id>.jar``.

        ``None`` for JShell scripts, which never produce a jar.
        """
        if self._prebuilt_jar is not None:
            return self._prebuilt_jar
        if self.is_jshell:
            return None
        stable_id = self._source_set.stable_id
        if self._jar_file is None or self._jar_file[0] != stable_id:
            name = f"{self._resource_ref.file.name}.{stable_id}.jar"
            self._jar_file = (stable_id, self._jar_cache_dir / name)
            self._jar = None
        return self._jar_file[1]

    def as_jar(self) -> Jar | None:
        """Load the jar handle if the jar exists."""
        path = self.jar_file
        if path is None:
            return None
        if self._jar is None or self._jar.path != path:
            self._jar = Jar.load(path) if path.exists() else None
        return self._jar

    # -- collaborators -----------------------------------------------------------

    def builder(self) -> Builder:
        """Builder turning this project into a runnable jar."""
        if self._main_source is None:
            return _ExistingJarBuilder()
        if self._builder is None:
            raise NoBuilderError(self._resource_ref.original)
        return self._builder

    def build(self) -> Jar:
        return self.builder().build(self)

    def cmd_generator(self, ctx: RunContext) -> CmdGenerator:
        return CmdGenerator(self, ctx)
