"""Maven repositories, coordinates and classpath resolution."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, Field

from jsrun.build.errors import ClasspathResolutionFailure

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_LOCAL_MAVEN = "~/.m2/repository"

REPOSITORY_ALIASES: dict[str, str] = {
    "central": "https://repo1.maven.org/maven2/",
    "mavencentral": "https://repo1.maven.org/maven2/",
    "jcenter": "https://jcenter.bintray.com/",
    "google": "https://maven.google.com/",
    "jitpack": "https://jitpack.io/",
    "mavenlocal": f"file://{_LOCAL_MAVEN}",
    "localmaven": f"file://{_LOCAL_MAVEN}",
}

_COORDINATE = re.compile(
    r"^(?P<group>[^:@\s]+):(?P<artifact>[^:@\s]+)"
    r"(?::(?P<version>[^:@\s]*))?(?::(?P<classifier>[^:@\s]*))?(?:@(?P<type>\S+))?$"
)


@dataclass(frozen=True, slots=True)
class MavenRepo:
    id: str
    url: str

    @property
    def is_local(self) -> bool:
        return self.url.startswith("file:")

    def local_path(self) -> Path:
        """Filesystem root of a ``file:`` repository."""
        if not self.is_local:
            raise ValueError(f"Not a local repository: {self.url}")
        rest = self.url.removeprefix("file:")
        if rest.startswith("//"):
            rest = rest[2:]
        return Path(rest).expanduser()


def _looks_like_url(token: str) -> bool:
    return "://" in token or token.startswith("file:")


def parse_repository(token: str) -> MavenRepo:
    """Parse ``name=url``, a bare URL (its own id) or a known alias.

    Raises:
        ValueError: Unknown alias or empty parts.
    """
    name, sep, url = token.partition("=")
    if sep:
        if not name or not url:
            raise ValueError(f"invalid repository {token!r}")
        return MavenRepo(id=name, url=REPOSITORY_ALIASES.get(url.lower(), url))
    if _looks_like_url(token):
        return MavenRepo(id=token, url=token)
    alias = REPOSITORY_ALIASES.get(token.lower())
    if alias is None:
        raise ValueError(f"unknown repository alias {token!r}")
    return MavenRepo(id=token, url=alias)


@dataclass(frozen=True, slots=True)
class Coordinate:
    """``group:artifact[:version[:classifier]][@type]``."""

    group: str
    artifact: str
    version: str | None = None
    classifier: str | None = None
    type: str = "jar"

    @classmethod
    def parse(cls, text: str) -> Coordinate:
        m = _COORDINATE.match(text.strip())
        if m is None:
            raise ValueError(f"Not a valid dependency coordinate: {text!r}")
        return cls(
            group=m.group("group"),
            artifact=m.group("artifact"),
            version=m.group("version") or None,
            classifier=m.group("classifier") or None,
            type=m.group("type") or "jar",
        )

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact}-{self.version}{suffix}.{self.type}"

    def repository_path(self) -> Path:
        """Relative location in a Maven 2 layout repository."""
        return Path(*self.group.split("."), self.artifact, self.version or "", self.file_name)

    def __str__(self) -> str:
        text = f"{self.group}:{self.artifact}"
        if self.version:
            text += f":{self.version}"
        if self.classifier:
            text += f":{self.classifier}"
        if self.type != "jar":
            text += f"@{self.type}"
        return text


def looks_like_gav(text: str) -> bool:
    return _COORDINATE.match(text.strip()) is not None


class ArtifactInfo(BaseModel):
    coordinate: str
    file: Path


class ClassPath(BaseModel):
    """Resolved artifacts in classpath order."""

    artifacts: list[ArtifactInfo] = Field(default_factory=list)

    @property
    def files(self) -> list[Path]:
        return [a.file for a in self.artifacts]

    @property
    def class_path(self) -> str:
        return os.pathsep.join(str(f) for f in self.files)

    def __len__(self) -> int:
        return len(self.artifacts)


class DependencyResolver(Protocol):
    def resolve(
        self, repositories: Sequence[MavenRepo], coordinates: Sequence[str]
    ) -> ClassPath: ...


class LocalRepositoryResolver:
    """Resolve coordinates against ``file:`` repositories and the local Maven repository.

    Remote repositories are skipped: downloading artifacts is left to
    whatever populated the local repository.
    """

    def __init__(self, local_repository: Path | None = None) -> None:
        self._local_repository = local_repository or Path(_LOCAL_MAVEN).expanduser()

    def _roots(self, repositories: Sequence[MavenRepo]) -> list[Path]:
        roots = [self._local_repository]
        for repo in repositories:
            if repo.is_local:
                root = repo.local_path()
                if root not in roots:
                    roots.append(root)
        return roots

    def resolve(self, repositories: Sequence[MavenRepo], coordinates: Sequence[str]) -> ClassPath:
        roots = self._roots(repositories)
        artifacts: list[ArtifactInfo] = []
        missing: list[str] = []
        for text in coordinates:
            try:
                coord = Coordinate.parse(text)
            except ValueError as e:
                raise ClasspathResolutionFailure([text], str(e)) from e
            if coord.version is None:
                raise ClasspathResolutionFailure([text], f"No version given for {text}")
            candidates = (root / coord.repository_path() for root in roots)
            found = next((p for p in candidates if p.is_file()), None)
            if found is None:
                missing.append(text)
                continue
            logger.debug("Resolved %s -> %s", text, found)
            artifacts.append(ArtifactInfo(coordinate=str(coord), file=found))

        if missing:
            searched = ", ".join(str(r) for r in roots)
            raise ClasspathResolutionFailure(
                missing, f"Could not resolve {', '.join(missing)} (searched {searched})"
            )
        return ClassPath(artifacts=artifacts)
