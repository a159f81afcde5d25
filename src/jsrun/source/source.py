"""A single parsed source file."""

from __future__ import annotations

import logging
import re
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jsrun.build.dependencies import MavenRepo, parse_repository
from jsrun.core.cache import sha256_hex
from jsrun.source.directives import GAV, JAVA, REPOS, Directives, check_scalar, parse_directives
from jsrun.source.errors import MalformedDirective, UnreadableSource
from jsrun.source.resource import ResourceRef

if TYPE_CHECKING:
    from jsrun.build.project import Project
    from jsrun.source.properties import Substitutor

logger = logging.getLogger(__name__)

_PACKAGE = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
_TYPE_DECL = re.compile(
    r"^\s*(?:public\s+)?(?:(?:final|abstract|sealed|static)\s+)*"
    r"(?:class|interface|enum|record)\s+(\w+)",
    re.MULTILINE,
)
_AGENTMAIN = re.compile(r"\bstatic\s+void\s+agentmain\s*\(")
_PREMAIN = re.compile(r"\bstatic\s+void\s+premain\s*\(")


class SourceType(str, Enum):
    JAVA = "java"
    JSHELL = "jshell"

    @classmethod
    def for_file(cls, name: str) -> SourceType:
        return cls.JSHELL if name.endswith(".jsh") else cls.JAVA


class Source:
    """One source file: its reference, raw text and directive values.

    Directive values are parsed once at construction. Values that may carry
    ``${name}`` placeholders are substituted on access with the *substitute*
    function, so a missing property is reported when the value is used, not
    when the file is read. Without a function placeholders pass through.
    """

    def __init__(
        self,
        contents: str,
        resource_ref: ResourceRef | None = None,
        *,
        substitute: Substitutor | None = None,
    ) -> None:
        self._contents = contents
        self._resource_ref = resource_ref
        self._substitute = substitute
        self._directives = parse_directives(contents, origin=self.origin)

    @classmethod
    def from_resource(cls, ref: ResourceRef, *, substitute: Substitutor | None = None) -> Source:
        try:
            contents = ref.file.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise UnreadableSource(ref.original, str(e)) from e
        return cls(contents, ref, substitute=substitute)

    def __repr__(self) -> str:
        return f"Source({self.origin or '<text>'})"

    @property
    def resource_ref(self) -> ResourceRef | None:
        return self._resource_ref

    @property
    def origin(self) -> str | None:
        return self._resource_ref.original if self._resource_ref is not None else None

    @property
    def contents(self) -> str:
        return self._contents

    @property
    def directives(self) -> Directives:
        return self._directives

    @property
    def source_type(self) -> SourceType:
        if self._resource_ref is None:
            return SourceType.JAVA
        return SourceType.for_file(self._resource_ref.file.name)

    @cached_property
    def content_digest(self) -> str:
        return sha256_hex(self._contents)

    def _sub(self, value: str) -> str:
        return self._substitute(value) if self._substitute is not None else value

    def _sub_all(self, values: tuple[str, ...]) -> list[str]:
        return [self._sub(v) for v in values]

    # -- directive values -----------------------------------------------------

    @property
    def dependencies(self) -> list[str]:
        return self._sub_all(self._directives.dependencies)

    @property
    def repositories(self) -> list[MavenRepo]:
        repos: list[MavenRepo] = []
        for token in self._sub_all(self._directives.repositories):
            try:
                repos.append(parse_repository(token))
            except ValueError as e:
                raise MalformedDirective(REPOS, None, str(e), origin=self.origin) from e
        return repos

    @property
    def compile_options(self) -> list[str]:
        return self._sub_all(self._directives.compile_options)

    @property
    def runtime_options(self) -> list[str]:
        return self._sub_all(self._directives.runtime_options)

    @property
    def includes(self) -> list[str]:
        """Included-source references as written (after substitution)."""
        return self._sub_all(self._directives.sources)

    def _scalar(self, tag: str, value: str | None) -> str | None:
        if value is None:
            return None
        return check_scalar(tag, self._sub(value), origin=self.origin)

    @property
    def java_version(self) -> str | None:
        return self._scalar(JAVA, self._directives.java_version)

    @property
    def gav(self) -> str | None:
        return self._scalar(GAV, self._directives.gav)

    @property
    def description(self) -> str | None:
        return self._directives.description

    @property
    def manifest(self) -> dict[str, str]:
        return {k: self._sub(v) for k, v in self._directives.manifest.items()}

    def enable_cds(self) -> bool:
        return self._directives.cds

    # -- code inspection -------------------------------------------------------

    @cached_property
    def class_name(self) -> str | None:
        """Fully qualified name of the first declared type, if any."""
        if self.source_type is SourceType.JSHELL:
            return None
        decl = _TYPE_DECL.search(self._contents)
        if decl is None:
            return None
        package = _PACKAGE.search(self._contents)
        return f"{package.group(1)}.{decl.group(1)}" if package else decl.group(1)

    @property
    def agent_main_class(self) -> str | None:
        return self.class_name if _AGENTMAIN.search(self._contents) else None

    @property
    def premain_class(self) -> str | None:
        return self.class_name if _PREMAIN.search(self._contents) else None

    def create_project(self, **kwargs: Any) -> Project:
        """Discover this source's closure and wrap it in a :class:`Project`."""
        from jsrun.build.project import Project

        return Project.from_source(self, **kwargs)


def main_ref_for_text(name: str = "main.java") -> ResourceRef:
    """Placeholder reference for sources that only exist as text."""
    return ResourceRef(original=name, file=Path(name))
