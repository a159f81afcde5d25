"""``${name}`` / ``${name:default}`` placeholder substitution."""

from __future__ import annotations

import os
import platform
import re
from collections.abc import Callable, Mapping
from typing import Protocol, TypeAlias

from jsrun.source.errors import MissingProperty

Substitutor: TypeAlias = Callable[[str], str]

_PLACEHOLDER = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class PropertySource(Protocol):
    def resolve(self, name: str) -> str | None: ...


class MappingPropertySource:
    """Properties backed by a plain mapping."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def resolve(self, name: str) -> str | None:
        return self._values.get(name)


class EnvironmentPropertySource:
    """Properties read from environment variables (``a.b`` also tries ``A_B``)."""

    def resolve(self, name: str) -> str | None:
        value = os.environ.get(name)
        if value is None:
            value = os.environ.get(re.sub(r"[^A-Za-z0-9]", "_", name).upper())
        return value


class ChainedPropertySource:
    """First source with a value wins."""

    def __init__(self, *sources: PropertySource) -> None:
        self._sources = sources

    def resolve(self, name: str) -> str | None:
        for source in self._sources:
            value = source.resolve(name)
            if value is not None:
                return value
        return None


_OS_NAMES = {"darwin": "osx", "linux": "linux", "windows": "windows"}
_ARCH_NAMES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "i386": "x86_32",
    "i686": "x86_32",
    "aarch64": "aarch_64",
    "arm64": "aarch_64",
}


def detected_os_properties() -> dict[str, str]:
    """The ``os.detected.*`` properties commonly used in platform classifiers."""
    name = _OS_NAMES.get(platform.system().lower(), platform.system().lower())
    machine = platform.machine().lower()
    arch = _ARCH_NAMES.get(machine, machine)
    return {
        "os.detected.name": name,
        "os.detected.arch": arch,
        "os.detected.classifier": f"{name}-{arch}",
    }


def replace_properties(text: str, source: PropertySource) -> str:
    """Replace every placeholder in *text*.

    Raises:
        MissingProperty: A placeholder has neither a value nor a default.
    """

    def _replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = source.resolve(name)
        if value is not None:
            return value
        if default is not None:
            return default
        raise MissingProperty(name)

    return _PLACEHOLDER.sub(_replace, text)


def has_placeholder(text: str) -> bool:
    return _PLACEHOLDER.search(text) is not None


def substitutor(
    properties: Mapping[str, str] | None = None, *, environment: bool = False
) -> Substitutor:
    """Build the substitution function handed to sources.

    Lookup order: explicit *properties*, then (optionally) the environment,
    then the detected OS properties.
    """
    sources: list[PropertySource] = [MappingPropertySource(properties)]
    if environment:
        sources.append(EnvironmentPropertySource())
    sources.append(MappingPropertySource(detected_os_properties()))
    chain = ChainedPropertySource(*sources)
    return lambda text: replace_properties(text, chain)
