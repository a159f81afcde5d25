"""Build-side error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class BuildError(Exception):
    """Base exception for classpath and artifact errors."""


class ClasspathResolutionFailure(BuildError):
    """Raised when the dependency resolver cannot satisfy coordinates.

    The resolver's message is carried verbatim.
    """

    def __init__(self, coordinates: Sequence[str], message: str) -> None:
        super().__init__(message)
        self.coordinates = list(coordinates)
        self.message = message


class NoBuilderError(BuildError):
    """Raised when a source project has no builder to compile it."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"No builder configured to build {reference}")
        self.reference = reference


class ArtifactNotFound(BuildError):
    """Raised when a pre-built artifact is expected but missing."""

    def __init__(self, path: Path | None) -> None:
        super().__init__(f"Artifact not found: {path}")
        self.path = path
