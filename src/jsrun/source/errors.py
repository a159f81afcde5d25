"""Source resolution error types."""

from __future__ import annotations


class ResolutionError(Exception):
    """Base exception for source resolution errors."""


class UntrustedSource(ResolutionError):
    """Raised when a remote reference is not in the trust store."""

    def __init__(self, url: str) -> None:
        super().__init__(
            f"URL is not trusted: {url} (add it with `jsrun trust add {url}` and try again)"
        )
        self.url = url


class FetchFailure(ResolutionError):
    """Raised when a remote resource could not be downloaded.

    Recoverable: the caller may retry the whole invocation.
    """

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Could not fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class MalformedDirective(ResolutionError):
    """Raised when a directive value violates its grammar."""

    def __init__(
        self, tag: str, line: int | None, message: str, *, origin: str | None = None
    ) -> None:
        if line is None:
            where = origin or "unknown location"
        else:
            where = f"{origin}:{line}" if origin else f"line {line}"
        super().__init__(f"Malformed //{tag} directive at {where}: {message}")
        self.tag = tag
        self.line = line
        self.origin = origin


class MissingProperty(ResolutionError):
    """Raised when a ``${name}`` placeholder has no value and no default."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No value for property '{name}' and no default given")
        self.name = name


class ResourceNotFound(ResolutionError):
    """Raised when a reference does not point to any readable resource."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"Could not find resource: {reference}")
        self.reference = reference


class UnreadableSource(ResolutionError):
    """Raised when a resolved source file is not valid UTF-8 text."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(f"Could not read source {reference}: {reason}")
        self.reference = reference
        self.reason = reason
