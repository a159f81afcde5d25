"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer


def _err(msg: str, *, fg: str | None) -> None:
    """Print a styled message to stderr."""
    typer.echo(typer.style(msg, fg=fg), err=True)


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.
    """
    from jsrun.build.errors import ClasspathResolutionFailure
    from jsrun.config.loader import ConfigError
    from jsrun.source.errors import (
        FetchFailure,
        MalformedDirective,
        MissingProperty,
        UnreadableSource,
        UntrustedSource,
    )

    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}", fg=fg)
    elif isinstance(exc, UntrustedSource):
        _err(f"Untrusted source: {exc.url}", fg=fg)
        _err(f"  Run `jsrun trust add {exc.url}` to trust it.", fg=fg)
    elif isinstance(exc, FetchFailure):
        _err(f"Download failed: {exc}", fg=fg)
    elif isinstance(exc, MalformedDirective):
        _err(f"Invalid directive: {exc}", fg=fg)
    elif isinstance(exc, UnreadableSource):
        _err(f"Unreadable source: {exc.reference} is not UTF-8 text", fg=fg)
    elif isinstance(exc, MissingProperty):
        _err(f"Missing property: {exc.name} (pass it with -D{exc.name}=<value>)", fg=fg)
    elif isinstance(exc, ClasspathResolutionFailure):
        _err(f"Dependency resolution failed: {exc.message}", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
