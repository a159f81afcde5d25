"""CLI application for jsrun."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from jsrun import __version__

if TYPE_CHECKING:
    from jsrun.build.context import RunContext
    from jsrun.config.schema import Config

app = typer.Typer(
    name="jsrun",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"jsrun {__version__}")
        raise typer.Exit


_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _configure_logging(verbose: int) -> None:
    """Set up stdlib logging based on ``-v`` flags or the ``JSRUN_LOG`` env var.

    Only the ``jsrun`` logger is raised to the requested level; the root
    logger stays at WARNING so library chatter (urllib3, requests) is hidden.
    """
    env_level = os.environ.get("JSRUN_LOG", "").upper()
    if env_level:
        if env_level not in _VALID_LEVELS:
            print(
                f"WARNING: invalid JSRUN_LOG level '{env_level}', "
                f"expected one of {', '.join(sorted(_VALID_LEVELS))}; defaulting to INFO",
                file=sys.stderr,
            )
        level = getattr(logging, env_level, logging.INFO)
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose >= 1:
        level = logging.INFO
    else:
        return
    logging.basicConfig(
        level=logging.WARNING,
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("jsrun").setLevel(level)


def parse_properties(values: list[str] | None) -> dict[str, str]:
    """``name=value`` pairs; a bare ``name`` means ``true``."""
    properties: dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        properties[name] = value if sep else "true"
    return properties


@dataclass
class GlobalOptions:
    """Options given before the sub-command, shared by every command."""

    config: Path | None = None
    properties: dict[str, str] = field(default_factory=dict)
    repositories: list[str] = field(default_factory=list)
    fresh: bool = False
    offline: bool = False

    def load_config(self) -> Config:
        """Load the configuration file with ``--fresh`` / ``--offline`` applied."""
        from jsrun.config import load

        cfg = load(self.config)
        overrides = {k: True for k, v in (("fresh", self.fresh), ("offline", self.offline)) if v}
        if overrides:
            cfg = cfg.model_copy(update={"settings": cfg.settings.model_copy(update=overrides)})
        return cfg

    def run_context(self, **kwargs: Any) -> RunContext:
        from jsrun.build.context import RunContext

        return RunContext(properties=self.properties, repositories=self.repositories, **kwargs)


def global_options(ctx: typer.Context) -> GlobalOptions:
    """The :class:`GlobalOptions` stored by :func:`main`, or defaults."""
    obj = ctx.find_object(GlobalOptions)
    return obj if obj is not None else GlobalOptions()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log verbosity (-v info, -vv debug).",
    ),
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to the configuration file."),
    ] = None,
    prop: Annotated[
        list[str] | None,
        typer.Option("--property", "-D", help="Placeholder value, as name=value. Repeatable."),
    ] = None,
    repos: Annotated[
        list[str] | None,
        typer.Option("--repos", help="Extra repository: name=url, URL or alias. Repeatable."),
    ] = None,
    fresh: Annotated[
        bool,
        typer.Option("--fresh", help="Re-download remote sources, ignoring the cache."),
    ] = False,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Only use cached remote sources."),
    ] = False,
) -> None:
    """Resolve Java source scripts, their included sources and dependencies.

    Global options go before the command: ``jsrun -D v=2 --offline info x.java``.
    """
    _ = version
    _configure_logging(verbose)
    ctx.obj = GlobalOptions(
        config=config,
        properties=parse_properties(prop),
        repositories=repos or [],
        fresh=fresh,
        offline=offline,
    )


# Register commands after app is created to avoid circular imports.
from jsrun.cli import commands as _commands  # noqa: E402, F401
