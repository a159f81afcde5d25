"""CLI command implementations."""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Annotated

import typer

from jsrun.cli import app, global_options
from jsrun.cli.errors import handle_error
from jsrun.source.source import SourceType

if TYPE_CHECKING:
    from jsrun.build.context import RunContext
    from jsrun.build.project import Project
    from jsrun.config.schema import Config

trust_app = typer.Typer(name="trust", help="Manage trusted source URLs.", no_args_is_help=True)
cache_app = typer.Typer(name="cache", help="Manage the local caches.", no_args_is_help=True)
app.add_typer(trust_app)
app.add_typer(cache_app)

NoColor = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

Reference = Annotated[
    str,
    typer.Argument(help="Source file, URL or jar to resolve."),
]


def _use_color(no_color: bool) -> bool:
    """Determine whether to use color output."""
    return not (no_color or os.environ.get("NO_COLOR"))


def _resolve(reference: str, run_ctx: RunContext, cfg: Config, *, color: bool) -> Project:
    """Resolve *reference* behind a spinner on stderr."""
    from rich.console import Console

    from jsrun.config import for_resource

    console = Console(stderr=True, no_color=not color)
    with console.status(f"Resolving {reference}..."):
        return for_resource(reference, run_ctx, cfg)


@app.command()
def info(
    ctx: typer.Context,
    reference: Reference,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the project as JSON."),
    ] = False,
    no_color: NoColor = False,
) -> None:
    """Show the resolved project: sources, dependencies and options."""
    from jsrun.cli.formatting import format_project, project_summary

    color = _use_color(no_color)
    opts = global_options(ctx)
    try:
        prj = _resolve(reference, opts.run_context(), opts.load_config(), color=color)
        output = (
            json.dumps(project_summary(prj), indent=2)
            if as_json
            else format_project(prj, color=color)
        )
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(output)


@app.command(
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True},
)
def cmd(
    ctx: typer.Context,
    reference: Reference,
    arguments: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments passed to the program."),
    ] = None,
    interactive: Annotated[
        bool,
        typer.Option("--interactive", "-i", help="Open an interactive shell."),
    ] = False,
    force_type: Annotated[
        SourceType | None,
        typer.Option("--force-type", help="Treat the main source as this type."),
    ] = None,
    main_class: Annotated[
        str | None,
        typer.Option("--main", "-m", help="Main class to run."),
    ] = None,
    runtime_option: Annotated[
        list[str] | None,
        typer.Option("--runtime-option", "-R", help="Extra JVM option. Repeatable."),
    ] = None,
    no_color: NoColor = False,
) -> None:
    """Print the command line that would run REFERENCE.

    Options must come before REFERENCE; everything after it is passed to
    the program.
    """
    from jsrun.cli.formatting import format_command

    color = _use_color(no_color)
    opts = global_options(ctx)
    try:
        run_ctx = opts.run_context(
            force_type=force_type,
            interactive=interactive,
            main_class=main_class,
            arguments=arguments or [],
            runtime_options=runtime_option or [],
        )
        prj = _resolve(reference, run_ctx, opts.load_config(), color=color)
        line = format_command(prj.cmd_generator(run_ctx).generate())
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(line)




# ---------------------------------------------------------------------------
# trust
# ---------------------------------------------------------------------------


@trust_app.command("add")
def trust_add(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL or URL prefix to trust.")],
    no_color: NoColor = False,
) -> None:
    """Trust sources under URL."""
    from jsrun.cli.formatting import styler
    from jsrun.config import trust

    color = _use_color(no_color)
    try:
        added = trust(url, global_options(ctx).load_config())
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if added:
        typer.echo(styler(color)(f"Trusted {url}", fg="green"))
    else:
        typer.echo(f"Already trusted: {url}")


@trust_app.command("remove")
def trust_remove(
    ctx: typer.Context,
    urls: Annotated[list[str], typer.Argument(help="URLs to remove.")],
    no_color: NoColor = False,
) -> None:
    """Stop trusting the given URLs."""
    from jsrun.config import untrust
    from jsrun.core.trust import normalize_trust_url

    color = _use_color(no_color)
    try:
        removed = untrust(urls, global_options(ctx).load_config())
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    for url in urls:
        if normalize_trust_url(url) in removed:
            typer.echo(f"Removed {url}")
        else:
            typer.echo(f"Not trusted: {url}", err=True)


@trust_app.command("list")
def trust_list(
    ctx: typer.Context,
    no_color: NoColor = False,
) -> None:
    """List trusted URLs."""
    from jsrun.config import trusted

    color = _use_color(no_color)
    try:
        urls = trusted(global_options(ctx).load_config())
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if not urls:
        typer.echo("No trusted sources.")
        return
    for url in urls:
        typer.echo(url)


# ---------------------------------------------------------------------------
# cache
# ---------------------------------------------------------------------------


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    no_color: NoColor = False,
) -> None:
    """Delete downloaded sources and built jars."""
    from jsrun.cli.formatting import styler
    from jsrun.config import clear_cache

    color = _use_color(no_color)
    try:
        cfg = global_options(ctx).load_config()
        clear_cache(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)(f"Cleared {cfg.settings.cache_root}", fg="green"))
