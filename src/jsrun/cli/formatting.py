"""Project and command rendering."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING, Any

import typer

if TYPE_CHECKING:
    from collections.abc import Callable

    from jsrun.build.project import Project


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _align_values(items: dict[str, str]) -> list[tuple[str, str]]:
    """Right-pad keys so values line up."""
    if not items:
        return []
    max_key = max(len(k) for k in items)
    return [(k.ljust(max_key), v) for k, v in items.items()]


def _join(values: list[str]) -> str:
    return " ".join(values) if values else "-"


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


def project_summary(prj: Project) -> dict[str, Any]:
    """JSON-friendly view of a resolved project."""
    source_set = prj.main_source_set
    jar_file = prj.jar_file
    return {
        "reference": prj.resource_ref.original,
        "file": str(prj.resource_ref.file),
        "is_url": prj.resource_ref.is_url,
        "sources": [ref.original for ref in source_set.resource_refs],
        "dependencies": source_set.dependencies,
        "repositories": [{"id": r.id, "url": r.url} for r in prj.all_repositories()],
        "compile_options": source_set.compile_options,
        "runtime_options": prj.runtime_options,
        "java_version": prj.java_version,
        "gav": prj.gav,
        "description": prj.description,
        "main_class": prj.main_class,
        "cds": prj.enable_cds,
        "manifest_attributes": prj.manifest_attributes,
        "stable_id": source_set.stable_id if prj.main_source is not None else None,
        "jar_file": str(jar_file) if jar_file is not None else None,
    }


def format_project(prj: Project, *, color: bool = True) -> str:
    """Render a project as an aligned ``key: value`` block plus its sources."""
    style = styler(color)
    summary = project_summary(prj)

    fields = {
        "Java": summary["java_version"] or "any",
        "GAV": summary["gav"] or "-",
        "Dependencies": _join(summary["dependencies"]),
        "Repositories": _join([r["id"] for r in summary["repositories"]]),
        "Compile options": _join(summary["compile_options"]),
        "Runtime options": _join(summary["runtime_options"]),
        "CDS": "enabled" if summary["cds"] else "disabled",
        "Stable id": summary["stable_id"] or "-",
        "Jar": summary["jar_file"] or "-",
    }
    lines = [style(summary["reference"], bold=True)]
    if summary["description"]:
        lines += [f"  {line}" for line in summary["description"].splitlines()]
    lines += [f"  {k}: {v}" for k, v in _align_values(fields)]

    refs = prj.main_source_set.resource_refs
    if refs:
        lines.append("")
        lines.append(style(f"Sources ({len(refs)}):", bold=True))
        for i, ref in enumerate(refs):
            marker = style("*", fg="green") if i == 0 else "-"
            origin = style(" [url]", fg="cyan") if ref.is_url else ""
            lines.append(f"  {marker} {ref.original}{origin}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def format_command(cmd: list[str]) -> str:
    """Shell-quoted command line."""
    return shlex.join(cmd)
