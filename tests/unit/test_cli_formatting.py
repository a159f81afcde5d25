from __future__ import annotations

import re
from typing import TYPE_CHECKING

from jsrun.build.dependencies import MavenRepo
from jsrun.cli.formatting import (
    _align_values,
    format_command,
    format_project,
    project_summary,
    styler,
)
from jsrun.source.source import Source

if TYPE_CHECKING:
    from jsrun.build.project import Project


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def _project() -> Project:
    prj = Source(
        "//DESCRIPTION Demo script\n//DEPS a:b:1\n//JAVA 21\n//CDS\nclass main {}\n"
    ).create_project()
    prj.add_repository(MavenRepo(id="acme", url="https://acme.example/m2"))
    return prj


class TestAlignValues:
    def test_pads_keys(self) -> None:
        assert _align_values({"a": "1", "long": "2"}) == [("a   ", "1"), ("long", "2")]

    def test_empty(self) -> None:
        assert _align_values({}) == []


class TestStyler:
    def test_color(self) -> None:
        assert "\x1b[" in styler(True)("x", fg="red")

    def test_no_color(self) -> None:
        assert styler(False)("x", fg="red", bold=True) == "x"


class TestProjectSummary:
    def test_fields(self) -> None:
        summary = project_summary(_project())
        assert summary["reference"] == "main.java"
        assert summary["dependencies"] == ["a:b:1"]
        assert summary["repositories"] == [{"id": "acme", "url": "https://acme.example/m2"}]
        assert summary["java_version"] == "21"
        assert summary["description"] == "Demo script"
        assert summary["cds"] is True
        assert summary["sources"] == []
        assert summary["jar_file"].endswith(f"main.java.{summary['stable_id']}.jar")


class TestFormatProject:
    def test_plain(self) -> None:
        text = format_project(_project(), color=False)
        lines = text.splitlines()
        assert lines[0] == "main.java"
        assert lines[1] == "  Demo script"
        assert any(line.startswith("  Java") and line.endswith(": 21") for line in lines)
        assert any("Repositories" in line and line.endswith("acme") for line in lines)
        assert any("CDS" in line and line.endswith("enabled") for line in lines)
        assert "Sources" not in text

    def test_keys_are_aligned(self) -> None:
        lines = format_project(_project(), color=False).splitlines()
        fields = [line for line in lines if line.startswith("  ") and ": " in line]
        assert len({line.index(": ") for line in fields}) == 1

    def test_color(self) -> None:
        text = format_project(_project(), color=True)
        assert "\x1b[" in text
        assert _strip_ansi(text) == format_project(_project(), color=False)


class TestFormatCommand:
    def test_quotes_arguments(self) -> None:
        assert format_command(["java", "-Dgreeting=hello world", "-jar", "a.jar"]) == (
            "java '-Dgreeting=hello world' -jar a.jar"
        )
