"""Execution-strategy selection and command-line generation."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from jsrun.build.errors import ArtifactNotFound
from jsrun.source.source import SourceType

if TYPE_CHECKING:
    from jsrun.build.context import RunContext
    from jsrun.build.project import Project

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    JAR = "jar"
    INTERACTIVE_SHELL = "jshell"


def select_strategy(project: Project, ctx: RunContext) -> Strategy:
    """Decide how *project* runs. First match wins:

    1. A project with a main source that is a JShell script, or a run forced
       to JShell, or an interactive run -> ``INTERACTIVE_SHELL``.
    2. Everything else, including every pre-built jar project -> ``JAR``.

    An interactive request beats an explicit main class. Pure: only reads
    already resolved state.
    """
    if project.main_source is not None and (
        project.is_jshell or ctx.force_type is SourceType.JSHELL or ctx.interactive
    ):
        return Strategy.INTERACTIVE_SHELL
    return Strategy.JAR


def java_tool(name: str) -> str:
    """``$JAVA_HOME/bin/<name>`` when JAVA_HOME is set, else the bare tool name."""
    java_home = os.environ.get("JAVA_HOME")
    if java_home:
        return str(Path(java_home) / "bin" / name)
    return name


class CmdGenerator:
    """Renders the command line for one (project, run context) pair."""

    def __init__(self, project: Project, ctx: RunContext) -> None:
        self._project = project
        self._ctx = ctx
        self._strategy = select_strategy(project, ctx)

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    def generate(self) -> list[str]:
        match self._strategy:
            case Strategy.JAR:
                cmd = self._jar_command()
            case Strategy.INTERACTIVE_SHELL:
                cmd = self._shell_command()
        logger.debug("Generated %s command: %s", self._strategy.value, cmd)
        return cmd

    def _runtime_options(self) -> list[str]:
        return [*self._project.runtime_options, *self._ctx.runtime_options]

    def _jar_command(self) -> list[str]:
        prj = self._project
        jar_file = prj.jar_file
        if jar_file is None:
            raise ArtifactNotFound(jar_file)

        cmd = [java_tool("java"), *self._runtime_options()]
        if prj.enable_cds:
            jsa = jar_file.with_suffix(".jsa")
            if jsa.exists():
                cmd.append(f"-XX:SharedArchiveFile={jsa}")
            else:
                cmd.append(f"-XX:ArchiveClassesAtExit={jsa}")

        jar = prj.as_jar()
        main_class = self._ctx.main_class or prj.main_class or (jar.main_class if jar else None)
        if main_class:
            class_path = [str(jar_file), *(str(f) for f in prj.resolve_classpath().files)]
            cmd += ["-classpath", os.pathsep.join(class_path), main_class]
        else:
            cmd += ["-jar", str(jar_file)]
        return [*cmd, *self._ctx.arguments]

    def _shell_command(self) -> list[str]:
        prj = self._project
        class_path = [str(f) for f in prj.resolve_classpath().files]
        jar_file = prj.jar_file
        if jar_file is not None and jar_file.exists():
            class_path.insert(0, str(jar_file))

        cmd = [java_tool("jshell"), "--execution=local"]
        if class_path:
            cmd += ["--class-path", os.pathsep.join(class_path)]
        cmd += [f"-J{o}" for o in self._runtime_options()]
        if prj.is_jshell:
            cmd.append("--startup=DEFAULT")
            cmd += [str(ref.file) for ref in prj.main_source_set.resource_refs]
        return cmd
