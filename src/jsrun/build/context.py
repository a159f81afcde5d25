"""Per-invocation run flags."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from jsrun.source.source import SourceType


class RunContext(BaseModel):
    """What the user asked for on this run, independent of the project itself.

    Attributes:
        force_type: Treat the main source as this type regardless of its extension.
        interactive: Open an interactive shell with the project's classpath.
        main_class: Main class override.
        arguments: Arguments passed to the program.
        runtime_options: Extra JVM options.
        properties: Values for ``${name}`` placeholders.
        repositories: Extra repository tokens (``name=url``, URL or alias).
        native_image: Request a native image build.
    """

    model_config = ConfigDict(extra="forbid")

    force_type: SourceType | None = None
    interactive: bool = False
    main_class: str | None = None
    arguments: list[str] = Field(default_factory=list)
    runtime_options: list[str] = Field(default_factory=list)
    properties: dict[str, str] = Field(default_factory=dict)
    repositories: list[str] = Field(default_factory=list)
    native_image: bool = False
