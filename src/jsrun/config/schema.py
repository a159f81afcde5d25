"""Configuration models."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jsrun.build.dependencies import parse_repository

DEFAULT_HOME = Path("~/.jsrun")
CONFIG_FILE_NAME = "jsrun.yaml"
TRUST_FILE_NAME = "trusted-sources.json"


class Settings(BaseSettings):
    """Runtime settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``JSRUN_`` prefix. Constructor kwargs take precedence. The
    GitHub token is also picked up from ``GITHUB_TOKEN``.
    """

    model_config = SettingsConfigDict(env_prefix="JSRUN_")

    home: Path = DEFAULT_HOME
    cache_dir: Path | None = None
    offline: bool = False
    fresh: bool = False
    connect_timeout: float = 30.0
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("github_token", "JSRUN_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )

    @property
    def home_dir(self) -> Path:
        return self.home.expanduser()

    @property
    def cache_root(self) -> Path:
        if self.cache_dir is not None:
            return self.cache_dir.expanduser()
        return self.home_dir / "cache"

    @property
    def urls_dir(self) -> Path:
        return self.cache_root / "urls"

    @property
    def jars_dir(self) -> Path:
        return self.cache_root / "jars"

    @property
    def trust_file(self) -> Path:
        return self.home_dir / TRUST_FILE_NAME


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


def _none_to_dict(v: Any) -> Any:
    return v if v is not None else {}


def _property_text(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


class Config(BaseModel):
    """User configuration: the ``jsrun.yaml`` file plus resolved settings."""

    settings: Settings = Field(default_factory=Settings)
    repositories: Annotated[list[str], BeforeValidator(_none_to_list)] = []
    properties: Annotated[dict[str, str], BeforeValidator(_none_to_dict)] = {}
    runtime_options: Annotated[list[str], BeforeValidator(_none_to_list)] = []
    config_dir: Path = Path()

    @field_validator("repositories")
    @classmethod
    def _known_repositories(cls, v: list[str]) -> list[str]:
        for token in v:
            parse_repository(token)
        return v

    @field_validator("properties", mode="before")
    @classmethod
    def _stringify_properties(cls, v: Any) -> Any:
        # YAML turns `1.2.9` into a float and `true` into a bool.
        if isinstance(v, dict):
            return {str(k): _property_text(val) for k, val in v.items()}
        return v
