"""Configuration file describing what to extract and where to put it."""

from __future__ import annotations

import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .classifier import DEFAULT_UPSTREAM_URL
from .errors import ConfigError

__all__ = [
    "GeneratorConfig",
    "GitInfo",
    "GitSelector",
    "OutputConfig",
    "PackageInfo",
    "UpstreamConfig",
]


class GitSelector(str, Enum):
    """Kind of git reference named by :attr:`GitInfo.name`."""

    BRANCH = "branch"
    TAG = "tag"
    REV = "rev"


class GitInfo(BaseModel):
    """Where the upstream repository lives and which revision to check out."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(..., min_length=1, description="Clone URL of the upstream repository.")
    selector: GitSelector = Field(GitSelector.BRANCH, description="Whether name is a branch, tag or rev.")
    name: str = Field(..., min_length=1, description="Branch, tag or commit to check out.")


class UpstreamConfig(BaseModel):
    """Local checkout of the upstream tree and the template inside it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_path: Path = Field(..., description="Directory holding (or receiving) the upstream clone.")
    relative_template_path: Path = Field(..., description="Template directory relative to source_path.")
    git_info: GitInfo
    pin_url: str = Field(
        DEFAULT_UPSTREAM_URL,
        min_length=1,
        description="Repository URL written into rewritten dependencies.",
    )

    @field_validator("relative_template_path")
    @classmethod
    def _must_be_relative(cls, value: Path) -> Path:
        if value.is_absolute():
            raise ValueError("relative_template_path must be relative to source_path")
        return value

    @property
    def template_path(self) -> Path:
        return self.source_path / self.relative_template_path


class PackageInfo(BaseModel):
    """Package metadata stamped onto every generated member manifest."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Name of the generated template, used for archives.")
    authors: Optional[List[str]] = None
    description: Optional[str] = None
    license: Optional[str] = None
    homepage: Optional[str] = None
    repository: Optional[str] = None
    edition: Optional[str] = None

    def metadata(self) -> dict[str, Any]:
        """Return the ``[package]`` fields to overwrite, without ``name``."""

        return self.model_dump(exclude={"name"}, exclude_none=True)


class OutputConfig(BaseModel):
    """Destination of the generated template and post-processing steps."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: Path = Field(..., description="Directory the template is generated into.")
    overwrite: bool = Field(False, description="Replace files that already exist in path.")
    build: bool = Field(False, description="Run `cargo check --all` on the result.")
    test: bool = Field(False, description="Run `cargo test --all` on the result.")
    zip: bool = Field(False, description="Archive the generated directory next to it.")
    package: Optional[PackageInfo] = None

    @property
    def archive_name(self) -> str:
        if self.package is not None:
            return self.package.name
        return self.path.name


def _anchor(base: Path, value: Path) -> Path:
    value = value.expanduser()
    if value.is_absolute():
        return value
    return base / value


class GeneratorConfig(BaseModel):
    """Top level configuration file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    upstream: UpstreamConfig
    output: OutputConfig

    @classmethod
    def from_file(cls, path: str | Path) -> "GeneratorConfig":
        """Load a configuration file, resolving relative paths against its directory."""

        path = Path(path)
        try:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        except OSError as exc:
            raise ConfigError(f"Failed to read configuration {path}: {exc}", path=path) from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Configuration {path} is not valid TOML: {exc}", path=path) from exc

        try:
            config = cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration {path}:\n{exc}", path=path) from exc

        return config.relative_to(path.resolve().parent)

    def relative_to(self, base: Path) -> "GeneratorConfig":
        """Return a copy whose relative paths are anchored at ``base``."""

        upstream = self.upstream.model_copy(
            update={"source_path": _anchor(base, self.upstream.source_path)}
        )
        output = self.output.model_copy(update={"path": _anchor(base, self.output.path)})
        return self.model_copy(update={"upstream": upstream, "output": output})
