"""Custom exception types raised while generating a stand-alone template."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ConfigError",
    "DiscoveryError",
    "GeneratorError",
    "ManifestIOError",
    "ParseError",
    "PathError",
    "ToolchainError",
]


class GeneratorError(RuntimeError):
    """Base class for every fatal error raised by the generator."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class DiscoveryError(GeneratorError):
    """Raised when no manifest can be found under the output root."""


class ParseError(GeneratorError):
    """Raised when a manifest is not valid TOML."""


class PathError(GeneratorError):
    """Raised when a path cannot be resolved or expressed relative to the root."""


class ManifestIOError(GeneratorError):
    """Raised when a manifest cannot be created, read or written."""


class ConfigError(GeneratorError):
    """Raised when the configuration file is missing or invalid."""


class ToolchainError(GeneratorError):
    """Raised when copying the template or running ``git``/``cargo`` fails."""
