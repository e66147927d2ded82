"""Decide which dependency entries must be pinned to the upstream repository."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.items import InlineTable

from .errors import PathError
from .manifest import pad_inline_table, unwrap_value

__all__ = [
    "Classification",
    "DEFAULT_UPSTREAM_URL",
    "PinReference",
    "classify",
    "remap_entry",
]


DEFAULT_UPSTREAM_URL = "https://github.com/paritytech/substrate.git"

# Source selectors replaced by the pin.
SOURCE_KEYS = frozenset({"git", "rev", "branch", "tag"})


class Classification(str, Enum):
    """Outcome of :func:`classify` for a single dependency entry."""

    KEEP = "keep"
    REMAP = "remap"


@dataclass(frozen=True, slots=True)
class PinReference:
    """Remote repository and commit every remapped dependency points at."""

    rev: str
    url: str = DEFAULT_UPSTREAM_URL

    def __post_init__(self) -> None:
        if not self.rev.strip():
            raise ValueError("rev must not be empty")
        if not self.url.strip():
            raise ValueError("url must not be empty")


def _path_exists(target: Path, *, name: str) -> bool:
    try:
        return target.exists()
    except OSError as exc:
        raise PathError(
            f"Cannot resolve path of dependency '{name}' ({target}): {exc}", path=target
        ) from exc


def classify(name: str, value: Any, manifest_dir: str | Path) -> Classification:
    """Classify the dependency ``name`` declared in a manifest under ``manifest_dir``.

    An entry is remapped only when it is a table with a string ``path`` that
    does not exist relative to ``manifest_dir``. Version strings, paths that
    still resolve and tables that already name a ``git`` source are kept.
    """

    if not isinstance(value, Mapping):
        return Classification.KEEP
    if "git" in value:
        return Classification.KEEP

    declared = unwrap_value(value.get("path"))
    if not isinstance(declared, str):
        return Classification.KEEP
    if "\x00" in declared:
        raise PathError(f"Dependency '{name}' declares an invalid path {declared!r}")

    if _path_exists(Path(manifest_dir) / declared, name=name):
        return Classification.KEEP
    return Classification.REMAP


def remap_entry(value: Mapping[str, Any], pin: PinReference) -> InlineTable:
    """Return ``value`` with ``path`` swapped for the ``git``/``rev`` of ``pin``.

    ``git`` and ``rev`` take the position ``path`` had. Any ``git``, ``rev``,
    ``branch`` or ``tag`` already present is dropped; every other field is
    preserved in order.
    """

    replacement = tomlkit.inline_table()
    for key, field_value in unwrap_value(value).items():
        if key == "path":
            replacement["git"] = pin.url
            replacement["rev"] = pin.rev
        elif key not in SOURCE_KEYS:
            replacement[key] = field_value
    return pad_inline_table(replacement)
