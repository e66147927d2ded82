"""Turn the root manifest of a generated tree into a Cargo workspace."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.items import Array

from .errors import PathError
from .manifest import MANIFEST_NAME, Manifest

__all__ = ["workspace_members", "synthesize_workspace"]


LOGGER = logging.getLogger(__name__)


def workspace_members(
    manifest_paths: Iterable[str | Path],
    root: str | Path,
    manifest_name: str = MANIFEST_NAME,
) -> list[str]:
    """Return the member directories of ``root`` in POSIX form, sorted.

    The root manifest itself is not a member. Raises :class:`PathError` when a
    manifest does not live below ``root``.
    """

    root = Path(root)
    root_manifest = root / manifest_name
    members: set[str] = set()
    for path in manifest_paths:
        path = Path(path)
        if path == root_manifest:
            continue
        try:
            relative = path.relative_to(root)
        except ValueError as exc:
            raise PathError(
                f"Workspace member {path} is not located under {root}", path=path
            ) from exc
        members.add(relative.parent.as_posix())
    return sorted(members)


def _ensure_table(parent: Any, key: str, *, is_super_table: bool | None = None) -> Any:
    table = parent.get(key)
    if not isinstance(table, dict):
        parent[key] = tomlkit.table(is_super_table)
        table = parent[key]
    return table


def _members_array(members: Sequence[str]) -> Array:
    array = tomlkit.array()
    array.extend(members)
    return array.multiline(len(members) > 1)


def synthesize_workspace(manifest: Manifest, members: Sequence[str]) -> None:
    """Add ``workspace.members`` and ``profile.release.panic`` to ``manifest``.

    Both keys are overwritten when present; other settings of the
    ``[workspace]`` and ``[profile]`` tables are left alone.
    """

    document = manifest.document

    workspace = _ensure_table(document, "workspace")
    workspace["members"] = _members_array(members)

    profile = _ensure_table(document, "profile", is_super_table=True)
    release = _ensure_table(profile, "release")
    release["panic"] = "unwind"

    LOGGER.info("Declared %d workspace members in %s", len(members), manifest.path)
