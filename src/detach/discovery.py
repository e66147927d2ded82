"""Locate the manifests of a copied template tree."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .errors import DiscoveryError, ManifestIOError
from .manifest import MANIFEST_NAME

__all__ = [
    "EXCLUDED_DIRECTORIES",
    "ensure_root_manifest",
    "find_manifests",
    "root_manifest_path",
]


LOGGER = logging.getLogger(__name__)

EXCLUDED_DIRECTORIES = frozenset({"target", ".git"})


def root_manifest_path(root: str | Path, manifest_name: str = MANIFEST_NAME) -> Path:
    """Return the location of the workspace root manifest of ``root``."""

    return Path(root) / manifest_name


def ensure_root_manifest(root: str | Path, manifest_name: str = MANIFEST_NAME) -> bool:
    """Create an empty root manifest when ``root`` has none.

    Returns ``True`` when a file was created.
    """

    path = root_manifest_path(root, manifest_name)
    if path.exists():
        return False
    try:
        path.touch()
    except OSError as exc:
        raise ManifestIOError(f"Failed to create root manifest {path}: {exc}", path=path) from exc
    LOGGER.info("Created empty root manifest %s", path)
    return True


def find_manifests(
    root: str | Path,
    manifest_name: str = MANIFEST_NAME,
    *,
    exclude: Iterable[str] = EXCLUDED_DIRECTORIES,
) -> list[Path]:
    """Return every ``manifest_name`` file below ``root``, at any depth.

    Files inside build output or VCS directories named in ``exclude`` are
    skipped. Raises :class:`DiscoveryError` when nothing is found, which means
    the template was not copied into ``root``.
    """

    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError(f"Output directory {root} does not exist", path=root)

    excluded = set(exclude)
    found: list[Path] = []
    for candidate in root.rglob(manifest_name):
        directories = candidate.relative_to(root).parts[:-1]
        if any(part in excluded for part in directories):
            continue
        if candidate.is_file():
            found.append(candidate)

    if not found:
        raise DiscoveryError(f"Did not find any `{manifest_name}` files under {root}", path=root)

    found.sort()
    LOGGER.info("Found %d manifests under %s", len(found), root)
    return found
