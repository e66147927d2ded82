"""Rewrite every manifest of a generated tree in one pass."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from . import manifest as store
from .classifier import PinReference
from .discovery import ensure_root_manifest, find_manifests, root_manifest_path
from .manifest import MANIFEST_NAME
from .rewriter import apply_package_metadata, rewrite_manifest
from .workspace import synthesize_workspace, workspace_members

__all__ = ["ManifestResult", "RewriteReport", "process_manifest", "rewrite_tree"]


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ManifestResult:
    """Changes applied to a single manifest."""

    path: Path
    remapped: list[str] = field(default_factory=list)
    is_root: bool = False


@dataclass(slots=True)
class RewriteReport:
    """Outcome of :func:`rewrite_tree`."""

    root: Path
    pin: PinReference
    members: list[str]
    manifests: list[ManifestResult]
    created_root: bool = False

    @property
    def remapped_count(self) -> int:
        return sum(len(result.remapped) for result in self.manifests)


def process_manifest(
    path: Path,
    pin: PinReference,
    *,
    members: Sequence[str] | None = None,
    package_metadata: Mapping[str, Any] | None = None,
) -> ManifestResult:
    """Load, rewrite and save one manifest.

    When ``members`` is given the manifest is treated as the workspace root.
    ``package_metadata`` overwrites fields of the manifest's ``[package]`` table.
    """

    manifest = store.load(path)
    remapped = rewrite_manifest(manifest, pin)
    if package_metadata:
        apply_package_metadata(manifest, package_metadata)
    if members is not None:
        synthesize_workspace(manifest, members)
    store.save(manifest)
    return ManifestResult(path=path, remapped=remapped, is_root=members is not None)


def rewrite_tree(
    root: str | Path,
    pin: PinReference,
    *,
    manifest_name: str = MANIFEST_NAME,
    max_workers: int | None = None,
    package_metadata: Mapping[str, Any] | None = None,
) -> RewriteReport:
    """Pin the dependencies of every manifest under ``root``.

    Discovery must find at least one manifest; the root manifest is then
    created when missing and additionally receives the workspace definition.
    ``max_workers`` greater than one processes manifests on a thread pool; the
    first failure is re-raised once all workers finished.
    """

    root = Path(root)
    paths = find_manifests(root, manifest_name)
    root_manifest = root_manifest_path(root, manifest_name)
    created_root = ensure_root_manifest(root, manifest_name)
    if root_manifest not in paths:
        paths.append(root_manifest)
    members = workspace_members(paths, root, manifest_name)

    LOGGER.info("Rewriting %d manifests under %s at %s", len(paths), root, pin.rev)

    def run(path: Path) -> ManifestResult:
        return process_manifest(
            path,
            pin,
            members=members if path == root_manifest else None,
            package_metadata=package_metadata,
        )

    if max_workers is not None and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run, path) for path in paths]
        results = [future.result() for future in futures]
    else:
        results = [run(path) for path in paths]

    report = RewriteReport(
        root=root,
        pin=pin,
        members=members,
        manifests=results,
        created_root=created_root,
    )
    LOGGER.info(
        "Pinned %d dependencies across %d manifests", report.remapped_count, len(results)
    )
    return report
