"""Rewrite unresolvable ``path`` dependencies of a manifest into git pins."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from tomlkit.items import Table

from .classifier import Classification, PinReference, classify, remap_entry
from .manifest import (
    Manifest,
    has_multiline_entries,
    iter_dependency_tables,
    replace_dependency_table,
)

__all__ = ["apply_package_metadata", "rewrite_manifest"]


LOGGER = logging.getLogger(__name__)


def rewrite_manifest(manifest: Manifest, pin: PinReference) -> list[str]:
    """Pin every dependency of ``manifest`` whose local path no longer exists.

    Entries are only ever reshaped, never removed. Returns the remapped
    entries as ``"<section>.<name>"`` strings in manifest order.
    """

    remapped: list[str] = []
    for location in iter_dependency_tables(manifest.document):
        replacements = {
            name: remap_entry(value, pin)
            for name, value in location.table.items()
            if classify(name, value, manifest.directory) is Classification.REMAP
        }
        if not replacements:
            continue

        if isinstance(location.table, Table) and not has_multiline_entries(location.table):
            for name, replacement in replacements.items():
                location.table[name] = replacement
        else:
            # Section headers like [dependencies.foo] and dotted keys cannot be
            # swapped for an inline value in place.
            replace_dependency_table(location, replacements)

        for name in replacements:
            LOGGER.debug("%s: pinned [%s] %s to %s", manifest.path, location.label, name, pin.rev)
            remapped.append(f"{location.label}.{name}")

    if remapped:
        LOGGER.info("Pinned %d dependencies in %s", len(remapped), manifest.path)
    return remapped


def apply_package_metadata(manifest: Manifest, metadata: Mapping[str, Any]) -> list[str]:
    """Overwrite ``[package]`` fields of ``manifest`` with ``metadata``.

    Manifests without a ``[package]`` table (virtual workspace roots) are left
    alone. Returns the names of the fields that were set.
    """

    package = manifest.document.get("package")
    if not isinstance(package, dict) or not metadata:
        return []

    for key, value in metadata.items():
        package[key] = value
    LOGGER.debug("%s: updated package metadata %s", manifest.path, ", ".join(metadata))
    return list(metadata)
