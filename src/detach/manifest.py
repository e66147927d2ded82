"""Loading and saving ``Cargo.toml`` manifests.

Manifests are parsed with :mod:`tomlkit`, which keeps comments, key order and
table style of every node, so sections the generator does not touch are written
back exactly as they were read. The only normalization applied on save is that
dependency specifications written as multi-line tables (``[dependencies.foo]``
headers or dotted keys) are rendered as inline tables (``foo = { ... }``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple

import tomlkit
from tomlkit.container import Container
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import InlineTable, Item, Null, Table, Whitespace
from tomlkit.toml_document import TOMLDocument

from .errors import ManifestIOError, ParseError

__all__ = [
    "DEPENDENCY_SECTIONS",
    "DependencyTable",
    "MANIFEST_NAME",
    "Manifest",
    "dumps",
    "has_multiline_entries",
    "inline_table_from",
    "is_multiline_entry",
    "iter_dependency_tables",
    "load",
    "normalize_dependency_tables",
    "pad_inline_table",
    "rebuild_dependency_table",
    "replace_dependency_table",
    "save",
    "unwrap_value",
]


LOGGER = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
DEPENDENCY_SECTIONS = ("dependencies", "build-dependencies", "dev-dependencies")


@dataclass(slots=True)
class Manifest:
    """A parsed manifest together with the file it was read from."""

    path: Path
    document: TOMLDocument

    @property
    def directory(self) -> Path:
        """Directory relative ``path`` dependencies are resolved against."""

        return self.path.parent


class DependencyTable(NamedTuple):
    """Location of one dependency-like table inside a manifest."""

    label: str
    parent: Any
    key: str
    table: Any


def load(path: str | Path) -> Manifest:
    """Read and parse the manifest stored at ``path``."""

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Manifest {path} is not valid UTF-8: {exc}", path=path) from exc
    except OSError as exc:
        raise ManifestIOError(f"Failed to read manifest {path}: {exc}", path=path) from exc

    try:
        document = tomlkit.parse(text)
    except TOMLKitError as exc:
        raise ParseError(f"Manifest {path} is not valid TOML: {exc}", path=path) from exc

    LOGGER.debug("Loaded manifest %s", path)
    return Manifest(path=path, document=document)


def dumps(manifest: Manifest) -> str:
    """Serialize ``manifest`` after normalizing its dependency tables."""

    normalize_dependency_tables(manifest.document)
    return tomlkit.dumps(manifest.document)


def save(manifest: Manifest) -> None:
    """Write ``manifest`` back to :attr:`Manifest.path`."""

    text = dumps(manifest)
    try:
        manifest.path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ManifestIOError(
            f"Failed to write manifest {manifest.path}: {exc}", path=manifest.path
        ) from exc
    LOGGER.debug("Wrote manifest %s", manifest.path)


def _sections_of(parent: Mapping[str, Any], prefix: str = "") -> Iterator[DependencyTable]:
    for section in DEPENDENCY_SECTIONS:
        table = parent.get(section)
        if isinstance(table, dict):
            yield DependencyTable(f"{prefix}{section}", parent, section, table)


def iter_dependency_tables(document: Mapping[str, Any]) -> Iterator[DependencyTable]:
    """Yield every dependency-like table of ``document``.

    This covers the top level sections, platform specific
    ``[target.<cfg>.*dependencies]`` tables and ``[workspace.dependencies]``.
    Tables are looked up lazily so callers may replace a yielded table before
    advancing the iterator.
    """

    yield from _sections_of(document)

    targets = document.get("target")
    if isinstance(targets, dict):
        for cfg in list(targets.keys()):
            platform = targets.get(cfg)
            if isinstance(platform, dict):
                yield from _sections_of(platform, prefix=f"target.{cfg}.")

    workspace = document.get("workspace")
    if isinstance(workspace, dict):
        table = workspace.get("dependencies")
        if isinstance(table, dict):
            yield DependencyTable("workspace.dependencies", workspace, "dependencies", table)


def unwrap_value(value: Any) -> Any:
    """Convert a :mod:`tomlkit` item or table proxy into plain Python values."""

    unwrap = getattr(value, "unwrap", None)
    if callable(unwrap):
        return unwrap()
    if isinstance(value, Mapping):
        return {key: unwrap_value(item) for key, item in value.items()}
    return value


def pad_inline_table(table: InlineTable) -> InlineTable:
    """Give a freshly built inline table the ``{ key = value }`` spacing."""

    values = [item for key, item in table.value.body if key is not None]
    if values:
        values[0].trivia.indent = " "
        table.add(tomlkit.ws(" "))
    return table


def inline_table_from(value: Mapping[str, Any]) -> InlineTable:
    """Return an inline table holding the same keys and values as ``value``."""

    table = tomlkit.inline_table()
    table.update(unwrap_value(value))
    return pad_inline_table(table)


def is_multiline_entry(value: Any) -> bool:
    """Return ``True`` for entries written as a table header or dotted keys."""

    return isinstance(value, Mapping) and not isinstance(value, InlineTable)


def has_multiline_entries(table: Mapping[str, Any]) -> bool:
    """Return ``True`` when an entry of ``table`` is not written inline."""

    return any(is_multiline_entry(value) for value in table.values())


def rebuild_dependency_table(
    table: Mapping[str, Any],
    replacements: Mapping[str, Any] | None = None,
) -> Table:
    """Build a fresh dependency table with every entry in inline form.

    Entries named in ``replacements`` are swapped for the given value; all
    other scalar and inline entries are carried over without blank lines
    between them.
    """

    replacements = replacements or {}
    rebuilt = tomlkit.table()
    for name, value in table.items():
        if name in replacements:
            rebuilt[name] = replacements[name]
        elif is_multiline_entry(value):
            rebuilt[name] = inline_table_from(value)
        else:
            trivia = getattr(value, "trivia", None)
            if trivia is not None and trivia.trail.count("\n") > 1:
                trivia.trail = trivia.trail.rstrip("\r\n") + "\n"
            rebuilt[name] = value
    return rebuilt


def _ends_with_blank_line(location: DependencyTable) -> bool:
    if isinstance(location.table, Item):
        return location.table.as_string().endswith("\n\n")
    # A table split across the document has no single rendering; keep it
    # apart from whatever follows it.
    keys = list(location.parent.keys())
    return bool(keys) and keys[-1] != location.key


def _rendered(container: Any) -> str:
    as_string = getattr(container, "as_string", None)
    return as_string() if callable(as_string) else ""


def _body_of(container: Any) -> list[Any]:
    if isinstance(container, Container):
        return container.body
    if isinstance(container, Table):
        return container.value.body
    return []


def _strip_trailing_blank_lines(body: list[Any]) -> None:
    for index in range(len(body) - 1, -1, -1):
        item = body[index][1]
        if isinstance(item, Null):
            continue
        if isinstance(item, Whitespace):
            del body[index]
            continue
        if isinstance(item, Table):
            _strip_trailing_blank_lines(item.value.body)
        return


def replace_dependency_table(
    location: DependencyTable,
    replacements: Mapping[str, Any] | None = None,
) -> Table:
    """Swap the table at ``location`` for its rebuilt inline form.

    The rebuilt table ends with a blank line exactly when the table it
    replaces was followed by one.
    """

    blank_line = _ends_with_blank_line(location)
    parent_blank_line = _rendered(location.parent).endswith("\n\n")
    rebuilt = rebuild_dependency_table(location.table, replacements)
    location.parent[location.key] = rebuilt

    # tomlkit appends its own separator when a table is replaced.
    body = rebuilt.value.body
    while body and isinstance(body[-1][1], Whitespace):
        body.pop()
    if blank_line:
        rebuilt.add(tomlkit.nl())

    # Parts of a split table leave the separator of the section before them.
    if not parent_blank_line and _rendered(location.parent).endswith("\n\n"):
        _strip_trailing_blank_lines(_body_of(location.parent))
    return rebuilt


def normalize_dependency_tables(document: TOMLDocument) -> None:
    """Render every multi-line dependency specification as an inline table."""

    for location in iter_dependency_tables(document):
        if has_multiline_entries(location.table):
            LOGGER.debug("Inlining dependency tables in [%s]", location.label)
            replace_dependency_table(location)
