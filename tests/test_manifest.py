from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from detach import manifest as store
from detach.errors import ManifestIOError, ParseError


def test_load_and_dumps_round_trip_is_byte_identical(write_manifest):
    path = write_manifest(
        "node/Cargo.toml",
        """
        # Node of the template.
        [package]
        name = "node-template"
        version = "4.0.0-dev"
        authors = ["Substrate DevHub <https://github.com/substrate-developer-hub>"]

        [dependencies]
        clap = { version = "4.0.9", features = ["derive"] }  # cli
        sc-cli = { version = "0.10.0-dev", path = "../../../client/cli" }
        futures = "0.3.21"

        [build-dependencies]
        substrate-build-script-utils = { version = "3.0.0", path = "../../../utils/build-script-utils" }

        [features]
        default = []
        """,
    )
    original = path.read_text(encoding="utf-8")

    manifest = store.load(path)

    assert store.dumps(manifest) == original


def test_round_trip_preserves_semantics(write_manifest):
    path = write_manifest(
        "Cargo.toml",
        """
        [package]
        name = "pallet-template"
        edition = "2021"

        [package.metadata.docs.rs]
        targets = ["x86_64-unknown-linux-gnu"]

        [dependencies]
        codec = { package = "parity-scale-codec", version = "3.0.0", default-features = false }
        """,
    )
    original = tomllib.loads(path.read_text(encoding="utf-8"))

    reparsed = tomllib.loads(store.dumps(store.load(path)))

    assert reparsed == original


def test_save_inlines_multiline_dependency_tables(write_manifest):
    path = write_manifest(
        "runtime/Cargo.toml",
        """
        [package]
        name = "node-template-runtime"

        [dependencies]
        log = "0.4"

        [dependencies.frame-support]
        version = "4.0.0-dev"
        default-features = false
        path = "../../../frame/support"

        [dev-dependencies.sp-io]
        path = "../../../primitives/io"

        [features]
        std = ["frame-support/std"]
        """,
    )
    expected = tomllib.loads(path.read_text(encoding="utf-8"))

    manifest = store.load(path)
    store.save(manifest)
    text = path.read_text(encoding="utf-8")

    assert "[dependencies.frame-support]" not in text
    assert "[dev-dependencies.sp-io]" not in text
    assert 'log = "0.4"' in text
    assert any(line.startswith("frame-support = {") for line in text.splitlines())
    assert any(line.startswith("sp-io = {") for line in text.splitlines())
    assert tomllib.loads(text) == expected


def test_save_inlines_dotted_dependency_keys(write_manifest):
    path = write_manifest(
        "Cargo.toml",
        """
        [dependencies]
        serde.version = "1.0"
        serde.features = ["derive"]
        log = "0.4"
        """,
    )
    expected = tomllib.loads(path.read_text(encoding="utf-8"))

    store.save(store.load(path))
    text = path.read_text(encoding="utf-8")

    assert "serde.version" not in text
    assert "serde.features" not in text
    assert 'serde = { version = "1.0", features = ["derive"] }' in text.splitlines()
    assert 'log = "0.4"' in text.splitlines()
    assert tomllib.loads(text) == expected


def test_inline_table_from_pads_braces():
    table = store.inline_table_from({"version": "1.0", "default-features": False})

    assert table.as_string() == '{ version = "1.0", default-features = false }'


def test_save_split_dependency_table_ends_with_single_newline(write_manifest):
    path = write_manifest(
        "Cargo.toml",
        """
        [dependencies]
        log = "0.4"

        [package]
        name = "node-template"

        [dependencies.frame-support]
        version = "4.0.0-dev"
        """,
    )
    expected = tomllib.loads(path.read_text(encoding="utf-8"))

    store.save(store.load(path))
    text = path.read_text(encoding="utf-8")

    assert "[dependencies.frame-support]" not in text
    assert text.endswith("\n")
    assert not text.endswith("\n\n")
    assert tomllib.loads(text) == expected


def test_save_rebuilt_last_table_ends_with_single_newline(write_manifest):
    path = write_manifest(
        "Cargo.toml",
        """
        [package]
        name = "node-template"

        [dependencies]
        log = "0.4"

        [dependencies.frame-support]
        version = "4.0.0-dev"
        """,
    )

    store.save(store.load(path))
    text = path.read_text(encoding="utf-8")

    assert text.endswith('frame-support = { version = "4.0.0-dev" }\n')
    assert 'name = "node-template"\n\n[dependencies]' in text


def test_load_rejects_invalid_toml(write_manifest):
    path = write_manifest("Cargo.toml", '[package\nname = "broken"\n')

    with pytest.raises(ParseError) as excinfo:
        store.load(path)

    assert excinfo.value.path == path
    assert str(path) in str(excinfo.value)


def test_load_missing_file_raises_io_error(tmp_path: Path):
    with pytest.raises(ManifestIOError):
        store.load(tmp_path / "missing" / "Cargo.toml")


def test_empty_manifest_loads_as_empty_document(write_manifest):
    path = write_manifest("Cargo.toml", "")

    manifest = store.load(path)

    assert dict(manifest.document) == {}
    assert manifest.directory == path.parent


def test_iter_dependency_tables_finds_nested_sections(write_manifest):
    path = write_manifest(
        "Cargo.toml",
        """
        [dependencies]
        a = "1"

        [dev-dependencies]
        b = "1"

        [target.'cfg(unix)'.dependencies]
        c = "1"

        [target.'cfg(windows)'.build-dependencies]
        d = "1"

        [workspace.dependencies]
        e = "1"
        """,
    )

    labels = [location.label for location in store.iter_dependency_tables(store.load(path).document)]

    assert labels == [
        "dependencies",
        "dev-dependencies",
        "target.cfg(unix).dependencies",
        "target.cfg(windows).build-dependencies",
        "workspace.dependencies",
    ]
