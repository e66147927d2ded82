from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from detach.classifier import PinReference
from detach.errors import DiscoveryError, ParseError
from detach.pipeline import process_manifest, rewrite_tree


def _read(path: Path) -> dict:
    return tomllib.loads(path.read_text(encoding="utf-8"))


@pytest.fixture()
def template_tree(write_manifest, tmp_path: Path) -> Path:
    root = tmp_path / "out"
    write_manifest("out/Cargo.toml", '[workspace]\nmembers = []\n')
    write_manifest(
        "out/pallet-a/Cargo.toml",
        """
        [package]
        name = "pallet-a"

        [dependencies]
        pallet-b = { path = "../pallet-b" }
        pallet-c = { path = "../pallet-c" }
        """,
    )
    write_manifest(
        "out/pallet-c/Cargo.toml",
        """
        [package]
        name = "pallet-c"
        """,
    )
    return root


def test_rewrite_tree_pins_missing_siblings(template_tree: Path, pin: PinReference):
    report = rewrite_tree(template_tree, pin)

    pallet_a = _read(template_tree / "pallet-a" / "Cargo.toml")
    assert pallet_a["dependencies"]["pallet-b"] == {"git": pin.url, "rev": pin.rev}
    assert pallet_a["dependencies"]["pallet-c"] == {"path": "../pallet-c"}
    assert 'pallet-c = { path = "../pallet-c" }' in (
        template_tree / "pallet-a" / "Cargo.toml"
    ).read_text(encoding="utf-8")

    root = _read(template_tree / "Cargo.toml")
    assert root["workspace"]["members"] == ["pallet-a", "pallet-c"]
    assert root["profile"]["release"]["panic"] == "unwind"

    assert report.members == ["pallet-a", "pallet-c"]
    assert report.remapped_count == 1
    assert report.created_root is False
    assert [result.is_root for result in report.manifests].count(True) == 1


def test_rewrite_tree_creates_missing_root_manifest(write_manifest, tmp_path: Path, pin: PinReference):
    root = tmp_path / "out"
    write_manifest(
        "out/pallet-a/Cargo.toml",
        """
        [package]
        name = "pallet-a"

        [dependencies]
        pallet-b = { path = "../pallet-b" }
        """,
    )

    report = rewrite_tree(root, pin)

    assert report.created_root is True
    assert _read(root / "Cargo.toml") == {
        "workspace": {"members": ["pallet-a"]},
        "profile": {"release": {"panic": "unwind"}},
    }
    assert _read(root / "pallet-a" / "Cargo.toml")["dependencies"]["pallet-b"] == {
        "git": pin.url,
        "rev": pin.rev,
    }


def test_rewrite_tree_twice_is_stable(template_tree: Path, pin: PinReference):
    rewrite_tree(template_tree, pin)
    member = template_tree / "pallet-a" / "Cargo.toml"
    first_member = member.read_text(encoding="utf-8")
    first_root = _read(template_tree / "Cargo.toml")

    report = rewrite_tree(template_tree, pin)

    assert report.remapped_count == 0
    assert member.read_text(encoding="utf-8") == first_member
    assert _read(template_tree / "Cargo.toml") == first_root


def test_rewrite_tree_in_parallel_matches_sequential(
    template_tree: Path, tmp_path: Path, write_manifest, pin: PinReference
):
    for index in range(6):
        write_manifest(
            f"out/crates/crate-{index}/Cargo.toml",
            f"""
            [dependencies]
            sp-io-{index} = {{ path = "../../../primitives/io" }}
            """,
        )

    report = rewrite_tree(template_tree, pin, max_workers=4)

    assert report.remapped_count == 7
    for index in range(6):
        data = _read(template_tree / "crates" / f"crate-{index}" / "Cargo.toml")
        assert data["dependencies"][f"sp-io-{index}"] == {"git": pin.url, "rev": pin.rev}
    assert len(_read(template_tree / "Cargo.toml")["workspace"]["members"]) == 8


def test_rewrite_tree_applies_package_metadata(template_tree: Path, pin: PinReference):
    rewrite_tree(template_tree, pin, package_metadata={"license": "Unlicense"})

    assert _read(template_tree / "pallet-a" / "Cargo.toml")["package"]["license"] == "Unlicense"
    assert "package" not in _read(template_tree / "Cargo.toml")


def test_rewrite_tree_on_empty_directory_raises(tmp_path: Path, pin: PinReference):
    with pytest.raises(DiscoveryError):
        rewrite_tree(tmp_path, pin)
    assert not (tmp_path / "Cargo.toml").exists()


def test_rewrite_tree_aborts_on_corrupt_manifest(template_tree: Path, pin: PinReference):
    (template_tree / "pallet-c" / "Cargo.toml").write_text("[package\n", encoding="utf-8")

    with pytest.raises(ParseError) as excinfo:
        rewrite_tree(template_tree, pin)

    assert excinfo.value.path == template_tree / "pallet-c" / "Cargo.toml"


def test_process_manifest_root_gets_workspace_and_metadata(write_manifest, pin: PinReference):
    path = write_manifest(
        "out/Cargo.toml",
        """
        [package]
        name = "node-template"
        license = "Unlicense"

        [dependencies]
        sc-cli = { path = "../../client/cli" }
        """,
    )

    result = process_manifest(
        path,
        pin,
        members=["node", "runtime"],
        package_metadata={"license": "Apache-2.0", "edition": "2021"},
    )

    assert result.is_root is True
    assert result.remapped == ["dependencies.sc-cli"]
    document = _read(path)
    assert document["package"] == {
        "name": "node-template",
        "license": "Apache-2.0",
        "edition": "2021",
    }
    assert document["dependencies"]["sc-cli"] == {"git": pin.url, "rev": pin.rev}
    assert document["workspace"]["members"] == ["node", "runtime"]
    assert document["profile"]["release"]["panic"] == "unwind"


def test_process_manifest_member_has_no_workspace(write_manifest, pin: PinReference):
    path = write_manifest("out/node/Cargo.toml", '[package]\nname = "node"\n')

    result = process_manifest(path, pin)

    assert result.is_root is False
    assert result.remapped == []
    assert "workspace" not in _read(path)
