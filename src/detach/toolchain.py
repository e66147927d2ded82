"""Filesystem and ``cargo`` steps surrounding the manifest rewrite."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Sequence

from .errors import ToolchainError

__all__ = [
    "archive",
    "check_and_test",
    "copy_rustfmt",
    "copy_template",
    "remove_target_directories",
]


LOGGER = logging.getLogger(__name__)

RUSTFMT_NAME = "rustfmt.toml"


def copy_template(source: Path, destination: Path, *, overwrite: bool = False) -> Path:
    """Copy the contents of ``source`` into ``destination``.

    ``destination`` is created when missing. Existing files are replaced only
    when ``overwrite`` is set; otherwise every conflicting file is skipped and
    the conflicts are reported together in one error once the copy finished.
    Build output (``target`` directories) is not copied.
    """

    if not source.is_dir():
        raise ToolchainError(f"Template directory {source} does not exist", path=source)

    def copy_file(src: str, dst: str) -> str:
        if not overwrite and os.path.exists(dst):
            raise FileExistsError(f"{dst} already exists")
        return shutil.copy2(src, dst)

    LOGGER.info("Copying template %s to %s", source, destination)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        shutil.copytree(
            source,
            destination,
            ignore=shutil.ignore_patterns("target"),
            copy_function=copy_file,
            dirs_exist_ok=True,
        )
    except (shutil.Error, OSError) as exc:
        raise ToolchainError(
            f"Failed to copy template {source} to {destination}: {exc}", path=destination
        ) from exc
    return destination


def copy_rustfmt(source_root: Path, output_root: Path) -> bool:
    """Copy the upstream ``rustfmt.toml`` into the generated tree when there is one."""

    source = source_root / RUSTFMT_NAME
    if not source.is_file():
        return False
    try:
        shutil.copyfile(source, output_root / RUSTFMT_NAME)
    except OSError as exc:
        raise ToolchainError(f"Failed to copy {source}: {exc}", path=source) from exc
    return True


def _cargo(args: Sequence[str], cwd: Path) -> None:
    command = ["cargo", *args]
    LOGGER.info("Running %s in %s", " ".join(command), cwd)
    try:
        completed = subprocess.run(command, cwd=cwd, check=False)
    except OSError as exc:
        raise ToolchainError(f"Unable to run `{' '.join(command)}`: {exc}", path=cwd) from exc
    if completed.returncode != 0:
        raise ToolchainError(
            f"`{' '.join(command)}` failed in {cwd} (exit code {completed.returncode})",
            path=cwd,
        )


def remove_target_directories(manifest_paths: Iterable[Path]) -> list[Path]:
    """Delete the ``target`` directory next to each manifest."""

    removed: list[Path] = []
    for manifest_path in manifest_paths:
        target = manifest_path.parent / "target"
        if not target.exists():
            continue
        try:
            shutil.rmtree(target)
        except OSError as exc:
            raise ToolchainError(f"Failed to remove {target}: {exc}", path=target) from exc
        removed.append(target)
    return removed


def check_and_test(
    root: Path,
    manifest_paths: Sequence[Path],
    *,
    check: bool = True,
    test: bool = True,
) -> None:
    """Build and/or test the generated workspace, then drop its build output."""

    if check:
        _cargo(["check", "--all"], cwd=root)
    if test:
        _cargo(["test", "--all"], cwd=root)
    if check or test:
        remove_target_directories(manifest_paths)


def archive(root: Path, name: str) -> Path:
    """Zip ``root`` into ``<parent>/<name>.zip`` and return the archive path."""

    base_name = root.parent / name
    LOGGER.info("Archiving %s to %s.zip", root, base_name)
    try:
        created = shutil.make_archive(
            str(base_name),
            "zip",
            root_dir=root.parent,
            base_dir=root.name,
        )
    except OSError as exc:
        raise ToolchainError(f"Failed to archive {root}: {exc}", path=root) from exc
    return Path(created)
