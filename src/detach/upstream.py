"""Keep the local checkout of the upstream repository up to date."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from .config import GitInfo, GitSelector, UpstreamConfig
from .errors import ToolchainError

__all__ = ["clone", "head_commit", "sync", "update"]


LOGGER = logging.getLogger(__name__)


def _git(args: Sequence[str], cwd: Path) -> str:
    command = ["git", *args]
    LOGGER.debug("Running %s in %s", " ".join(command), cwd)
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ToolchainError(f"Unable to run `{' '.join(command)}`: {exc}", path=cwd) from exc

    if completed.returncode != 0:
        detail = (completed.stderr or completed.stdout).strip()
        raise ToolchainError(
            f"`{' '.join(command)}` failed in {cwd} (exit code {completed.returncode}): {detail}",
            path=cwd,
        )
    return completed.stdout.strip()


def clone(url: str, destination: Path) -> None:
    """Clone ``url`` into ``destination``."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.info("Cloning %s into %s", url, destination)
    _git(["clone", url, str(destination)], cwd=destination.parent)


def update(source_path: Path, git_info: GitInfo) -> None:
    """Fetch the upstream checkout and switch it to the configured reference."""

    LOGGER.info("Checking out %s %s in %s", git_info.selector.value, git_info.name, source_path)
    _git(["fetch", "--tags", "origin"], cwd=source_path)
    _git(["checkout", git_info.name], cwd=source_path)
    if git_info.selector is GitSelector.BRANCH:
        _git(["pull", "--ff-only", "origin", git_info.name], cwd=source_path)


def sync(upstream: UpstreamConfig) -> None:
    """Clone the upstream repository if needed and check out the configured reference."""

    if not (upstream.source_path / ".git").exists():
        clone(upstream.git_info.url, upstream.source_path)
    update(upstream.source_path, upstream.git_info)


def head_commit(path: Path) -> str:
    """Return the commit id checked out in the repository containing ``path``."""

    commit = _git(["rev-parse", "HEAD"], cwd=path)
    if not commit:
        raise ToolchainError(f"Repository at {path} has no HEAD commit", path=path)
    return commit
