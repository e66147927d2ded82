from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from detach.classifier import PinReference  # noqa: E402 (import after sys.path setup)

UPSTREAM_URL = "https://github.com/paritytech/substrate.git"
COMMIT = "4f1b5e0a9c3d2e7f8a6b1c0d9e8f7a6b5c4d3e2f"


@pytest.fixture()
def pin() -> PinReference:
    return PinReference(rev=COMMIT, url=UPSTREAM_URL)


@pytest.fixture()
def write_manifest(tmp_path: Path) -> Callable[..., Path]:
    """Write a dedented manifest below ``tmp_path`` and return its path."""

    def write(relative: str, content: str = "") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return write
