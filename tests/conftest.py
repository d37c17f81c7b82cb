from __future__ import annotations

import textwrap
from pathlib import Path

import pytest


def _write_file(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip("\n"))
    return path


@pytest.fixture
def write_tree(tmp_path: Path):
    """Write ``{relative path: source}`` under tmp_path and return tmp_path."""

    def _write(files: dict[str, str]) -> Path:
        for rel, text in files.items():
            _write_file(tmp_path / rel, text)
        return tmp_path

    return _write
