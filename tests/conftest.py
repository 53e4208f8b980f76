"""Shared test fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable

import pytest

from treeclone.models import DirectoryNode, FileNode, Node, SymlinkNode


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """Build a small project tree under ``tmp_path/src/proj``.

    proj/
    ├── .git/config
    ├── a.txt
    ├── docs/
    │   ├── guide.md
    │   └── song.MP3
    ├── link -> ../shared/lib
    ├── node_modules/pkg/index.js
    └── src/
        ├── main.py
        ├── node_modules/x.js
        └── song.mp3x
    """
    root = tmp_path / "src" / "proj"
    (root / ".git").mkdir(parents=True)
    (root / ".git" / "config").write_text("[core]\n", encoding="utf-8")
    (root / "a.txt").write_text("alpha\n", encoding="utf-8")
    (root / "docs").mkdir()
    (root / "docs" / "guide.md").write_text("# Guide\n", encoding="utf-8")
    (root / "docs" / "song.MP3").write_bytes(b"ID3")
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "node_modules" / "pkg" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    (root / "src" / "node_modules").mkdir(parents=True)
    (root / "src" / "node_modules" / "x.js").write_text("x\n", encoding="utf-8")
    (root / "src" / "main.py").write_text("print('hi')\n", encoding="utf-8")
    (root / "src" / "song.mp3x").write_bytes(b"not media")
    os.symlink("../shared/lib", root / "link")
    return root


@pytest.fixture
def undecodable_tree(tmp_path: Path) -> Path:
    """A directory holding ``good.txt`` and a file whose name is not valid UTF-8."""
    if sys.getfilesystemencoding().lower() not in {"utf-8", "utf8"}:
        pytest.skip("filesystem encoding is not UTF-8")
    root = tmp_path / "names"
    root.mkdir()
    (root / "good.txt").write_text("ok\n", encoding="utf-8")
    try:
        with open(os.path.join(os.fsencode(root), b"bad\xff.txt"), "wb") as fh:
            fh.write(b"x")
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 names")
    return root


def _node_kind(node: Node) -> str:
    if isinstance(node, DirectoryNode):
        return "directory"
    if isinstance(node, FileNode):
        return "file"
    if isinstance(node, SymlinkNode):
        return "symlink"
    raise TypeError(node)


def _descriptor_paths(node: Node, prefix: str = "") -> dict[str, str]:
    paths = {prefix or ".": _node_kind(node)}
    if isinstance(node, DirectoryNode):
        for child in node.children:
            child_prefix = f"{prefix}/{child.name}" if prefix else child.name
            paths.update(_descriptor_paths(child, child_prefix))
    return paths


def _disk_paths(root: Path) -> dict[str, str]:
    paths = {".": "directory"}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in [*dirnames, *filenames]:
            path = Path(dirpath) / name
            relative = path.relative_to(root).as_posix()
            if path.is_symlink():
                paths[relative] = "symlink"
            elif path.is_dir():
                paths[relative] = "directory"
            else:
                paths[relative] = "file"
    return paths


@pytest.fixture
def descriptor_paths() -> Callable[[Node], dict[str, str]]:
    """Map each node's path below the descriptor root to its kind."""
    return _descriptor_paths


@pytest.fixture
def disk_paths() -> Callable[[Path], dict[str, str]]:
    """Map each entry's path below ``root`` to its kind, without following symlinks."""
    return _disk_paths
