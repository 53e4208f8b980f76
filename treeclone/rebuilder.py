from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable

from treeclone.models import ContentKey, DirectoryNode, FileNode, Node, PathIssue, SymlinkNode
from treeclone.reporting import record_issue, report_progress

if TYPE_CHECKING:
    from rich.console import Console


ConfirmOverwrite = Callable[[Path], Awaitable[bool]]


@dataclass(slots=True)
class RebuildResult:
    created_dirs: list[str] = field(default_factory=list)
    created_files: list[str] = field(default_factory=list)
    written_files: list[str] = field(default_factory=list)
    kept_files: list[str] = field(default_factory=list)
    created_symlinks: list[str] = field(default_factory=list)
    skipped_paths: list[str] = field(default_factory=list)
    issues: list[PathIssue] = field(default_factory=list)


def _decode(content_map: dict[str, str], key: ContentKey) -> bytes | None:
    encoded = content_map.get(str(key))
    if encoded is None:
        return None
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 content for {key}: {exc}") from exc


def _ensure_symlink(target: str, path: Path) -> None:
    if path.is_symlink():
        if os.readlink(path) == target:
            return
        path.unlink()
    elif path.exists():
        raise FileExistsError(f"Refusing to replace existing non-symlink entry: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(target, path)


async def rebuild_tree(
    node: Node,
    destination: Path | str,
    content_map: dict[str, str] | None = None,
    *,
    overwrite: bool = False,
    confirm: ConfirmOverwrite | None = None,
    console: "Console | None" = None,
    verbose: bool = False,
) -> RebuildResult:
    """Recreate ``node`` under ``destination``.

    The descriptor root lands at ``destination / node.name``. Files that
    already exist are rewritten when ``overwrite`` is set; otherwise
    ``confirm`` is awaited for each one, and without it they are kept.
    Failures are recorded per node and never abort the remaining tree.
    """
    content_map = content_map or {}
    result = RebuildResult()

    async def _write_existing(path: Path, key: ContentKey) -> None:
        data = _decode(content_map, key)
        if data is None:
            # Nothing to write; the existing file stays as it is.
            result.kept_files.append(str(path))
            return
        if not overwrite:
            if confirm is None or not await confirm(path):
                result.kept_files.append(str(path))
                report_progress(console, verbose, f"Skipped overwriting file at {path}")
                return
        path.write_bytes(data)
        result.written_files.append(str(path))
        report_progress(console, verbose, f"File overwritten with content at {path}")

    def _write_new(path: Path, key: ContentKey) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        result.created_files.append(str(path))
        data = _decode(content_map, key)
        if data is None:
            report_progress(console, verbose, f"File created: {path}")
            return
        path.write_bytes(data)
        result.written_files.append(str(path))
        report_progress(console, verbose, f"File created with content at {path}")

    async def _build(current: Node, path: Path, key: ContentKey) -> None:
        if current.skip:
            result.skipped_paths.append(str(path))
            return

        match current:
            case DirectoryNode():
                existed = path.is_dir()
                try:
                    path.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    record_issue(result.issues, console, f"creating directory {path}", path, exc)
                    return
                if not existed:
                    result.created_dirs.append(str(path))
                    report_progress(console, verbose, f"Directory created: {path}")
                for child in current.children:
                    await _build(child, path / child.name, key.child(child.name))
            case FileNode():
                try:
                    if path.is_symlink():
                        raise FileExistsError(f"Refusing to write through existing symlink: {path}")
                    if os.path.lexists(path):
                        await _write_existing(path, key)
                    else:
                        _write_new(path, key)
                except (OSError, ValueError) as exc:
                    record_issue(result.issues, console, f"writing file {path}", path, exc)
            case SymlinkNode():
                try:
                    _ensure_symlink(current.target, path)
                except OSError as exc:
                    record_issue(result.issues, console, f"creating symlink {path}", path, exc)
                    return
                result.created_symlinks.append(str(path))
                report_progress(
                    console, verbose, f"Symlink created at {path} pointing to {current.target}"
                )
            case _:
                raise TypeError(f"Unsupported node: {current!r}")

    root_path = Path(destination).expanduser() / node.name
    await _build(node, root_path, ContentKey.for_root(node.name))
    return result
