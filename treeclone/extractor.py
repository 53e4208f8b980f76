from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from treeclone.models import ContentKey, DirectoryNode, FileNode, Node, PathIssue, SymlinkNode
from treeclone.reporting import record_issue, report_progress

if TYPE_CHECKING:
    from rich.console import Console


@dataclass(slots=True)
class ExtractResult:
    content_map: dict[str, str] = field(default_factory=dict)
    copied_paths: list[str] = field(default_factory=list)
    issues: list[PathIssue] = field(default_factory=list)


def extract_contents(
    node: Node,
    source_root: Path | str,
    *,
    console: "Console | None" = None,
    verbose: bool = False,
) -> ExtractResult:
    """Read the bytes of every file marked ``copy_content`` into a content map.

    ``source_root`` is the directory (or file) that was walked to produce
    ``node``. Skipped nodes and their subtrees are not visited.
    """
    result = ExtractResult()

    def _visit(current: Node, path: Path, key: ContentKey) -> None:
        if current.skip:
            return

        match current:
            case DirectoryNode():
                for child in current.children:
                    _visit(child, path / child.name, key.child(child.name))
            case FileNode():
                if not current.copy_content:
                    return
                try:
                    data = path.read_bytes()
                except OSError as exc:
                    record_issue(result.issues, console, f"copying content from {path}", path, exc)
                    return
                result.content_map[str(key)] = base64.b64encode(data).decode("ascii")
                result.copied_paths.append(str(key))
                report_progress(console, verbose, f"Copied content from {path} to content map.")
            case SymlinkNode():
                # The link target already lives in the descriptor.
                return
            case _:
                raise TypeError(f"Unsupported node: {current!r}")

    _visit(node, Path(source_root).expanduser(), ContentKey.for_root(node.name))
    return result
