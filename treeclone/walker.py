from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from treeclone.config import WalkPolicy
from treeclone.models import ContentKey, DirectoryNode, FileNode, Node, PathIssue, SymlinkNode
from treeclone.reporting import record_issue, report_progress

if TYPE_CHECKING:
    from rich.console import Console


@dataclass(slots=True)
class WalkResult:
    root: Node | None
    excluded_paths: list[str] = field(default_factory=list)
    issues: list[PathIssue] = field(default_factory=list)

    @property
    def node_count(self) -> int:
        return _count_nodes(self.root) if self.root is not None else 0


def _count_nodes(node: Node) -> int:
    if isinstance(node, DirectoryNode):
        return 1 + sum(_count_nodes(child) for child in node.children)
    return 1


def _excluded_by_policy(name: str, relative: str, mode: int, policy: WalkPolicy) -> bool:
    if policy.exclude_hidden and name.startswith("."):
        return True
    if policy.path_filter.is_excluded(relative):
        return True
    if stat.S_ISLNK(mode):
        return not policy.path_filter.matches(relative)
    if stat.S_ISDIR(mode):
        return name in policy.excluded_dir_names
    if stat.S_ISREG(mode):
        if os.path.splitext(name)[1].lower() in policy.excluded_extensions:
            return True
        return not policy.path_filter.matches(relative)
    return False


def walk_tree(
    path: Path | str,
    *,
    policy: WalkPolicy | None = None,
    console: "Console | None" = None,
    verbose: bool = False,
) -> WalkResult:
    """Walk ``path`` into a descriptor tree.

    Entries are classified with ``lstat`` so symlinks are recorded as links,
    never followed. Paths that cannot be read are reported and pruned; the
    rest of the walk carries on.
    """
    root_path = Path(os.path.abspath(Path(path).expanduser()))
    policy = policy or WalkPolicy()
    result = WalkResult(root=None)

    def _walk(current: Path, key: ContentKey) -> Node | None:
        try:
            mode = os.lstat(current).st_mode
        except OSError as exc:
            record_issue(result.issues, console, f"reading {current}", current, exc)
            return None

        # Undecodable bytes surface as lone surrogates, which JSON output cannot carry.
        try:
            current.name.encode("utf-8")
        except UnicodeEncodeError:
            error = ValueError("file name is not valid UTF-8")
            record_issue(result.issues, console, f"reading {current}", current, error)
            return None

        is_root = len(key.segments) == 1
        if not is_root and _excluded_by_policy(current.name, key.relative, mode, policy):
            result.excluded_paths.append(key.relative)
            report_progress(console, verbose, f"Excluded: {current}")
            return None

        if stat.S_ISLNK(mode):
            try:
                target = os.readlink(current)
            except OSError as exc:
                record_issue(result.issues, console, f"reading {current}", current, exc)
                return None
            return SymlinkNode(name=current.name, target=target)

        if stat.S_ISDIR(mode):
            try:
                entries = sorted(os.listdir(current))
            except OSError as exc:
                record_issue(result.issues, console, f"reading {current}", current, exc)
                return None
            children = [
                child
                for child in (_walk(current / entry, key.child(entry)) for entry in entries)
                if child is not None
            ]
            return DirectoryNode(name=current.name, children=children)

        if stat.S_ISREG(mode):
            return FileNode(name=current.name)

        # FIFOs, sockets and device nodes have no descriptor representation.
        result.excluded_paths.append(key.relative or current.name)
        report_progress(console, verbose, f"Excluded special file: {current}")
        return None

    result.root = _walk(root_path, ContentKey.for_root(root_path.name))
    return result
