from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import PurePosixPath

from treeclone.models import ContentKey, DirectoryNode, FileNode, Node, SymlinkNode


def _normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _match_pattern(path: str, pattern: str) -> bool:
    path_obj = PurePosixPath(path)
    norm = _normalize_pattern(pattern)
    if not norm or not path:
        return False
    # Support both root-anchored and recursive matching styles.
    return (
        path_obj.match(norm)
        or path_obj.match(f"**/{norm}")
        or (norm.endswith("/") and (path + "/").startswith(norm))
    )


@dataclass(slots=True)
class PathFilter:
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.include_patterns and not self.exclude_patterns

    def matches(self, path: str) -> bool:
        if self.include_patterns and not any(
            _match_pattern(path, pattern) for pattern in self.include_patterns
        ):
            return False
        if self.is_excluded(path):
            return False
        return True

    def is_excluded(self, path: str) -> bool:
        return any(_match_pattern(path, pattern) for pattern in self.exclude_patterns)


def build_path_filter(
    include_patterns: list[str] | tuple[str, ...] | None = None,
    exclude_patterns: list[str] | tuple[str, ...] | None = None,
) -> PathFilter:
    include = tuple(_normalize_pattern(pattern) for pattern in (include_patterns or []) if pattern)
    exclude = tuple(_normalize_pattern(pattern) for pattern in (exclude_patterns or []) if pattern)
    return PathFilter(include_patterns=include, exclude_patterns=exclude)


def mark_nodes(
    root: Node,
    path_filter: PathFilter,
    *,
    copy_content: bool | None = None,
    skip: bool | None = None,
) -> tuple[Node, list[str]]:
    """Return a copy of ``root`` with flags set on every node the filter matches.

    Paths are matched relative to the descriptor root, so the root itself is
    never matched. ``copy_content`` only applies to file nodes.
    """
    matched: list[str] = []

    def _mark(node: Node, key: ContentKey) -> Node:
        updated = node
        relative = key.relative
        if relative and path_filter.matches(relative):
            changes: dict[str, bool] = {}
            if skip is not None:
                changes["skip"] = skip
            if copy_content is not None and isinstance(node, FileNode):
                changes["copy_content"] = copy_content
            if changes:
                updated = replace(node, **changes)
                matched.append(relative)

        match updated:
            case DirectoryNode():
                return replace(
                    updated,
                    children=[_mark(child, key.child(child.name)) for child in updated.children],
                )
            case FileNode() | SymlinkNode():
                return updated
            case _:
                raise TypeError(f"Unsupported node: {updated!r}")

    return _mark(root, ContentKey.for_root(root.name)), matched
