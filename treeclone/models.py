from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(slots=True)
class DirectoryNode:
    name: str
    skip: bool = False
    children: list[Node] = field(default_factory=list)


@dataclass(slots=True)
class FileNode:
    name: str
    skip: bool = False
    copy_content: bool = False


@dataclass(slots=True)
class SymlinkNode:
    name: str
    target: str
    skip: bool = False


Node = Union[DirectoryNode, FileNode, SymlinkNode]


@dataclass(frozen=True, slots=True)
class ContentKey:
    """Path identity of a node: its name and every ancestor name up to the descriptor root.

    Extraction and rebuild both derive keys through ``for_root``/``child``, so
    a content map written by one pass always resolves in the other.
    """

    segments: tuple[str, ...]

    @classmethod
    def for_root(cls, name: str) -> "ContentKey":
        return cls((name,))

    def child(self, name: str) -> "ContentKey":
        return ContentKey((*self.segments, name))

    @property
    def relative(self) -> str:
        """Path below the descriptor root, used for pattern matching."""
        return "/".join(self.segments[1:])

    def __str__(self) -> str:
        return "/".join(self.segments)


@dataclass(slots=True)
class PathIssue:
    operation: str
    path: str
    message: str
