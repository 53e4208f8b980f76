"""JSON wire format for descriptors and content maps.

A descriptor is the node tree written by ``clone`` and read back by
``copy-content`` and ``rebuild``. A content map is a flat object of content
keys to base64 text. Both are pretty-printed so they stay diffable and can be
hand-edited between runs.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from treeclone.models import DirectoryNode, FileNode, Node, SymlinkNode


NODE_TYPES = ("directory", "file", "symlink")
PATH_SEPARATORS = tuple(sep for sep in ("/", os.sep, os.altsep) if sep)


class DescriptorError(ValueError):
    """Raised when a descriptor or content map cannot be interpreted."""


def node_to_dict(node: Node) -> dict[str, Any]:
    match node:
        case DirectoryNode():
            return {
                "name": node.name,
                "type": "directory",
                "skip": node.skip,
                "children": [node_to_dict(child) for child in node.children],
            }
        case FileNode():
            return {
                "name": node.name,
                "type": "file",
                "skip": node.skip,
                "copyContent": node.copy_content,
                "content": None,
            }
        case SymlinkNode():
            return {
                "name": node.name,
                "type": "symlink",
                "skip": node.skip,
                "target": node.target,
            }
        case _:
            raise TypeError(f"Unsupported node: {node!r}")


def _validate_name(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise DescriptorError(f"{where}.name must be a string")
    if not value or value in {".", ".."} or any(sep in value for sep in PATH_SEPARATORS):
        raise DescriptorError(f"{where}.name is not a base name: {value!r}")
    return value


def _optional_bool(data: dict[str, Any], key: str, where: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise DescriptorError(f"{where}.{key} must be a boolean")
    return value


def node_from_dict(data: Any, where: str = "$") -> Node:
    if not isinstance(data, dict):
        raise DescriptorError(f"{where} must be an object")
    if "name" not in data:
        raise DescriptorError(f"{where} is missing required field 'name'")
    if "type" not in data:
        raise DescriptorError(f"{where} is missing required field 'type'")

    name = _validate_name(data["name"], where)
    skip = _optional_bool(data, "skip", where)
    node_type = data["type"]

    if node_type == "directory":
        children = data.get("children")
        if not isinstance(children, list):
            raise DescriptorError(f"{where}.children must be a list")
        return DirectoryNode(
            name=name,
            skip=skip,
            children=[
                node_from_dict(child, f"{where}.children[{index}]")
                for index, child in enumerate(children)
            ],
        )
    if node_type == "file":
        # Bytes live in the content map; a stray inline `content` is ignored.
        return FileNode(name=name, skip=skip, copy_content=_optional_bool(data, "copyContent", where))
    if node_type == "symlink":
        target = data.get("target")
        if not isinstance(target, str):
            raise DescriptorError(f"{where}.target must be a string")
        return SymlinkNode(name=name, skip=skip, target=target)

    raise DescriptorError(f"{where}.type must be one of {', '.join(NODE_TYPES)}, got {node_type!r}")


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        try:
            return json.load(fh)
        except json.JSONDecodeError as exc:
            raise DescriptorError(f"{path} is not valid JSON: {exc}") from exc


def _write_json(path: Path, payload: Any) -> Path:
    # Encode up front so a payload that cannot be written never truncates an existing file.
    data = (json.dumps(payload, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def load_descriptor(path: Path) -> Node:
    return node_from_dict(_read_json(path))


def save_descriptor(node: Node, path: Path) -> Path:
    return _write_json(path, node_to_dict(node))


def load_content_map(path: Path) -> dict[str, str]:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DescriptorError(f"{path} must contain a JSON object")
    for key, value in data.items():
        if not isinstance(value, str):
            raise DescriptorError(f"{path}: content for {key!r} must be a base64 string")
    return data


def save_content_map(content_map: dict[str, str], path: Path) -> Path:
    return _write_json(path, content_map)
