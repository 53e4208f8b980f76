from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from treeclone.filters import PathFilter, build_path_filter


CONFIG_FILENAME = ".treeclone.json"
DEFAULT_EXCLUDED_DIR_NAMES = ("node_modules",)
DEFAULT_EXCLUDED_EXTENSIONS = (".mp3", ".wav", ".mp4", ".avi", ".mov", ".mkv")


@dataclass(slots=True)
class WalkPolicy:
    excluded_dir_names: frozenset[str] = frozenset(DEFAULT_EXCLUDED_DIR_NAMES)
    excluded_extensions: frozenset[str] = frozenset(DEFAULT_EXCLUDED_EXTENSIONS)
    exclude_hidden: bool = True
    path_filter: PathFilter = field(default_factory=PathFilter)


@dataclass(slots=True)
class TreeCloneConfig:
    excluded_dir_names: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIR_NAMES))
    excluded_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_EXTENSIONS))
    exclude_hidden: bool = True

    def walk_policy(
        self,
        include_patterns: list[str] | tuple[str, ...] | None = None,
        exclude_patterns: list[str] | tuple[str, ...] | None = None,
        *,
        exclude_hidden: bool | None = None,
    ) -> WalkPolicy:
        return WalkPolicy(
            excluded_dir_names=frozenset(self.excluded_dir_names),
            excluded_extensions=frozenset(normalize_extension(ext) for ext in self.excluded_extensions),
            exclude_hidden=self.exclude_hidden if exclude_hidden is None else exclude_hidden,
            path_filter=build_path_filter(include_patterns, exclude_patterns),
        )


def config_path(base_dir: Path | None = None) -> Path:
    return (base_dir or Path.cwd()).resolve() / CONFIG_FILENAME


def normalize_extension(ext: str) -> str:
    value = ext.strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


def _string_list(data: dict[str, Any], key: str, default: list[str], path: Path) -> list[str]:
    value = data.get(key, default)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{path}: `{key}` must be a list of strings")
    return list(value)


def load_config(base_dir: Path | None = None) -> TreeCloneConfig:
    """Load `.treeclone.json`, falling back to defaults when it does not exist."""
    path = config_path(base_dir)
    if not path.exists():
        return TreeCloneConfig()

    with path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Config file is not valid JSON: {path} ({exc})") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")

    defaults = TreeCloneConfig()
    exclude_hidden = data.get("exclude_hidden", defaults.exclude_hidden)
    if not isinstance(exclude_hidden, bool):
        raise ValueError(f"{path}: `exclude_hidden` must be a boolean")

    return TreeCloneConfig(
        excluded_dir_names=_string_list(data, "excluded_dir_names", defaults.excluded_dir_names, path),
        excluded_extensions=[
            normalize_extension(ext)
            for ext in _string_list(data, "excluded_extensions", defaults.excluded_extensions, path)
            if ext.strip()
        ],
        exclude_hidden=exclude_hidden,
    )


def save_config(config: TreeCloneConfig, base_dir: Path | None = None) -> Path:
    path = config_path(base_dir)
    payload = asdict(config)
    payload["excluded_extensions"] = [normalize_extension(ext) for ext in config.excluded_extensions]
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")
    return path
