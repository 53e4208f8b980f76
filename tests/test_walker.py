import os
from pathlib import Path

import pytest

from treeclone.config import TreeCloneConfig, WalkPolicy
from treeclone.models import DirectoryNode, FileNode, SymlinkNode
from treeclone.walker import walk_tree


def test_walk_records_kinds_and_sorted_children(sample_tree: Path, descriptor_paths) -> None:
    result = walk_tree(sample_tree)

    assert isinstance(result.root, DirectoryNode)
    assert result.root.name == "proj"
    assert [child.name for child in result.root.children] == ["a.txt", "docs", "link", "src"]
    assert descriptor_paths(result.root) == {
        ".": "directory",
        "a.txt": "file",
        "docs": "directory",
        "docs/guide.md": "file",
        "link": "symlink",
        "src": "directory",
        "src/main.py": "file",
        "src/song.mp3x": "file",
    }
    assert result.issues == []


def test_walk_leaves_start_unmarked(sample_tree: Path) -> None:
    root = walk_tree(sample_tree).root
    assert isinstance(root, DirectoryNode)
    leaf = root.children[0]

    assert isinstance(leaf, FileNode)
    assert leaf.skip is False
    assert leaf.copy_content is False


def test_dependency_cache_directories_are_pruned_at_any_depth(sample_tree: Path, descriptor_paths) -> None:
    result = walk_tree(sample_tree)
    paths = descriptor_paths(result.root)

    assert not any("node_modules" in path for path in paths)
    assert "node_modules" in result.excluded_paths
    assert "src/node_modules" in result.excluded_paths


def test_media_extension_match_is_case_insensitive_and_exact(sample_tree: Path, descriptor_paths) -> None:
    paths = descriptor_paths(walk_tree(sample_tree).root)

    assert "docs/song.MP3" not in paths
    assert paths["src/song.mp3x"] == "file"


def test_hidden_entries_follow_policy(sample_tree: Path, descriptor_paths) -> None:
    hidden_excluded = descriptor_paths(walk_tree(sample_tree).root)
    hidden_included = descriptor_paths(
        walk_tree(sample_tree, policy=WalkPolicy(exclude_hidden=False)).root
    )

    assert ".git" not in hidden_excluded
    assert hidden_included[".git"] == "directory"
    assert hidden_included[".git/config"] == "file"


def test_symlink_target_is_recorded_verbatim(sample_tree: Path) -> None:
    root = walk_tree(sample_tree).root
    assert isinstance(root, DirectoryNode)
    link = next(child for child in root.children if child.name == "link")

    assert isinstance(link, SymlinkNode)
    assert link.target == "../shared/lib"


def test_symlink_to_directory_is_not_followed(tmp_path: Path) -> None:
    (tmp_path / "proj" / "real").mkdir(parents=True)
    (tmp_path / "proj" / "real" / "inner.txt").write_text("x", encoding="utf-8")
    os.symlink("real", tmp_path / "proj" / "alias")

    root = walk_tree(tmp_path / "proj").root
    assert isinstance(root, DirectoryNode)
    alias = next(child for child in root.children if child.name == "alias")

    assert isinstance(alias, SymlinkNode)
    assert alias.target == "real"


def test_walk_root_is_never_pruned_by_policy(tmp_path: Path) -> None:
    root_dir = tmp_path / "node_modules"
    root_dir.mkdir()
    (root_dir / "keep.txt").write_text("x", encoding="utf-8")

    root = walk_tree(root_dir).root

    assert isinstance(root, DirectoryNode)
    assert root.name == "node_modules"
    assert [child.name for child in root.children] == ["keep.txt"]


def test_walk_single_file(tmp_path: Path) -> None:
    target = tmp_path / "notes.txt"
    target.write_text("n", encoding="utf-8")

    root = walk_tree(target).root

    assert root == FileNode(name="notes.txt")


def test_missing_source_reports_issue_and_returns_none(tmp_path: Path) -> None:
    result = walk_tree(tmp_path / "missing")

    assert result.root is None
    assert len(result.issues) == 1
    assert result.issues[0].operation.startswith("reading ")


def test_unreadable_directory_is_pruned_without_aborting_siblings(
    sample_tree: Path, monkeypatch: pytest.MonkeyPatch, descriptor_paths
) -> None:
    real_listdir = os.listdir
    blocked = sample_tree / "docs"

    def fake_listdir(path):
        if Path(path) == blocked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_listdir(path)

    monkeypatch.setattr(os, "listdir", fake_listdir)
    result = walk_tree(sample_tree)
    paths = descriptor_paths(result.root)

    assert "docs" not in paths
    assert paths["a.txt"] == "file"
    assert paths["src/main.py"] == "file"
    assert [issue.path for issue in result.issues] == [str(blocked)]
    assert result.issues[0].message == "Permission denied"


def test_user_patterns_prune_matching_entries(sample_tree: Path, descriptor_paths) -> None:
    policy = TreeCloneConfig().walk_policy(exclude_patterns=["docs/", "*.py"])

    paths = descriptor_paths(walk_tree(sample_tree, policy=policy).root)

    assert "docs" not in paths
    assert "src/main.py" not in paths
    assert paths["src/song.mp3x"] == "file"


def test_include_patterns_keep_directories_for_matching_files(sample_tree: Path, descriptor_paths) -> None:
    policy = TreeCloneConfig().walk_policy(include_patterns=["*.py"])

    paths = descriptor_paths(walk_tree(sample_tree, policy=policy).root)

    assert paths == {
        ".": "directory",
        "docs": "directory",
        "src": "directory",
        "src/main.py": "file",
    }


def test_node_count(sample_tree: Path) -> None:
    assert walk_tree(sample_tree).node_count == 8


def test_non_utf8_name_is_reported_and_pruned(undecodable_tree: Path) -> None:
    result = walk_tree(undecodable_tree)

    assert isinstance(result.root, DirectoryNode)
    assert [child.name for child in result.root.children] == ["good.txt"]
    assert len(result.issues) == 1
    assert result.issues[0].message == "file name is not valid UTF-8"
    assert result.issues[0].operation.startswith("reading ")
