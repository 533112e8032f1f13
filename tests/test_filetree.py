"""Tests for tree walking and reconciliation."""

import os

import pytest

from npmcache.core import EntryKind, InvalidPathError, directory_exists, reconcile, walk_tree


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "root"
    (root / "mods" / "b").mkdir(parents=True)
    (root / "mods" / "a").mkdir()
    (root / "mods" / "z.txt").write_text("z")
    (root / "mods" / "a" / "one.js").write_text("1")
    (root / "mods" / "b" / "two.js").write_text("2")
    (root / "mods" / "link.js").symlink_to("a/one.js")
    return root


def test_walk_is_top_down_and_sorted(tree):
    paths = [item.path for item in walk_tree(tree / "mods", tree)]
    assert paths == [
        "mods",
        "mods/a",
        "mods/a/one.js",
        "mods/b",
        "mods/b/two.js",
        "mods/link.js",
        "mods/z.txt",
    ]


def test_walk_classifies_entries(tree):
    kinds = {item.path: item.kind for item in walk_tree(tree / "mods", tree)}
    assert kinds["mods"] is EntryKind.DIRECTORY
    assert kinds["mods/a/one.js"] is EntryKind.REGULAR
    assert kinds["mods/link.js"] is EntryKind.SYMLINK


def test_walk_does_not_follow_symlinked_directories(tree):
    (tree / "mods" / "dirlink").symlink_to("a")
    items = {item.path: item for item in walk_tree(tree / "mods", tree)}
    assert items["mods/dirlink"].is_symlink
    assert "mods/dirlink/one.js" not in items


def test_walk_records_metadata(tree):
    target = tree / "mods" / "z.txt"
    os.chmod(target, 0o640)
    os.utime(target, (1_600_000_000, 1_600_000_000))
    item = next(i for i in walk_tree(tree / "mods", tree) if i.path == "mods/z.txt")
    assert item.mode == 0o640
    assert item.size == 1
    assert item.mtime == 1_600_000_000
    assert item.full_path == target


def test_walk_reports_fifo_as_other(tree):
    if not hasattr(os, "mkfifo"):
        pytest.skip("no FIFOs on this platform")
    os.mkfifo(tree / "mods" / "pipe")
    items = {item.path: item for item in walk_tree(tree / "mods", tree)}
    assert items["mods/pipe"].is_other


def test_walk_defaults_to_cwd(tree, monkeypatch):
    monkeypatch.chdir(tree)
    assert walk_tree("mods")[0].path == "mods"


def test_walk_rejects_source_outside_root(tree, tmp_path):
    with pytest.raises(InvalidPathError):
        walk_tree(tmp_path, tree)


def test_reconcile_removes_only_extraneous_files(tree):
    manifest = ["mods/a/one.js", "mods/b/two.js", "mods/link.js"]
    removed = reconcile(tree / "mods", manifest, tree)

    assert removed == ["mods/z.txt"]
    assert not (tree / "mods" / "z.txt").exists()
    assert (tree / "mods" / "a" / "one.js").exists()


def test_reconcile_removes_symlinks_not_their_targets(tree):
    removed = reconcile(tree / "mods", ["mods/a/one.js", "mods/b/two.js", "mods/z.txt"], tree)

    assert removed == ["mods/link.js"]
    assert not os.path.lexists(tree / "mods" / "link.js")
    assert (tree / "mods" / "a" / "one.js").exists()


def test_reconcile_keeps_directories(tree):
    removed = reconcile(tree / "mods", [], tree)

    assert sorted(removed) == ["mods/a/one.js", "mods/b/two.js", "mods/link.js", "mods/z.txt"]
    assert (tree / "mods" / "a").is_dir()
    assert (tree / "mods" / "b").is_dir()


def test_reconcile_matches_whole_paths_not_prefixes(tree):
    removed = reconcile(tree / "mods", ["mods/a", "mods/b/two.js", "mods/link.js", "mods/z"], tree)
    assert sorted(removed) == ["mods/a/one.js", "mods/z.txt"]


def test_reconcile_missing_directory(tmp_path):
    assert reconcile(tmp_path / "missing", ["x"], tmp_path) == []


def test_directory_exists(tree):
    assert directory_exists(tree / "mods")
    assert not directory_exists(tree / "mods" / "z.txt")
    assert not directory_exists(tree / "nope")
