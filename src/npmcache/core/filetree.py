"""Directory walking and manifest-based reconciliation."""

import os
import stat
from collections.abc import Iterable, Iterator
from pathlib import Path

from .errors import InvalidPathError
from .models import EntryKind, TreeItem


def _kind_of(mode: int) -> EntryKind:
    if stat.S_ISREG(mode):
        return EntryKind.REGULAR
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    return EntryKind.OTHER


def relative_path(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` with forward slashes.

    Raises:
        InvalidPathError: If ``path`` is not inside ``root``.
    """
    rel = os.path.relpath(os.path.abspath(path), os.path.abspath(root))
    if rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
        raise InvalidPathError(f"{path} is outside of {root}")
    return Path(rel).as_posix()


def _make_item(full_path: Path, root: Path) -> TreeItem:
    st = full_path.lstat()
    return TreeItem(
        path=relative_path(full_path, root),
        full_path=full_path,
        kind=_kind_of(st.st_mode),
        mode=stat.S_IMODE(st.st_mode),
        size=st.st_size,
        mtime=st.st_mtime,
    )


def _walk(directory: Path, root: Path) -> Iterator[TreeItem]:
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        item = _make_item(Path(entry.path), root)
        yield item
        if item.is_dir:
            yield from _walk(item.full_path, root)


def walk_tree(source: Path | str, root: Path | str | None = None) -> list[TreeItem]:
    """Enumerate ``source`` recursively, top-down and in lexical order.

    Symlinks are reported as symlinks and never followed. ``source`` itself is
    the first item. Item paths are relative to ``root`` (default: the current
    working directory).
    """
    source = Path(source)
    root = Path(root) if root is not None else Path.cwd()
    top = _make_item(source, root)
    items = [top]
    if top.is_dir:
        items.extend(_walk(source, root))
    return items


def directory_exists(path: Path | str) -> bool:
    """Return True if ``path`` exists and is a directory."""
    return Path(path).is_dir()


def reconcile(
    directory: Path | str, manifest: Iterable[str], root: Path | str | None = None
) -> list[str]:
    """Delete regular files and symlinks under ``directory`` missing from ``manifest``.

    Manifest entries are paths relative to ``root`` (default: the current
    working directory), as produced by extraction. Directories and other
    entry types are left alone.

    Returns:
        Relative paths of the removed entries, in walk order.
    """
    directory = Path(directory)
    if not directory_exists(directory):
        return []

    keep = set(manifest)
    removed: list[str] = []
    for item in walk_tree(directory, root):
        if not (item.is_regular or item.is_symlink):
            continue
        if item.path in keep:
            continue
        item.full_path.unlink()
        removed.append(item.path)
    return removed
