"""Streaming tar/gzip archive engine.

Archives are gzip-compressed PAX tar streams. The first entry is a JSON hash
index (``<source>/npmcache.index``) mapping every regular file's relative path
to its base64-encoded BLAKE3 digest. Extraction uses the index to leave files
whose on-disk content already matches untouched, which keeps repeated
extractions of a slowly changing tree cheap.

Entry names are relative to a root directory (the current working directory
unless given), so packing ``node_modules`` yields entries such as
``node_modules/left-pad/index.js`` that extract back to the same place.
"""

import io
import json
import os
import posixpath
import shutil
import stat
import tarfile
import time
from pathlib import Path
from typing import BinaryIO

from .errors import ArchiveError, InvalidPathError, UnsupportedEntryError
from .filetree import relative_path, walk_tree
from .hashing import CHUNK_SIZE, blake3_file, decode_digest, encode_digest, hash_tree
from .models import TreeItem, UnpackResult
from .pathpolicy import PACK_POLICY, UNPACK_POLICY, PathPolicy, is_within

INDEX_NAME = "npmcache.index"


# ============================================================================
# Packing
# ============================================================================


def _index_entry(name: str, hashes: dict[str, bytes]) -> tuple[tarfile.TarInfo, io.BytesIO]:
    payload = json.dumps(
        {path: encode_digest(digest) for path, digest in hashes.items()},
        sort_keys=True,
    ).encode("utf-8")
    info = tarfile.TarInfo(name)
    info.size = len(payload)
    info.mode = 0o644
    info.mtime = int(time.time())
    return info, io.BytesIO(payload)


def _tarinfo(item: TreeItem, linkname: str | None = None) -> tarfile.TarInfo:
    info = tarfile.TarInfo(item.path)
    info.mode = item.mode
    info.mtime = item.mtime
    if item.is_dir:
        info.type = tarfile.DIRTYPE
    elif item.is_symlink:
        info.type = tarfile.SYMTYPE
        info.linkname = linkname or ""
    else:
        info.type = tarfile.REGTYPE
        info.size = item.size
    return info


class _ArchiveWriter:
    """Writes tree items into an open tar stream, collecting warnings."""

    def __init__(self, tar: tarfile.TarFile, policy: PathPolicy, root: Path):
        self.tar = tar
        self.policy = policy
        self.root = root
        self.warnings: list[str] = []

    def write(self, item: TreeItem) -> None:
        if item.is_other:
            self.warnings.append(f"Ignored unknown path: {item.path}")
            return

        if self.policy.is_bad(item.path):
            raise InvalidPathError(f"contains bad characters: {item.path}")

        if item.is_symlink:
            self._write_link(item)
        elif item.is_dir:
            self.tar.addfile(_tarinfo(item))
        else:
            with open(item.full_path, "rb") as f:
                self.tar.addfile(_tarinfo(item), f)

    def _write_link(self, item: TreeItem) -> None:
        link = Path(os.readlink(item.full_path)).as_posix()
        warning = self.policy.check_link_target(item.path, link, self.root)
        if warning:
            self.warnings.append(warning)

        target = item.full_path.parent / link
        if not os.path.exists(target):
            self.warnings.append(f"Skipped non-existent symlink: {item.path} -> {link}")
            return

        self.tar.addfile(_tarinfo(item, link))


def pack(
    destination: Path | str,
    source: Path | str,
    policy: PathPolicy = PACK_POLICY,
    *,
    root: Path | str | None = None,
) -> list[str]:
    """Create a gzip-compressed tar archive of ``source`` at ``destination``.

    Entries of kind "other" and dangling symlinks are skipped with a warning.
    Paths and link targets are checked against ``policy``.

    Args:
        destination: Archive file to create.
        source: Directory to archive; must lie inside ``root``.
        policy: Path policy for entry names and symlink targets.
        root: Directory entry names are relative to (default: cwd).

    Returns:
        Warnings for skipped or risky entries.

    Raises:
        ArchiveError: If ``source`` is not a directory.
        InvalidPathError: If a path or symlink target violates ``policy``.
    """
    source = Path(source)
    root = Path(root) if root is not None else Path.cwd()
    destination = Path(destination)

    if not source.is_dir():
        raise ArchiveError(f"source directory does not exist: {source}")

    tree = walk_tree(source, root)
    hashes = hash_tree(tree)
    index_name = posixpath.normpath(posixpath.join(relative_path(source, root), INDEX_NAME))

    try:
        with tarfile.open(destination, "w:gz", format=tarfile.PAX_FORMAT) as tar:
            tar.addfile(*_index_entry(index_name, hashes))
            writer = _ArchiveWriter(tar, policy, root.absolute())
            for item in tree:
                if item.path == index_name:
                    continue
                writer.write(item)
    except BaseException:
        destination.unlink(missing_ok=True)
        raise

    return writer.warnings


# ============================================================================
# Unpacking
# ============================================================================


def _read_index(tar: tarfile.TarFile, member: tarfile.TarInfo) -> dict[str, bytes]:
    f = tar.extractfile(member)
    if f is None:
        raise ArchiveError(f"hash index is not a regular file: {member.name}")
    try:
        raw = json.load(f)
    except ValueError as e:
        raise ArchiveError(f"hash index is corrupt: {e}") from e
    if not isinstance(raw, dict):
        raise ArchiveError("hash index is corrupt: expected a JSON object")
    try:
        return {path: decode_digest(digest) for path, digest in raw.items()}
    except (TypeError, ValueError) as e:
        raise ArchiveError(f"hash index is corrupt: {e}") from e


def _remove_existing(path: Path) -> None:
    """Remove whatever occupies ``path`` without following symlinks."""
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


def _sync_symlink(target: str, dest: Path) -> None:
    """Ensure ``dest`` is a symlink pointing at ``target``."""
    if dest.is_symlink():
        if os.readlink(dest) == target:
            return
        dest.unlink()
    elif os.path.lexists(dest):
        _remove_existing(dest)
    os.symlink(target, dest)


class _ArchiveReader:
    """Materializes tar members below ``root``."""

    def __init__(self, tar: tarfile.TarFile, policy: PathPolicy, root: Path):
        self.tar = tar
        self.policy = policy
        self.root = root
        self.real_root = os.path.realpath(root)
        self.index: dict[str, bytes] = {}
        self.result = UnpackResult()
        # (path, mode, mtime); applied last-in first-out once extraction is done
        self.pending_dirs: list[tuple[Path, int, float]] = []

    def extract(self, member: tarfile.TarInfo) -> None:
        name = posixpath.normpath(member.name)
        if self.policy.is_bad(name):
            raise InvalidPathError(f"contains bad characters: {member.name}")
        if name == "." and member.isdir():
            return

        if member.isdir():
            self._extract_dir(member, self._destination(name))
        elif member.isreg():
            self._extract_file(member, name, self._destination(name))
        elif member.issym():
            self._extract_symlink(member, name, self._destination(name))
        else:
            raise UnsupportedEntryError(
                f"unsupported file type {member.type!r} for entry {member.name}"
            )

    def _destination(self, name: str) -> Path:
        """Resolve symlinks in the parent of ``name`` and confirm it stays below the root."""
        parent = os.path.realpath(posixpath.dirname(posixpath.join(self.root.as_posix(), name)))
        if not is_within(parent, self.real_root):
            raise InvalidPathError(f"entry resolves outside root through a symlink: {name}")
        return Path(parent) / posixpath.basename(name)

    def _extract_dir(self, member: tarfile.TarInfo, dest: Path) -> None:
        if os.path.lexists(dest) and (dest.is_symlink() or not dest.is_dir()):
            _remove_existing(dest)
        dest.mkdir(parents=True, exist_ok=True)
        self.pending_dirs.append((dest, member.mode, member.mtime))

    def _extract_file(self, member: tarfile.TarInfo, name: str, dest: Path) -> None:
        expected = self.index.get(name)
        if expected is not None and dest.is_file() and not dest.is_symlink():
            if blake3_file(dest) == expected:
                self.result.skipped.append(name)
                self.result.manifest.append(name)
                return

        if os.path.lexists(dest):
            _remove_existing(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)

        src = self.tar.extractfile(member)
        if src is None:
            raise ArchiveError(f"cannot read content of {member.name}")
        with open(dest, "wb") as f:
            shutil.copyfileobj(src, f, CHUNK_SIZE)

        os.chmod(dest, stat.S_IMODE(member.mode))
        os.utime(dest, (time.time(), member.mtime))
        self.result.written.append(name)
        self.result.manifest.append(name)

    def _extract_symlink(self, member: tarfile.TarInfo, name: str, dest: Path) -> None:
        target = member.linkname
        warning = self.policy.check_link_target(name, target, self.root)
        real_name = posixpath.relpath(dest.as_posix(), self.real_root)
        if real_name != name:
            warning = self.policy.check_link_target(real_name, target, self.real_root) or warning
        if warning:
            self.result.warnings.append(warning)

        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            _sync_symlink(target, dest)
        except OSError as e:
            raise ArchiveError(f"syncing symlink {name} -> {target} failed: {e}") from e
        # symlink mtimes are left at the platform default
        self.result.manifest.append(name)

    def restore_directories(self) -> None:
        now = time.time()
        while self.pending_dirs:
            path, mode, mtime = self.pending_dirs.pop()
            if path.is_symlink() or not path.is_dir():
                continue
            try:
                os.chmod(path, stat.S_IMODE(mode))
                os.utime(path, (now, mtime))
            except OSError as e:
                self.result.warnings.append(f"Could not restore metadata for directory {path}: {e}")


def unpack(
    stream: BinaryIO,
    policy: PathPolicy = UNPACK_POLICY,
    *,
    root: Path | str | None = None,
) -> UnpackResult:
    """Extract a gzip-compressed tar stream below ``root``.

    Regular files whose current content matches the digest in the archive's
    hash index are not rewritten but are still listed in the manifest.

    Args:
        stream: Readable byte stream; it is consumed sequentially.
        policy: Path policy for entry names and symlink targets.
        root: Extraction root (default: cwd).

    Returns:
        Manifest of materialized files and symlinks in stream order,
        warnings, and the skipped/written partition of regular files.

    Raises:
        InvalidPathError: If an entry name or symlink target violates ``policy``.
        UnsupportedEntryError: For hard links, devices and other entry types.
        ArchiveError: For corrupt archives.
    """
    root = (Path(root) if root is not None else Path.cwd()).absolute()

    try:
        with tarfile.open(fileobj=stream, mode="r|gz") as tar:
            reader = _ArchiveReader(tar, policy, root)
            for position, member in enumerate(tar):
                if position == 0:
                    if member.isreg() and posixpath.basename(member.name) == INDEX_NAME:
                        reader.index = _read_index(tar, member)
                        continue
                    reader.result.warnings.append(
                        "Archive has no hash index, all files will be rewritten"
                    )
                reader.extract(member)
            reader.restore_directories()
    except (tarfile.TarError, EOFError) as e:
        raise ArchiveError(f"corrupt archive: {e}") from e

    return reader.result
