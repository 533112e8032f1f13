"""Path policy shared by the archive packer and unpacker.

A path is "bad" when it could escape the extraction root or would be hazardous
on another platform: shell and Windows filesystem metacharacters, control
characters, absolute paths, ``..`` segments and reserved Windows device names.
Archives travel between hosts, so these checks apply even on POSIX systems.
"""

import posixpath
from dataclasses import dataclass, replace
from pathlib import Path

from .errors import InvalidPathError

BAD_CHARACTERS = frozenset('<>:"*?\\|!@#$%^&()+={}[],`~') | frozenset(chr(c) for c in range(0x20))

RESERVED_DEVICE_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{n}" for n in range(1, 10)]
    + [f"LPT{n}" for n in range(1, 10)]
)


@dataclass(frozen=True, slots=True)
class PathPolicy:
    """Permissiveness profile consulted on every path decision.

    Attributes:
        allow_double_dot: Accept ``..`` path segments.
        allow_absolute_paths: Accept paths and link targets starting with ``/``.
        allow_links_outside_root: Accept symlinks resolving outside the root
            (reported as a warning instead of an error).
        permitted_characters: Characters removed from the bad-character set.
    """

    allow_double_dot: bool = False
    allow_absolute_paths: bool = False
    allow_links_outside_root: bool = False
    permitted_characters: str = ""

    def with_permitted_characters(self, characters: str) -> "PathPolicy":
        return replace(self, permitted_characters=characters)

    def has_bad_characters(self, path: str) -> bool:
        if path.startswith(" "):
            return True
        return any(c in BAD_CHARACTERS and c not in self.permitted_characters for c in path)

    def is_bad(self, path: str) -> bool:
        """Return True if ``path`` must be rejected under this policy."""
        if not path:
            return True
        if self.has_bad_characters(path):
            return True
        if path.startswith("/") and not self.allow_absolute_paths:
            return True
        segments = path.split("/")
        if not self.allow_double_dot and ".." in segments:
            return True
        return any(segment.upper() in RESERVED_DEVICE_NAMES for segment in segments)

    def check_link_target(self, link_path: str, target: str, root: Path | str) -> str | None:
        """Validate the target of symlink ``link_path`` against ``root``.

        ``link_path`` is relative to ``root``. Relative targets resolve against
        the directory containing the link; resolution is lexical.

        Returns:
            A warning message when the link is permitted but risky, else None.

        Raises:
            InvalidPathError: If the target is not acceptable.
        """
        if not target:
            raise InvalidPathError(f"symlink with empty target: {link_path}")

        # ".." in link targets is judged by root containment below
        if replace(self, allow_double_dot=True, allow_absolute_paths=True).is_bad(target):
            raise InvalidPathError(f"contains bad characters: {link_path} -> {target}")

        warning = None
        if target.startswith("/"):
            if not self.allow_absolute_paths:
                raise InvalidPathError(f"symlink with absolute path: {link_path} -> {target}")
            warning = f"Symlink with absolute target: {link_path} -> {target}"

        root_str = posixpath.normpath(Path(root).as_posix())
        link_dir = posixpath.dirname(posixpath.join(root_str, link_path))
        resolved = posixpath.normpath(posixpath.join(link_dir, target))
        if not is_within(resolved, root_str):
            if not self.allow_links_outside_root:
                raise InvalidPathError(f"symlink points outside root: {link_path} -> {target}")
            warning = f"Symlink points outside root: {link_path} -> {target}"
        return warning


def is_within(path: str, root: str) -> bool:
    """Return True if normalized ``path`` equals ``root`` or lies beneath it."""
    root = root.rstrip("/") or "/"
    if path == root:
        return True
    prefix = root if root.endswith("/") else f"{root}/"
    return path.startswith(prefix)


def is_bad(path: str, policy: PathPolicy) -> bool:
    """Return True if ``path`` is unacceptable under ``policy``."""
    return policy.is_bad(path)


PACK_POLICY = PathPolicy(allow_double_dot=True)
UNPACK_POLICY = PathPolicy()
