"""Core data models for npmcache."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class EntryKind(Enum):
    """Classification of a filesystem entry."""

    REGULAR = "regular"
    SYMLINK = "symlink"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class TreeItem:
    """One entry of a walked directory tree.

    ``path`` is relative to the tree root and always uses forward slashes;
    ``full_path`` is where the entry lives on disk.
    """

    path: str
    full_path: Path
    kind: EntryKind
    mode: int
    size: int
    mtime: float

    @property
    def is_regular(self) -> bool:
        return self.kind is EntryKind.REGULAR

    @property
    def is_symlink(self) -> bool:
        return self.kind is EntryKind.SYMLINK

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_other(self) -> bool:
        return self.kind is EntryKind.OTHER


@dataclass(slots=True)
class UnpackResult:
    """Outcome of extracting an archive."""

    manifest: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    written: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RunSummary:
    """Summary of one cache run."""

    cache_key: str
    hit_backend: str | None = None
    extracted: bool = False
    installed: bool = False
    populated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def cache_hit(self) -> bool:
        return self.hit_backend is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "cache_key": self.cache_key,
            "cache_hit": self.cache_hit,
            "hit_backend": self.hit_backend,
            "extracted": self.extracted,
            "installed": self.installed,
            "populated": list(self.populated),
            "removed": len(self.removed),
            "warnings": list(self.warnings),
        }
