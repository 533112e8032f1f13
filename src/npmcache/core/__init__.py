"""Core domain logic for npmcache."""

from .archive import INDEX_NAME, pack, unpack
from .config import NpmCacheConfig
from .errors import (
    ArchiveError,
    CleanupError,
    CommandError,
    ConfigError,
    InvalidPathError,
    NpmCacheError,
    PostInstallError,
    StageError,
    UnsupportedEntryError,
)
from .filetree import directory_exists, reconcile, walk_tree
from .keys import create_cache_key
from .models import EntryKind, RunSummary, TreeItem, UnpackResult
from .pathpolicy import PACK_POLICY, UNPACK_POLICY, PathPolicy, is_bad
from .service import CacheService

__all__ = [
    "INDEX_NAME",
    "PACK_POLICY",
    "UNPACK_POLICY",
    "ArchiveError",
    "CacheService",
    "CleanupError",
    "CommandError",
    "ConfigError",
    "EntryKind",
    "InvalidPathError",
    "NpmCacheError",
    "NpmCacheConfig",
    "PathPolicy",
    "PostInstallError",
    "RunSummary",
    "StageError",
    "TreeItem",
    "UnpackResult",
    "UnsupportedEntryError",
    "create_cache_key",
    "directory_exists",
    "is_bad",
    "pack",
    "reconcile",
    "unpack",
    "walk_tree",
]
