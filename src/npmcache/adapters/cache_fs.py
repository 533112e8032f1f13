"""Filesystem cache adapter."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from ..core.errors import ConfigError
from ..core.hashing import CHUNK_SIZE


class LocalCacheAdapter:
    """Stores archives as flat files named by cache key inside one directory."""

    name = "local"

    def __init__(self, directory: Path | str):
        if not str(directory):
            raise ConfigError("no cache directory given")
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise ConfigError(f"'{self.directory}' is not a valid directory")

    def path_for(self, key: str) -> Path:
        """Get path where the archive for key is stored."""
        if not key or key in (".", "..") or "/" in key or os.sep in key or "\x00" in key:
            raise ValueError(f"invalid cache key: {key!r}")
        return self.directory / key

    def has(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def get(self, key: str) -> BinaryIO:
        return open(self.path_for(key), "rb")

    def put(self, key: str, stream: BinaryIO) -> None:
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                shutil.copyfileobj(stream, f, CHUNK_SIZE)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __repr__(self) -> str:
        return f"LocalCacheAdapter({str(self.directory)!r})"
