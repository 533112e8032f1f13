"""Content hashing.

Two digests with different purposes:

* BLAKE3 per regular file, used only for the archive hash index and the
  unchanged-file check during extraction. Chosen for speed over large trees.
* SHA-256 of the lockfile and of the pre-cache command text, used to build
  stable cache keys.

Both go through :func:`hash_stream`, so files, network bodies and in-memory
strings are hashed the same way without loading them whole.
"""

import base64
import hashlib
import io
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO, Protocol

from blake3 import blake3

from .models import TreeItem

CHUNK_SIZE = 64 * 1024


class _Hasher(Protocol):
    def update(self, data: bytes, /) -> object: ...

    def digest(self) -> bytes: ...


def hash_stream(stream: BinaryIO, hasher: _Hasher) -> _Hasher:
    """Feed ``stream`` into ``hasher`` chunk by chunk and return the hasher."""
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher


def sha256_stream(stream: BinaryIO) -> str:
    """Return the hex SHA-256 of everything readable from ``stream``."""
    return hash_stream(stream, hashlib.sha256()).digest().hex()


def sha256_file(path: Path | str) -> str:
    """Return the hex SHA-256 of a file's content."""
    with open(path, "rb") as f:
        return sha256_stream(f)


def sha256_text(text: str) -> str:
    """Return the hex SHA-256 of ``text`` encoded as UTF-8."""
    return sha256_stream(io.BytesIO(text.encode("utf-8")))


def blake3_file(path: Path | str) -> bytes:
    """Return the raw BLAKE3 digest of a file's content."""
    with open(path, "rb") as f:
        return hash_stream(f, blake3()).digest()


def hash_tree(items: Iterable[TreeItem]) -> dict[str, bytes]:
    """Digest every regular file in ``items``, keyed by relative path."""
    return {item.path: blake3_file(item.full_path) for item in items if item.is_regular}


def encode_digest(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")


def decode_digest(encoded: str) -> bytes:
    return base64.b64decode(encoded, validate=True)
