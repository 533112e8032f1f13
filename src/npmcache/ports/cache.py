"""Cache port interface."""

from typing import BinaryIO, Protocol


class CachePort(Protocol):
    """Port for a store of archives addressed by cache key."""

    name: str

    def has(self, key: str) -> bool:
        """Check whether an archive exists for key."""
        ...

    def get(self, key: str) -> BinaryIO:
        """Open the archive for key for reading. The caller closes it."""
        ...

    def put(self, key: str, stream: BinaryIO) -> None:
        """Store everything readable from stream under key."""
        ...
