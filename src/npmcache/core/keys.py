"""Cache key derivation."""

from .hashing import sha256_text


def create_cache_key(platform: str, lockfile_digest: str, precache_command: str = "") -> str:
    """Compose the cache key for one install.

    The key is ``<platform>-<lockfile sha256>``, extended with
    ``-<sha256 of the pre-cache command>`` when a pre-cache command is set,
    since that command may alter the installed tree.

    Raises:
        ValueError: If ``platform`` or ``lockfile_digest`` is empty.
    """
    if not platform:
        raise ValueError("platform must not be empty")
    if not lockfile_digest:
        raise ValueError("lockfile digest must not be empty")

    key = f"{platform}-{lockfile_digest}"
    if precache_command:
        key = f"{key}-{sha256_text(precache_command)}"
    return key
