"""Exception hierarchy for npmcache.

Configuration problems, path-security violations, external command failures and
orchestration stage failures each get their own class so the CLI can report a
meaningful message while callers can still catch ``NpmCacheError`` as a whole.
"""


class NpmCacheError(RuntimeError):
    """Base exception for all npmcache failures."""


class ConfigError(NpmCacheError):
    """Invalid or incomplete configuration detected at startup."""


class ArchiveError(NpmCacheError):
    """Archive creation or extraction failed."""


class InvalidPathError(ArchiveError):
    """A path or symlink target was rejected by the path policy."""

    def __init__(self, reason: str):
        super().__init__(f"invalid path: {reason}")
        self.reason = reason


class UnsupportedEntryError(ArchiveError):
    """Archive contains an entry type that cannot be materialized."""


class CommandError(NpmCacheError):
    """External command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stderr: str = ""):
        message = f"command {command!r} failed with exit status {returncode}"
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PostInstallError(NpmCacheError):
    """Install reported success but its expected output is missing."""


class CleanupError(NpmCacheError):
    """Temporary archive could not be removed after caching."""


class StageError(NpmCacheError):
    """A stage of a cache run failed.

    The message names the stage and, where relevant, the backend, e.g.
    ``Lookup(local).Has: <cause>``. The underlying exception is chained as
    ``__cause__``.
    """

    def __init__(
        self,
        stage: str,
        cause: BaseException,
        backend: str | None = None,
        operation: str | None = None,
    ):
        label = f"{stage}({backend})" if backend else stage
        if operation:
            label = f"{label}.{operation}"
        super().__init__(f"{label}: {cause}")
        self.stage = stage
        self.backend = backend
        self.operation = operation
        self.cause = cause
