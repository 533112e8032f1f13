"""Installer port interface."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured output of an external command."""

    stdout: str
    stderr: str
    returncode: int = 0


class InstallerPort(Protocol):
    """Port for the external package installer."""

    def run(self) -> CommandResult:
        """Install packages into the modules directory.

        Raises CommandError on failure.
        """
        ...

    def run_precache_command(self, command_line: str) -> CommandResult:
        """Run a shell command after install and before caching."""
        ...
