"""npm installer adapter and Node.js toolchain discovery."""

import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Protocol

from ..core.errors import CommandError, ConfigError
from ..ports.installer import CommandResult

PLATFORM_EXPRESSION = 'process.version + "-" + process.platform + "-" + process.arch'


class CommandRunner(Protocol):
    """Runs external commands and captures their output."""

    def run_command(self, *args: str) -> CommandResult:
        """Run args without a shell. Raises CommandError on failure."""
        ...

    def run_shell_command(self, command_line: str) -> CommandResult:
        """Run command_line through sh. Raises CommandError on failure."""
        ...


class SubprocessRunner:
    """CommandRunner backed by :mod:`subprocess`."""

    def __init__(self, cwd: str | None = None):
        self.cwd = cwd

    def run_command(self, *args: str) -> CommandResult:
        try:
            completed = subprocess.run(
                list(args), capture_output=True, text=True, cwd=self.cwd, check=False
            )
        except OSError as e:
            raise CommandError(shlex.join(args), 127, str(e)) from e

        result = CommandResult(
            stdout=completed.stdout.strip(),
            stderr=completed.stderr.strip(),
            returncode=completed.returncode,
        )
        if completed.returncode != 0:
            raise CommandError(shlex.join(args), completed.returncode, result.stderr)
        return result

    def run_shell_command(self, command_line: str) -> CommandResult:
        return self.run_command("sh", "-c", command_line)


@dataclass(frozen=True, slots=True)
class NodeToolchain:
    """Resolved Node.js binaries and the platform identifier used in cache keys."""

    node_binary: str
    npm_binary: str
    platform: str
    production_mode: bool

    @classmethod
    def discover(
        cls,
        runner: CommandRunner,
        *,
        production_mode: bool,
        node_binary: str | None = None,
        npm_binary: str | None = None,
    ) -> "NodeToolchain":
        """Locate node and npm and determine the platform.

        The platform is ``<node version>-<os>-<arch>`` with ``-prod`` or
        ``-dev`` appended, e.g. ``v20.11.0-linux-x64-prod``.

        Raises:
            ConfigError: If a binary cannot be found or node cannot be run.
        """
        node = node_binary or shutil.which("node")
        if not node:
            raise ConfigError("can't find a node binary in PATH")
        npm = npm_binary or shutil.which("npm")
        if not npm:
            raise ConfigError("can't find an npm binary in PATH")

        try:
            version = runner.run_command(node, "-p", PLATFORM_EXPRESSION).stdout
        except CommandError as e:
            raise ConfigError(f"can't run node from '{node}': {e}") from e
        if not version:
            raise ConfigError(f"node at '{node}' did not report a platform")

        suffix = "prod" if production_mode else "dev"
        return cls(
            node_binary=node,
            npm_binary=npm,
            platform=f"{version}-{suffix}",
            production_mode=production_mode,
        )


class NpmInstaller:
    """Installs packages with ``npm ci``."""

    def __init__(self, toolchain: NodeToolchain, runner: CommandRunner):
        self.toolchain = toolchain
        self.runner = runner

    def install_command(self) -> list[str]:
        mode = "--production" if self.toolchain.production_mode else "--dev"
        return [
            self.toolchain.npm_binary,
            "ci",
            mode,
            "--loglevel",
            "error",
            "--progress",
            "false",
        ]

    def run(self) -> CommandResult:
        return self.runner.run_command(*self.install_command())

    def run_precache_command(self, command_line: str) -> CommandResult:
        return self.runner.run_shell_command(command_line)
