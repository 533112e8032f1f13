"""Shared fixtures for npmcache tests."""

import io
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from npmcache.adapters import NoopMetricsAdapter
from npmcache.core import CacheService, CommandError
from npmcache.ports import CommandResult

PLATFORM = "v20.11.0-linux-x64-prod"
MTIME = 1_600_000_000


class FakeCache:
    """In-memory cache backend that records every call."""

    def __init__(self, name: str, entries: dict[str, bytes] | None = None):
        self.name = name
        self.entries = dict(entries or {})
        self.calls: list[tuple[str, str]] = []
        self.fail_on: dict[str, Exception] = {}

    def _record(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if op in self.fail_on:
            raise self.fail_on[op]

    def has(self, key: str) -> bool:
        self._record("has", key)
        return key in self.entries

    def get(self, key: str) -> io.BytesIO:
        self._record("get", key)
        return io.BytesIO(self.entries[key])

    def put(self, key: str, stream: Any) -> None:
        self._record("put", key)
        self.entries[key] = stream.read()

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]


class SpyInstaller:
    """Installer that writes a fixed tree instead of running npm."""

    def __init__(self, modules_dir: Path, files: dict[str, str] | None = None):
        self.modules_dir = modules_dir
        self.files = files if files is not None else {"pkg/index.js": "module.exports = 1;\n"}
        self.runs = 0
        self.precache_commands: list[str] = []
        self.fail: Exception | None = None
        self.create_tree = True

    def run(self) -> CommandResult:
        self.runs += 1
        if self.fail is not None:
            raise self.fail
        if self.create_tree:
            for rel, content in self.files.items():
                path = self.modules_dir / rel
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content)
        return CommandResult(stdout="added 1 package", stderr="")

    def run_precache_command(self, command_line: str) -> CommandResult:
        self.precache_commands.append(command_line)
        if command_line == "false":
            raise CommandError("sh -c false", 1)
        return CommandResult(stdout="", stderr="")


class TickingClock:
    """Clock advancing one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class RecordingLogger:
    """LoggerPort collecting (level, message, fields) tuples."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, message: str, **kwargs: Any) -> None:
        self.records.append(("debug", message, kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self.records.append(("info", message, kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self.records.append(("warning", message, kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self.records.append(("error", message, kwargs))

    def log_operation(
        self,
        op: str,
        key: str,
        backend: str | None,
        durations: dict[str, float],
        cache_hit: bool = False,
        **kwargs: Any,
    ) -> None:
        self.records.append(
            ("operation", op, {"key": key, "backend": backend, "cache_hit": cache_hit, **kwargs})
        )

    def messages(self, level: str) -> list[str]:
        return [message for lvl, message, _ in self.records if lvl == level]


def write_tree(root: Path, files: dict[str, str], mtime: int = MTIME) -> None:
    """Create files below root with a fixed mtime."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        os.utime(path, (mtime, mtime))


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project directory used as the current working directory."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "package-lock.json").write_text('{"lockfileVersion": 3}\n')
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    """Directory outside the project for archives."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def installer(workdir: Path) -> SpyInstaller:
    return SpyInstaller(workdir / "node_modules")


@pytest.fixture
def make_service(workdir: Path, scratch: Path, installer: SpyInstaller, logger: RecordingLogger):
    """Factory building a CacheService around fake collaborators."""

    def factory(caches: list[FakeCache], **options: Any) -> CacheService:
        options.setdefault("platform", PLATFORM)
        options.setdefault("temp_dir", scratch)
        options.setdefault("working_dir", workdir)
        metrics = options.pop("metrics", None) or NoopMetricsAdapter()
        return CacheService(
            caches=caches,
            installer=installer,
            clock=TickingClock(),
            logger=logger,
            metrics=metrics,
            **options,
        )

    return factory
