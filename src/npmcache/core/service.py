"""Core CacheService orchestration."""

import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

from ..ports import CachePort, ClockPort, InstallerPort, LoggerPort, MetricsPort
from .archive import pack, unpack
from .errors import CleanupError, PostInstallError, StageError
from .filetree import directory_exists, reconcile
from .hashing import sha256_file
from .keys import create_cache_key
from .models import RunSummary, UnpackResult
from .pathpolicy import PACK_POLICY, UNPACK_POLICY, PathPolicy


class CacheService:
    """Restores an installed dependency tree from cache, or installs and caches it."""

    def __init__(
        self,
        caches: Sequence[CachePort],
        installer: InstallerPort,
        clock: ClockPort,
        logger: LoggerPort,
        metrics: MetricsPort,
        *,
        platform: str,
        modules_dir: Path | str = "node_modules",
        lockfile: Path | str = "package-lock.json",
        precache_command: str = "",
        force: bool = False,
        temp_dir: Path | str | None = None,
        working_dir: Path | str | None = None,
        pack_policy: PathPolicy = PACK_POLICY,
        unpack_policy: PathPolicy = UNPACK_POLICY,
    ):
        """Initialize service with ports.

        Args:
            caches: Backends in lookup order. All of them are populated after an install.
            platform: Platform identifier that prefixes every cache key.
            modules_dir: Installed tree, relative to ``working_dir``.
            lockfile: Lockfile hashed into the cache key, relative to ``working_dir``.
            precache_command: Shell command run after install and before caching.
            force: Reinstall and repopulate even when the key is cached.
            temp_dir: Directory for the temporary archive (default: system temp dir).
            working_dir: Root that archive entry names are relative to (default: cwd).
        """
        self.caches = list(caches)
        self.installer = installer
        self.clock = clock
        self.logger = logger
        self.metrics = metrics
        self.platform = platform
        self.precache_command = precache_command
        self.force = force
        self.working_dir = Path(working_dir) if working_dir is not None else Path.cwd()
        self.modules_dir = self.working_dir / modules_dir
        self.lockfile = self.working_dir / lockfile
        self.temp_dir = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
        self.pack_policy = pack_policy
        self.unpack_policy = unpack_policy

    def create_archive_file(self, cache_key: str) -> Path:
        """Create an empty, uniquely named temporary archive file for cache_key."""
        fd, name = tempfile.mkstemp(
            prefix=f"modules-{cache_key}-", suffix=".tar.gz", dir=self.temp_dir
        )
        os.close(fd)
        return Path(name)

    def create_cache_key(self) -> str:
        """Derive the cache key from platform, lockfile and pre-cache command."""
        try:
            lockfile_digest = sha256_file(self.lockfile)
            return create_cache_key(self.platform, lockfile_digest, self.precache_command)
        except (OSError, ValueError) as e:
            raise StageError("CacheKey", e) from e

    # ============================================================================
    # Lookup
    # ============================================================================

    def lookup(self, cache_key: str) -> tuple[str | None, UnpackResult | None, list[str]]:
        """Search backends in order and apply the first hit.

        On a forced run the hit is recorded but nothing is extracted.

        Returns:
            Name of the backend that had the key (or None), the extraction
            result (None if nothing was extracted) and the paths removed by
            reconciliation.
        """
        self.logger.info("Lookup start", key=cache_key)

        for cache in self.caches:
            try:
                found = cache.has(cache_key)
            except Exception as e:
                raise StageError("Lookup", e, cache.name, "Has") from e

            self.logger.debug(f"Lookup({cache.name}).Has complete", hit=found)
            if not found:
                continue

            self.metrics.increment("npmcache.lookup.hit", tags={"backend": cache.name})
            if self.force:
                self._fetch(cache, cache_key).close()
                self.logger.info(
                    f"Lookup({cache.name}).Extract skipped, force install requested",
                    key=cache_key,
                )
                return cache.name, None, []

            result, removed = self._apply(cache, cache_key)
            return cache.name, result, removed

        self.metrics.increment("npmcache.lookup.miss")
        self.logger.info("Lookup complete: miss", key=cache_key)
        return None, None, []

    def _fetch(self, cache: CachePort, cache_key: str) -> BinaryIO:
        try:
            return cache.get(cache_key)
        except Exception as e:
            raise StageError("Lookup", e, cache.name, "Get") from e

    def _apply(self, cache: CachePort, cache_key: str) -> tuple[UnpackResult, list[str]]:
        stream = self._fetch(cache, cache_key)
        try:
            result = unpack(stream, self.unpack_policy, root=self.working_dir)
        except Exception as e:
            raise StageError("Extract", e, cache.name) from e
        finally:
            stream.close()

        for warning in result.warnings:
            self.logger.warning(warning, backend=cache.name)
        self.metrics.increment("npmcache.extract.skipped", len(result.skipped))
        self.logger.info(
            f"Lookup({cache.name}).Extract complete",
            files=len(result.manifest),
            unchanged=len(result.skipped),
            written=len(result.written),
        )

        try:
            removed = reconcile(self.modules_dir, result.manifest, root=self.working_dir)
        except Exception as e:
            raise StageError("Cleanup", e, cache.name) from e

        for path in removed:
            self.logger.debug("Removed extraneous file", path=path)
        self.metrics.increment("npmcache.cleanup.removed", len(removed))
        self.logger.info(f"Lookup({cache.name}).Cleanup complete", removed=len(removed))
        return result, removed

    # ============================================================================
    # Install and populate
    # ============================================================================

    def install_and_populate(self, cache_key: str, warnings: list[str] | None = None) -> list[str]:
        """Install from scratch, then store the resulting tree in every backend.

        Args:
            cache_key: Key the archive is stored under.
            warnings: Pack warnings are appended here when given.

        Returns:
            Names of the backends written to.
        """
        start_time = self.clock.now()
        self.logger.info("Install start", key=cache_key)
        try:
            result = self.installer.run()
        except Exception as e:
            raise StageError("Install", e) from e
        self.logger.debug("Install complete", output=result.stdout)
        self._check_modules_dir()

        if self.precache_command:
            try:
                result = self.installer.run_precache_command(self.precache_command)
            except Exception as e:
                raise StageError("PreCache", e) from e
            self.logger.debug("PreCache complete", output=result.stdout)
            self._check_modules_dir()

        self.metrics.timing(
            "npmcache.install.duration", (self.clock.now() - start_time).total_seconds()
        )

        if not self.caches:
            self.logger.warning("No cache backends configured, nothing to populate")
            return []

        try:
            archive = self.create_archive_file(cache_key)
        except OSError as e:
            raise StageError("Archive", e) from e
        try:
            try:
                pack_warnings = pack(archive, self.modules_dir, self.pack_policy, root=self.working_dir)
            except Exception as e:
                raise StageError("Archive", e) from e
            for warning in pack_warnings:
                self.logger.warning(warning)
            if warnings is not None:
                warnings.extend(pack_warnings)
            archive_size = archive.stat().st_size
            self.metrics.gauge("npmcache.archive.size", archive_size)
            self.logger.info("Archive complete", archive=str(archive), size=archive_size)

            return self._populate(cache_key, archive)
        finally:
            self._remove_archive(archive)

    def _check_modules_dir(self) -> None:
        if not directory_exists(self.modules_dir):
            error = PostInstallError(
                f"modules directory '{self.modules_dir}' not present after install"
            )
            raise StageError("PostInstall", error) from error

    def _populate(self, cache_key: str, archive: Path) -> list[str]:
        populated: list[str] = []
        try:
            archive_file = open(archive, "rb")
        except OSError as e:
            raise StageError("Cache", e, operation="OpenArchive") from e

        with archive_file:
            for cache in self.caches:
                start_time = self.clock.now()
                try:
                    archive_file.seek(0)
                    cache.put(cache_key, archive_file)
                except Exception as e:
                    raise StageError("Cache", e, cache.name, "Put") from e
                duration = (self.clock.now() - start_time).total_seconds()
                self.metrics.timing("npmcache.put.duration", duration, tags={"backend": cache.name})
                self.logger.info(f"Cache({cache.name}).Put complete", key=cache_key)
                populated.append(cache.name)
        return populated

    def _remove_archive(self, archive: Path) -> None:
        try:
            archive.unlink(missing_ok=True)
        except OSError as e:
            raise CleanupError(f"could not remove temporary archive '{archive}': {e}") from e
        self.logger.debug("Removed temporary archive", archive=str(archive))

    # ============================================================================
    # Full run
    # ============================================================================

    def run(self) -> RunSummary:
        """Restore the modules directory from cache, installing if needed."""
        start_time = self.clock.now()

        cache_key = self.create_cache_key()
        summary = RunSummary(cache_key=cache_key)
        if not self.caches:
            self.logger.warning("No cache backends configured")

        hit_backend, result, removed = self.lookup(cache_key)
        summary.hit_backend = hit_backend
        summary.removed = removed
        if result is not None:
            summary.extracted = True
            summary.warnings.extend(result.warnings)

        if self.force or hit_backend is None:
            if hit_backend is not None:
                self.logger.info("Cache was a hit, install is forced", backend=hit_backend)
            summary.installed = True
            summary.populated = self.install_and_populate(cache_key, summary.warnings)

        duration = (self.clock.now() - start_time).total_seconds()
        self.logger.log_operation(
            op="run",
            key=cache_key,
            backend=hit_backend,
            durations={"total": duration},
            cache_hit=summary.cache_hit,
            installed=summary.installed,
            populated=",".join(summary.populated) or "-",
        )
        self.metrics.timing("npmcache.run.duration", duration)
        return summary
