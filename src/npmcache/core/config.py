"""Centralized configuration for npmcache."""

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigError
from .pathpolicy import PACK_POLICY, UNPACK_POLICY, PathPolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
METRICS_TYPES = ("noop", "logging")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


@dataclass(slots=True)
class NpmCacheConfig:
    """All npmcache configuration in one place.

    Environment variables (all optional):
        NPMCACHE_LOGLEVEL:      DEBUG, INFO (default), WARNING or ERROR. TRACE maps to DEBUG.
        NPMCACHE_LOG_JSON:      Emit logs as JSON lines.
        NPMCACHE_FORCE:         Reinstall even on a cache hit.
        NPMCACHE_PRECACHE:      Shell command run after install, before caching.
        NPMCACHE_TEMP_DIR:      Where the temporary archive is written.
        NPMCACHE_MODULES_DIR:   Installed tree. Default "node_modules".
        NPMCACHE_LOCKFILE:      Lockfile hashed into the key. Default "package-lock.json".
        NODE_ENV:               "production" selects a production install.
        NPMCACHE_NODE / NPMCACHE_NPM: Explicit node and npm binaries.
        NPMCACHE_LOCAL:         Use the local directory cache. Default on.
        NPMCACHE_LOCAL_DIR:     Local cache directory. Default: system temp dir.
        NPMCACHE_S3:            Use the S3 cache. Default off.
        NPMCACHE_S3_ENDPOINT, NPMCACHE_S3_ACCESS_KEY_ID, NPMCACHE_S3_SECRET_ACCESS_KEY,
        NPMCACHE_S3_BUCKET, NPMCACHE_S3_REGION: S3 connection settings.
        NPMCACHE_S3_TLS:        Connect over HTTPS. Default on.
        NPMCACHE_S3_TLS_INSECURE: Skip certificate verification.
        NPMCACHE_PERMITTED_PATH_CHARS: Characters allowed despite the path policy. Default "@".
        NPMCACHE_METRICS:       "logging" (default) or "noop".
    """

    log_level: str = "INFO"
    log_json: bool = False
    force: bool = False
    precache_command: str = ""
    temp_dir: str = field(default_factory=tempfile.gettempdir)
    modules_dir: str = "node_modules"
    lockfile: str = "package-lock.json"
    production_mode: bool = False
    node_binary: str | None = None
    npm_binary: str | None = None

    use_local_cache: bool = True
    local_cache_dir: str = field(default_factory=tempfile.gettempdir)

    use_s3_cache: bool = False
    s3_endpoint: str | None = None
    s3_access_key_id: str | None = field(default=None, repr=False)
    s3_secret_access_key: str | None = field(default=None, repr=False)
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_tls: bool = True
    s3_tls_insecure: bool = False

    permitted_path_chars: str = "@"
    metrics_type: str = "logging"

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "NpmCacheConfig":
        """Build config from environment variables + explicit overrides.

        Overrides set to None are ignored, so CLI options that were not given
        fall through to the environment and then to the defaults.
        """
        env = os.environ if environ is None else environ

        def flag(name: str, default: bool) -> bool:
            value = env.get(name)
            return default if value is None else _parse_bool(name, value)

        values: dict[str, Any] = {
            "log_level": env.get("NPMCACHE_LOGLEVEL", "INFO"),
            "log_json": flag("NPMCACHE_LOG_JSON", False),
            "force": flag("NPMCACHE_FORCE", False),
            "precache_command": env.get("NPMCACHE_PRECACHE", ""),
            "temp_dir": env.get("NPMCACHE_TEMP_DIR") or tempfile.gettempdir(),
            "modules_dir": env.get("NPMCACHE_MODULES_DIR", "node_modules"),
            "lockfile": env.get("NPMCACHE_LOCKFILE", "package-lock.json"),
            "production_mode": env.get("NODE_ENV") == "production",
            "node_binary": env.get("NPMCACHE_NODE"),
            "npm_binary": env.get("NPMCACHE_NPM"),
            "use_local_cache": flag("NPMCACHE_LOCAL", True),
            "local_cache_dir": env.get("NPMCACHE_LOCAL_DIR") or tempfile.gettempdir(),
            "use_s3_cache": flag("NPMCACHE_S3", False),
            "s3_endpoint": env.get("NPMCACHE_S3_ENDPOINT"),
            "s3_access_key_id": env.get("NPMCACHE_S3_ACCESS_KEY_ID"),
            "s3_secret_access_key": env.get("NPMCACHE_S3_SECRET_ACCESS_KEY"),
            "s3_bucket": env.get("NPMCACHE_S3_BUCKET"),
            "s3_region": env.get("NPMCACHE_S3_REGION"),
            "s3_tls": flag("NPMCACHE_S3_TLS", True),
            "s3_tls_insecure": flag("NPMCACHE_S3_TLS_INSECURE", False),
            "permitted_path_chars": env.get("NPMCACHE_PERMITTED_PATH_CHARS", "@"),
            "metrics_type": env.get("NPMCACHE_METRICS", "logging"),
        }

        for name, value in overrides.items():
            if name not in values:
                raise TypeError(f"unknown configuration option: {name}")
            if value is not None:
                values[name] = value

        level = str(values["log_level"]).upper()
        values["log_level"] = "DEBUG" if level == "TRACE" else level
        return cls(**values)

    def validate(self) -> None:
        """Raise ConfigError if the configuration cannot be used."""
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"unknown log level: {self.log_level}")
        if self.metrics_type not in METRICS_TYPES:
            raise ConfigError(f"unknown metrics type: {self.metrics_type}")
        if not self.modules_dir:
            raise ConfigError("no modules directory given")
        if not self.lockfile:
            raise ConfigError("no lockfile given")
        if self.use_s3_cache and not self.s3_bucket:
            raise ConfigError("S3 cache enabled but no bucket given")

    @property
    def pack_policy(self) -> PathPolicy:
        return PACK_POLICY.with_permitted_characters(self.permitted_path_chars)

    @property
    def unpack_policy(self) -> PathPolicy:
        return UNPACK_POLICY.with_permitted_characters(self.permitted_path_chars)
