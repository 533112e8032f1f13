"""Adapter implementations for npmcache ports."""

from .cache_fs import LocalCacheAdapter
from .cache_s3 import S3CacheAdapter
from .clock_utc import UtcClockAdapter
from .installer_npm import CommandRunner, NodeToolchain, NpmInstaller, SubprocessRunner
from .logger_std import StdLoggerAdapter
from .metrics import LoggingMetricsAdapter, NoopMetricsAdapter

__all__ = [
    "CommandRunner",
    "LocalCacheAdapter",
    "LoggingMetricsAdapter",
    "NodeToolchain",
    "NoopMetricsAdapter",
    "NpmInstaller",
    "S3CacheAdapter",
    "StdLoggerAdapter",
    "SubprocessRunner",
    "UtcClockAdapter",
]
