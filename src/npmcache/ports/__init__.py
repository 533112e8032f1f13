"""Port interfaces for npmcache."""

from .cache import CachePort
from .clock import ClockPort
from .installer import CommandResult, InstallerPort
from .logger import LoggerPort
from .metrics import MetricsPort

__all__ = [
    "CachePort",
    "ClockPort",
    "CommandResult",
    "InstallerPort",
    "LoggerPort",
    "MetricsPort",
]
