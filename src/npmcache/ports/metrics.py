"""Metrics port interface."""

from typing import Protocol


class MetricsPort(Protocol):
    """Port for counters, gauges and timings."""

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        """Increment a counter."""
        ...

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        """Record a point-in-time value."""
        ...

    def timing(self, name: str, seconds: float, tags: dict[str, str] | None = None) -> None:
        """Record a duration in seconds."""
        ...
