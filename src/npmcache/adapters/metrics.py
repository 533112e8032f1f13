"""Metrics adapters."""

import logging


class NoopMetricsAdapter:
    """Discards all metrics."""

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass

    def timing(self, name: str, seconds: float, tags: dict[str, str] | None = None) -> None:
        pass


class LoggingMetricsAdapter:
    """Emits metrics as DEBUG log lines."""

    def __init__(self, logger_name: str = "npmcache.metrics"):
        self.logger = logging.getLogger(logger_name)

    def _emit(self, kind: str, name: str, value: float, tags: dict[str, str] | None) -> None:
        suffix = "".join(f" {k}={v}" for k, v in (tags or {}).items())
        self.logger.debug(f"{kind} {name}={value}{suffix}")

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self._emit("counter", name, value, tags)

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self._emit("gauge", name, value, tags)

    def timing(self, name: str, seconds: float, tags: dict[str, str] | None = None) -> None:
        self._emit("timing", name, round(seconds, 6), tags)
