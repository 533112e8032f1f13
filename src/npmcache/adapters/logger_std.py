"""Standard library logging adapter."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

_FIELDS_ATTR = "npmcache_fields"
_OWNED_ATTR = "npmcache_owned"


class KeyValueFormatter(logging.Formatter):
    """Renders structured fields as ``key=value`` pairs after the message."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields: dict[str, Any] = getattr(record, _FIELDS_ATTR, {})
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class JsonFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "@level": record.levelname.lower(),
            "@module": record.name,
            "@message": record.getMessage(),
        }
        payload.update(getattr(record, _FIELDS_ATTR, {}))
        return json.dumps(payload, default=str)


class StdLoggerAdapter:
    """LoggerPort implementation on top of :mod:`logging`."""

    def __init__(
        self,
        name: str = "npmcache",
        level: str = "INFO",
        json_format: bool = False,
        stream: TextIO | None = None,
    ):
        """Attach a single handler writing to ``stream`` (default: stderr).

        A handler installed by an earlier adapter for the same logger is
        replaced; handlers added by others are left alone.
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            if getattr(handler, _OWNED_ATTR, False):
                self.logger.removeHandler(handler)
                handler.close()

        self.handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        setattr(self.handler, _OWNED_ATTR, True)
        self.handler.setFormatter(JsonFormatter() if json_format else KeyValueFormatter())
        self.logger.addHandler(self.handler)

    def _log(self, level: int, message: str, fields: dict[str, Any]) -> None:
        self.logger.log(level, message, extra={_FIELDS_ATTR: fields})

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def log_operation(
        self,
        op: str,
        key: str,
        backend: str | None,
        durations: dict[str, float],
        cache_hit: bool = False,
        **kwargs: Any,
    ) -> None:
        fields: dict[str, Any] = {
            "op": op,
            "key": key,
            "backend": backend or "-",
            "cache_hit": cache_hit,
        }
        fields.update({f"{name}_s": round(value, 3) for name, value in durations.items()})
        fields.update(kwargs)
        self._log(logging.INFO, f"{op} complete", fields)
