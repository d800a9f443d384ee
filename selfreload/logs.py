"""
JSON log lines for selfreload's own diagnostics.

Caller-facing status messages go through the sink passed to ``do``/``start``;
this module is for the machine-readable side:

    log = slog.bind(path="/app/tpl/index.html", op="WRITE")
    log.info("reload.dispatch.callback", latency_ms=0.4)

emits ``{"event": "reload.dispatch.callback", "path": ..., "op": ..., "latency_ms": 0.4}``
on the ``selfreload`` logger.
"""

import json
import logging
import uuid
from typing import Any

LOGGER_NAME = "selfreload"


class StructuredLogger:
    def __init__(self, name: str = LOGGER_NAME, **fields: Any) -> None:
        self._logger = logging.getLogger(name)
        self._fields = fields

    def bind(self, **fields: Any) -> "StructuredLogger":
        """A logger that adds ``fields`` to every line it emits."""
        merged = dict(self._fields)
        merged.update(fields)
        return StructuredLogger(self._logger.name, **merged)

    def _emit(self, level: int, event: str, extra: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        payload = {"event": event, **self._fields, **extra}
        self._logger.log(level, json.dumps(payload, default=str))

    def debug(self, event: str, **kw: Any) -> None:
        self._emit(logging.DEBUG, event, kw)

    def info(self, event: str, **kw: Any) -> None:
        self._emit(logging.INFO, event, kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._emit(logging.WARNING, event, kw)

    def error(self, event: str, **kw: Any) -> None:
        self._emit(logging.ERROR, event, kw)


slog = StructuredLogger()


def event_id() -> str:
    """Short id tying together the lines logged for one change event."""
    return uuid.uuid4().hex[:8]


def set_level(level: str) -> None:
    logging.getLogger(LOGGER_NAME).setLevel(level)


def default_log(fmt: str, *args: Any) -> None:
    """Default sink for caller-facing status messages."""
    logging.getLogger(LOGGER_NAME).info(fmt, *args)
