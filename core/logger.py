"""
JSON-lines logging for aaindex.

Each record is one JSON object on stderr.  A logger is bound to the
component that owns it (``classifier``, ``pool_scanner``, ``dispatcher``)
and optionally to the AA it is working on::

    from core.logger import get_logger
    log = get_logger("pool_scanner")
    log.info("Pool admitted", extra={"pool": pool_aa, "asset": lp_asset})

    aa_log = log.bind(aa=address, kind="curve")
    aa_log.warning("Curve has no governance AA")

Recognised context keys are listed in ``CONTEXT_KEYS``; anything else passed
via ``extra`` stays on the LogRecord but is left out of the JSON line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from config.settings import settings

CONTEXT_KEYS = ("component", "aa", "base_aa", "kind", "asset", "pool", "error", "duration_ms")


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(
            (key, value)
            for key in CONTEXT_KEYS
            if (value := getattr(record, key, None)) not in (None, "")
        )
        if record.exc_info and record.exc_info[1] is not None:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class BoundLogger(logging.LoggerAdapter):
    """Adds its bound context to each record; per-call ``extra`` wins on clashes."""

    def process(
        self, msg: str, kwargs: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **context: Any) -> BoundLogger:
        return BoundLogger(self.logger, {**self.extra, **context})


def configure_logging(level: str | None = None, stream: Any = None) -> None:
    """Attach the JSON formatter to the root logger unless a handler exists."""
    root = logging.getLogger()
    if root.handlers:
        return  # pytest and embedding apps install their own

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_JSONFormatter())
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())


configure_logging()


def get_logger(component: str | None = None, name: str | None = None) -> BoundLogger:
    """Logger named ``aaindex.<component>`` (or *name*) bound to *component*."""
    logger_name = name or (f"aaindex.{component}" if component else "aaindex")
    return BoundLogger(logging.getLogger(logger_name), {"component": component or ""})
