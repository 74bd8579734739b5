"""Structured logging with context injection.

Features:
- console handler
- optional file handler (one per run)
- JSON logs optional (easy ingestion)
- context injection (run_id/phase/item) without needing a big framework
"""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "fedsync_import"

_CONTEXT_KEYS = ("run_id", "phase", "item")

# ---------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": time.time(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in _CONTEXT_KEYS:
            if hasattr(record, k):
                base[k] = getattr(record, k)

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        # allow structured payload
        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            base["payload"] = payload

        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Format log records as human-readable text."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.created)),
            record.levelname,
            record.name,
        ]

        ctx = []
        for k in _CONTEXT_KEYS:
            value = getattr(record, k, None)
            if value:
                ctx.append(f"{k}={value}")
        if ctx:
            parts.append("[" + " ".join(ctx) + "]")

        parts.append(record.getMessage())
        s = " ".join(parts)

        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)

        return s


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingOptions:
    """Configure logging behavior for an import run."""

    level: str = "INFO"
    json_logs: bool = False
    log_file: Path | None = None
    enable_console: bool = True


def setup_import_logger(options: LoggingOptions | None = None) -> logging.Logger:
    """Configure the package logger for a run and return it."""
    options = options or LoggingOptions()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, options.level.upper(), logging.INFO))
    logger.propagate = False

    # Prevent duplicate handlers in repeated calls
    if getattr(logger, "_fedsync_options", None) == options:
        return logger

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    fmt = JsonFormatter() if options.json_logs else TextFormatter()

    if options.enable_console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(logger.level)
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    if options.log_file:
        path = Path(options.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(logger.level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    logger._fedsync_options = options
    return logger


# ---------------------------------------------------------------------
# Context injection
# ---------------------------------------------------------------------


class ContextAdapter(logging.LoggerAdapter):
    """Inject context fields into log records."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        merged = dict(self.extra)
        merged.update(extra)
        kwargs["extra"] = merged
        return msg, kwargs


def with_context(
    logger: logging.Logger | logging.LoggerAdapter,
    *,
    run_id: str | None = None,
    phase: str | None = None,
    item: str | None = None,
) -> ContextAdapter:
    """Create a context adapter with run, phase, and item info."""
    extra: dict[str, Any] = {}
    if isinstance(logger, logging.LoggerAdapter):
        extra.update(logger.extra or {})
        logger = logger.logger
    if run_id:
        extra["run_id"] = run_id
    if phase:
        extra["phase"] = phase
    if item:
        extra["item"] = item
    return ContextAdapter(logger, extra)
