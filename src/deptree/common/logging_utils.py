"""Centralized logging helpers.

Module loggers attach structured fields through ``extra=extra_context(...)``;
``configure_logging`` installs a single root handler whose level comes from
the DEPTREE_LOG_LEVEL environment variable (the CLI sets it from --loglevel).
"""
from __future__ import annotations

import logging
import os
import re
import sys
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from deptree.constants import Constants

_HANDLER_NAME = "deptree-console"
_SENSITIVE_QUERY_RE = re.compile(r"(?i)(token|key|secret|password|auth)=([^&]+)")
_CONTEXT_FIELDS = (
    "event",
    "component",
    "action",
    "outcome",
    "package",
    "version",
    "target",
    "status_code",
    "duration_ms",
)


class _ContextFormatter(logging.Formatter):
    """Appends known structured fields to the message when present."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        parts = []
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                parts.append(f"{name}={value}")
        if parts:
            return f"{base} [{' '.join(parts)}]"
        return base


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        logging.Handler.__init__(self)  # pylint: disable=non-parent-init-called

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


def configure_logging(level: Optional[str] = None) -> None:
    """Install the console handler on the root logger.

    Safe to call more than once; the handler is only added the first time.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return

    handler = _StderrHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(_ContextFormatter(Constants.LOG_FORMAT))
    root.addHandler(handler)


def add_file_handler(path: str) -> None:
    """Mirror log output to a file."""
    file_handler = logging.FileHandler(path)
    file_handler.setFormatter(
        _ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger().addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records, dropping None values."""
    return {k: v for k, v in fields.items() if v is not None}


def redact(text: str) -> str:
    """Mask secret-looking query parameters in ``text``."""
    return _SENSITIVE_QUERY_RE.sub(r"\1=[REDACTED]", text)


def safe_url(url: str) -> str:
    """Return ``url`` with userinfo and secret query values removed."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, redact(parts.query), ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 2)
