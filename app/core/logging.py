"""Structured JSON logging with recipient masking and pass correlation.

Provides JSON-formatted logs with automatic masking of sensitive values and
an id tying together every line written during one recompute pass.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import time
import uuid
from collections.abc import Mapping
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import Any

# Pass correlation (one planning + detection run)
_pass_id: ContextVar[str] = ContextVar("pass_id", default="")


def set_pass_id(value: str | None = None) -> str:
    """Set current pass_id (or generate new). Returns active id."""
    pid = value or uuid.uuid4().hex[:12]
    _pass_id.set(pid)
    return pid


def get_pass_id() -> str:
    """Get current pass_id for contextual logging."""
    return _pass_id.get()


# --- Masking patterns ---
_PATTERNS = [
    # Bearer tokens (webhook API keys)
    (re.compile(r"(?i)\bBearer\s+[A-Za-z0-9._-]{10,}\b"), "Bearer ***"),
    # Phone numbers (notification recipients)
    (re.compile(r"\+?\b\d{9,15}\b"), "***"),
]

_SENSITIVE_KEYS = {
    "authorization",
    "api_key",
    "webhook_api_key",
    "recipients",
    "recipients_snapshot",
    "notification_recipients",
    "password",
    "secret",
}

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys() | {"message", "asctime"}
)


def _mask_value(v: Any) -> Any:
    """Recursively mask sensitive data in any structure."""
    if v is None:
        return v
    if isinstance(v, (int, float, bool)):
        return v
    if isinstance(v, Mapping):
        return {
            k: ("***" if str(k).lower() in _SENSITIVE_KEYS else _mask_value(val))
            for k, val in v.items()
        }
    if isinstance(v, (list, tuple, set)):
        t = type(v)
        return t(_mask_value(i) for i in v)
    s = str(v)
    for rx, repl in _PATTERNS:
        s = rx.sub(repl, s)
    return s


class JsonFormatter(logging.Formatter):
    """JSON log formatter with automatic masking."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with masked values."""
        payload: dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int((record.created - int(record.created)) * 1000):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": _mask_value(record.getMessage()),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
            "pass_id": get_pass_id() or None,
        }

        extras = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if extras:
            payload["extra"] = _mask_value(extras)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def _ensure_dir(path: str) -> None:
    """Ensure directory exists for log file."""
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def setup_logging(
    level: str | int = "INFO",
    to_stdout: bool = True,
    file_path: str | None = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Initialize structured JSON logging.

    Args:
        level: Log level (INFO, DEBUG, WARNING, ERROR)
        to_stdout: Enable stdout logging
        file_path: Path to JSON log file (None to disable file logging)
        max_bytes: Max log file size before rotation (default: 5MB)
        backup_count: Number of backup files to keep (default: 5)

    """
    root = logging.getLogger()
    root.setLevel(logging.getLevelName(level) if isinstance(level, str) else level)

    # Remove old handlers to avoid duplicates
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = JsonFormatter()

    if to_stdout:
        sh = logging.StreamHandler(sys.stdout)
        sh.setFormatter(fmt)
        root.addHandler(sh)

    if file_path:
        _ensure_dir(file_path)
        fh = RotatingFileHandler(
            file_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        fh.setFormatter(fmt)
        root.addHandler(fh)


def setup_logging_from_settings() -> None:
    """Initialize logging from application settings."""
    from app.core.config import get_settings

    settings = get_settings()
    setup_logging(level=settings.log_level.upper(), file_path=settings.log_file_path)


__all__ = [
    "setup_logging",
    "setup_logging_from_settings",
    "set_pass_id",
    "get_pass_id",
    "JsonFormatter",
]
