"""Logging utilities for the sheet-finder server and CLIs."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

LogFormat = Literal["text", "json"]
LogDestination = Literal["auto", "stdout", "stderr"]

REDACTED = "[redacted]"

_RESERVED_RECORD_KEYS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """Format log records as structured JSON objects."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS or key.startswith("_"):
                continue
            payload[key] = value
        return json.dumps(payload, default=str)


@dataclass(slots=True)
class _LevelRangeFilter(logging.Filter):
    min_level: int | None = None
    max_level: int | None = None

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if self.min_level is not None and record.levelno < self.min_level:
            return False
        if self.max_level is not None and record.levelno > self.max_level:
            return False
        return True


@dataclass(slots=True)
class SecretRedactingFilter(logging.Filter):
    """Replace known secret values in messages and string extras.

    Drive requests carry the API key as a query parameter, so any URL that
    reaches a log line (ours or httpx's) would otherwise leak it.
    """

    secrets: tuple[str, ...] = field(default_factory=tuple)

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = self._redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        for key, value in list(record.__dict__.items()):
            if key in _RESERVED_RECORD_KEYS or not isinstance(value, str):
                continue
            record.__dict__[key] = self._redact(value)
        return True

    def _redact(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, REDACTED)
        return text


def configure_logging(
    *,
    level: str = "INFO",
    fmt: LogFormat = "text",
    destination: LogDestination = "auto",
    secrets: Iterable[str | None] = (),
) -> None:
    """Install handlers on the root logger, redacting any of `secrets`."""

    resolved_level = _resolve_level(level)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(resolved_level)

    formatter = _select_formatter(fmt)
    redactor = SecretRedactingFilter(secrets=tuple(secret for secret in secrets if secret))
    for handler in _build_handlers(destination):
        handler.setLevel(logging.NOTSET)
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root.addHandler(handler)

    logging.captureWarnings(True)


def _resolve_level(value: str) -> int:
    resolved = logging.getLevelName(value.upper())
    if not isinstance(resolved, int):  # logging returns the input string when it fails
        raise ValueError(f"Unknown log level: {value}")
    return resolved


def _select_formatter(fmt: LogFormat) -> logging.Formatter:
    if fmt == "json":
        return JsonFormatter()
    return logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")


def _build_handlers(destination: LogDestination) -> Iterable[logging.Handler]:
    if destination == "stdout":
        return (logging.StreamHandler(sys.stdout),)
    if destination == "stderr":
        return (logging.StreamHandler(sys.stderr),)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_LevelRangeFilter(max_level=logging.INFO))
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.addFilter(_LevelRangeFilter(min_level=logging.WARNING))
    return (stdout_handler, stderr_handler)


__all__ = [
    "JsonFormatter",
    "LogDestination",
    "LogFormat",
    "REDACTED",
    "SecretRedactingFilter",
    "configure_logging",
]
