"""
Structured session logging.

Records carry an ``event`` name plus key-value ``extra`` fields so provider
failures, stale quote responses and selections can be filtered by event.
Two renderings share the same record shape:

JSON Lines (``obs.log_jsonl: true``):
    {"ts": "2024-01-15T10:30:00Z", "level": "WARNING", "session": "20240115_103000Z_a1b2c3",
     "event": "market_provider_failed", "logger": "tradequote.market.manager",
     "msg": "Provider failed in find_by_asset_id", "extra": {"provider": "coingecko"}}

Key-value text:
    2024-01-15T10:30:00Z WARNING market_provider_failed Provider failed in find_by_asset_id provider=coingecko
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class LogSettings:
    level: str
    session_id: str
    log_file: Path | None
    jsonl: bool


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _render_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    return value


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    extra = getattr(record, "extra", {})
    if not isinstance(extra, dict):
        extra = {"value": extra}
    return {key: _render_value(value) for key, value in extra.items()}


class JsonLineFormatter(logging.Formatter):
    def __init__(self, session_id: str):
        super().__init__()
        self._session_id = session_id

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _utc_timestamp(),
            "level": record.levelname,
            "session": self._session_id,
            "event": getattr(record, "event", "log"),
            "logger": record.name,
            "msg": record.getMessage(),
            "extra": _record_fields(record),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    """Single-line text rendering for terminals; nested values are JSON encoded."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [_utc_timestamp(), record.levelname, getattr(record, "event", "log"), record.getMessage()]
        for key, value in _record_fields(record).items():
            rendered = value if isinstance(value, (str, int, float)) else json.dumps(value, default=str)
            parts.append(f"{key}={rendered}")
        line = " ".join(str(part) for part in parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def build_logger(settings: LogSettings) -> logging.Logger:
    """Non-propagating logger for one CLI session; console always, file when configured."""
    logger = logging.getLogger(f"tradequote.session.{settings.session_id}")
    logger.setLevel(settings.level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    formatter: logging.Formatter = (
        JsonLineFormatter(settings.session_id) if settings.jsonl else KeyValueFormatter()
    )
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    message: str,
    *,
    exc_info: logging._ExcInfoType | None = None,
    **extra: Any,
) -> None:
    """
    Log a named event with key-value metadata.

        >>> log_event(logger, logging.INFO, "quote_selected", "Active quote set",
        ...           provider="thorchain", automatic=True)
    """
    logger.log(level, message, extra={"event": event, "extra": extra}, exc_info=exc_info)
