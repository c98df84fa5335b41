from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol, TextIO

from tradequote.obs.logging import log_event

QUOTES_RECEIVED_EVENT = "QuotesReceived"


class TelemetrySink(Protocol):
    def track(self, event: str, payload: dict[str, Any]) -> None: ...


class ClosableTelemetrySink(TelemetrySink, Protocol):
    def close(self) -> None: ...


class LoggingTelemetrySink:
    """Emit telemetry events as structured log lines."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def track(self, event: str, payload: dict[str, Any]) -> None:
        log_event(self._logger, logging.INFO, "telemetry", event, telemetry_event=event, payload=payload)

    def close(self) -> None:
        pass


class JsonlTelemetrySink:
    """
    Append telemetry events to a JSON Lines file, one ``{"event", "payload"}``
    record per line.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._handle: TextIO | None = None

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> "JsonlTelemetrySink":
        if self._handle is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self._path.open("a", encoding="utf-8")
        return self

    def __enter__(self) -> "JsonlTelemetrySink":
        return self.open()

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def track(self, event: str, payload: dict[str, Any]) -> None:
        if not self._handle:
            raise RuntimeError("Telemetry sink not opened")
        record = json.dumps({"event": event, "payload": payload}, ensure_ascii=False, default=str)
        self._handle.write(f"{record}\n")
        self._handle.flush()

    def close(self) -> None:
        if self._handle:
            self._handle.close()
            self._handle = None


def build_telemetry_sink(telemetry_path: str | None, logger: logging.Logger) -> ClosableTelemetrySink:
    """Opened JSONL sink when a path is configured, else log sink. The caller closes it."""
    if telemetry_path:
        return JsonlTelemetrySink(Path(telemetry_path)).open()
    return LoggingTelemetrySink(logger)
