import json
import logging
from pathlib import Path

import pytest

from tradequote.obs.metrics import http_metrics_payload, summarize_provider_health, write_metrics
from tradequote.obs.telemetry import (
    JsonlTelemetrySink,
    LoggingTelemetrySink,
    build_telemetry_sink,
)
from tradequote.providers.http import ProviderMetrics


def test_jsonl_sink_appends_records(tmp_path: Path) -> None:
    path = tmp_path / "telemetry" / "events.jsonl"

    with JsonlTelemetrySink(path) as sink:
        sink.track("QuotesReceived", {"isActionable": True})
        sink.track("QuotesReceived", {"isActionable": False})

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"event": "QuotesReceived", "payload": {"isActionable": True}},
        {"event": "QuotesReceived", "payload": {"isActionable": False}},
    ]


def test_jsonl_sink_requires_open(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        JsonlTelemetrySink(tmp_path / "events.jsonl").track("QuotesReceived", {})


def test_logging_sink(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("test.telemetry")
    sink = LoggingTelemetrySink(logger)

    with caplog.at_level(logging.INFO, logger="test.telemetry"):
        sink.track("QuotesReceived", {"version": "20240115"})

    [record] = caplog.records
    assert record.event == "telemetry"
    assert record.extra["payload"] == {"version": "20240115"}


def test_build_telemetry_sink(tmp_path: Path) -> None:
    logger = logging.getLogger("test.telemetry")

    assert isinstance(build_telemetry_sink(None, logger), LoggingTelemetrySink)
    file_sink = build_telemetry_sink(str(tmp_path / "t.jsonl"), logger)
    assert isinstance(file_sink, JsonlTelemetrySink)
    file_sink.track("QuotesReceived", {})
    file_sink.close()
    assert (tmp_path / "t.jsonl").read_text(encoding="utf-8").count("\n") == 1


def test_metrics_health_and_file(tmp_path: Path) -> None:
    healthy = ProviderMetrics()
    healthy.record_request("/coins/markets", "200", 40.0)
    flaky = ProviderMetrics()
    flaky.record_request("/assets", "429", 10.0)
    flaky.record_request("/assets", "503", 300.0)
    flaky.record_retry("/assets", "rate_limited")

    payload = http_metrics_payload(flaky)
    assert payload["requests_total"] == 2
    assert payload["errors_total"] == 2
    assert payload["retries_total"] == 1
    assert payload["latency_ms"]["buckets"]["250"] == 1
    assert summarize_provider_health(payload) == "api_unstable"

    path = tmp_path / "metrics.json"
    written = write_metrics(path, [("coingecko", healthy), ("coincap", flaky)])

    assert json.loads(path.read_text(encoding="utf-8")) == written
    assert written["coingecko"]["health"] == "ok"
    assert written["coincap"]["health"] == "api_unstable"
