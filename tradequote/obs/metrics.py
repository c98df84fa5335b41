from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from tradequote.providers.http import ProviderMetrics

_LATENCY_BUCKETS_MS = (25, 50, 100, 250, 500, 1000, 2000, 5000)


def http_metrics_payload(metrics: ProviderMetrics) -> dict[str, Any]:
    requests_total = sum(metrics.http_requests_total.values())
    retries_total = sum(metrics.http_retries_total.values())
    requests_by_status: dict[str, int] = {}
    errors_total = 0
    for (_endpoint, status), count in metrics.http_requests_total.items():
        requests_by_status[status] = requests_by_status.get(status, 0) + count
        try:
            status_code = int(status)
        except (TypeError, ValueError):
            errors_total += count
        else:
            if not 200 <= status_code < 300:
                errors_total += count

    http_5xx_total = 0
    for status, count in requests_by_status.items():
        if status.isdigit() and 500 <= int(status) <= 599:
            http_5xx_total += count

    latencies = [value for values in metrics.http_latency_ms.values() for value in values]
    buckets = {str(bound): sum(1 for value in latencies if value <= bound) for bound in _LATENCY_BUCKETS_MS}
    buckets["+inf"] = len(latencies)

    return {
        "requests_total": requests_total,
        "errors_total": errors_total,
        "retries_total": retries_total,
        "requests_by_status": requests_by_status,
        "http_429_total": requests_by_status.get("429", 0),
        "http_403_total": requests_by_status.get("403", 0),
        "http_5xx_total": http_5xx_total,
        "latency_ms": {
            "count": len(latencies),
            "min": min(latencies) if latencies else None,
            "max": max(latencies) if latencies else None,
            "buckets": buckets,
        },
    }


def summarize_provider_health(payload: dict[str, Any]) -> str:
    if int(payload.get("http_5xx_total") or 0) > 0:
        return "api_unstable"
    if int(payload.get("http_429_total") or 0) > 0 or int(payload.get("http_403_total") or 0) > 0:
        return "degraded"
    return "ok"


def write_metrics(metrics_path: Path, metrics_by_provider: Iterable[tuple[str, ProviderMetrics]]) -> dict[str, Any]:
    """Write per-provider HTTP metrics with a health verdict; returns the payload written."""
    payload: dict[str, Any] = {}
    for provider, metrics in metrics_by_provider:
        entry = http_metrics_payload(metrics)
        entry["health"] = summarize_provider_health(entry)
        payload[provider] = entry
    metrics_path.parent.mkdir(parents=True, exist_ok=True)
    metrics_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return payload
