from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import httpx

from tradequote.config import HttpProviderConfig
from tradequote.obs.logging import log_event
from tradequote.providers.errors import (
    FatalHttpError,
    ProviderHttpError,
    RateLimitedError,
    TransientHttpError,
    WafLimitedError,
)
from tradequote.providers.ratelimit import TokenBucket


@dataclass
class ProviderMetrics:
    http_requests_total: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    http_retries_total: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))
    http_latency_ms: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    def record_request(self, endpoint: str, status: str, latency_ms: float) -> None:
        self.http_requests_total[(endpoint, status)] += 1
        self.http_latency_ms[endpoint].append(latency_ms)

    def record_retry(self, endpoint: str, reason: str) -> None:
        self.http_retries_total[(endpoint, reason)] += 1


_RETRYABLE_STATUS = {
    429: ("rate_limited", RateLimitedError, "Rate limit exceeded"),
    403: ("waf_limited", WafLimitedError, "WAF limit exceeded"),
}


class ProviderHttpClient:
    """
    Async JSON-over-HTTP client shared by the market data providers.

    Requests pass through a token bucket, are retried with capped exponential
    backoff and jitter on 429/403/5xx/timeouts/connection errors, and are
    counted per endpoint in ``metrics``.
    """

    def __init__(
        self,
        provider: str,
        config: HttpProviderConfig,
        *,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: TokenBucket | None = None,
    ) -> None:
        self._provider = provider
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._metrics = ProviderMetrics()
        timeout = httpx.Timeout(config.timeout_s)
        headers = {"Accept": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=timeout,
            transport=transport,
            headers=headers,
        )
        self._rate_limiter = rate_limiter or TokenBucket(rate_per_sec=config.max_rps)

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def metrics(self) -> ProviderMetrics:
        return self._metrics

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        attempts = self._config.max_retries + 1

        for attempt in range(1, attempts + 1):
            await self._rate_limiter.acquire()
            start = time.monotonic()
            retry_reason: str | None = None

            try:
                response = await self._client.get(endpoint, params=params)
            except httpx.TimeoutException as exc:
                self._record_failure(endpoint, "timeout", start, attempt)
                if attempt <= self._config.max_retries:
                    retry_reason = "timeout"
                else:
                    self._log_fail(endpoint, "timeout")
                    raise TransientHttpError("Request timed out", provider=self._provider) from exc
            except httpx.RequestError as exc:
                self._record_failure(endpoint, "connection_error", start, attempt)
                if attempt <= self._config.max_retries:
                    retry_reason = "connection_error"
                else:
                    self._log_fail(endpoint, "connection_error")
                    raise TransientHttpError(
                        "Request failed", provider=self._provider, payload=str(exc)
                    ) from exc
            else:
                retry_reason = self._check_response(endpoint, response, start, attempt)
                if retry_reason is None:
                    try:
                        return response.json()
                    except json.JSONDecodeError as exc:
                        if attempt <= self._config.max_retries:
                            retry_reason = "invalid_json"
                        else:
                            self._log_fail(endpoint, "invalid_json")
                            raise TransientHttpError(
                                "Invalid JSON response",
                                provider=self._provider,
                                status_code=response.status_code,
                                response_text=response.text,
                            ) from exc

            self._metrics.record_retry(endpoint, retry_reason)
            await self._backoff_sleep(attempt)

        raise TransientHttpError("Request failed after retries", provider=self._provider)

    def _check_response(
        self,
        endpoint: str,
        response: httpx.Response,
        start: float,
        attempt: int,
    ) -> str | None:
        """Return a retry reason, None on success; raise when retries are exhausted."""
        latency_ms = (time.monotonic() - start) * 1000
        status = response.status_code
        self._metrics.record_request(endpoint, str(status), latency_ms)
        log_event(
            self._logger,
            logging.DEBUG,
            "http_request",
            f"GET {endpoint}",
            provider=self._provider,
            endpoint=endpoint,
            status=status,
            attempt=attempt,
            latency_ms=round(latency_ms, 2),
        )

        error: ProviderHttpError | None = None
        reason: str | None = None
        if status in _RETRYABLE_STATUS:
            reason, error_cls, message = _RETRYABLE_STATUS[status]
            error = error_cls(message, provider=self._provider, status_code=status, response_text=response.text)
        elif status >= 500:
            reason = "server_error"
            error = TransientHttpError(
                "Server error", provider=self._provider, status_code=status, response_text=response.text
            )
        elif status >= 400:
            self._log_fail(endpoint, "FatalHttpError")
            raise FatalHttpError(
                "HTTP error", provider=self._provider, status_code=status, response_text=response.text
            )

        if error is None:
            return None

        log_event(
            self._logger,
            logging.WARNING,
            f"provider_{reason}",
            "Retryable provider response; backing off",
            provider=self._provider,
            endpoint=endpoint,
            status=status,
            attempt=attempt,
        )
        if attempt <= self._config.max_retries:
            return reason
        self._log_fail(endpoint, type(error).__name__)
        raise error

    def _record_failure(self, endpoint: str, status_label: str, start: float, attempt: int) -> None:
        latency_ms = (time.monotonic() - start) * 1000
        self._metrics.record_request(endpoint, status_label, latency_ms)
        log_event(
            self._logger,
            logging.WARNING,
            "http_request",
            f"GET {endpoint}",
            provider=self._provider,
            endpoint=endpoint,
            status=status_label,
            attempt=attempt,
            latency_ms=round(latency_ms, 2),
        )

    async def _backoff_sleep(self, attempt: int) -> None:
        base = self._config.backoff_base_s
        capped = min(self._config.backoff_max_s, base * (2 ** (attempt - 1)))
        jitter = random.uniform(0, base)
        await asyncio.sleep(min(self._config.backoff_max_s, capped + jitter))

    def _log_fail(self, endpoint: str, error_type: str) -> None:
        log_event(
            self._logger,
            logging.ERROR,
            "http_fail",
            f"Request failed for {endpoint}",
            provider=self._provider,
            endpoint=endpoint,
            error_type=error_type,
        )
