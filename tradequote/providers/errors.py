"""
HTTP error classification for market data providers.

Error Classification Strategy:
    HTTP 429 -> RateLimitedError  -> retry with backoff
    HTTP 403 -> WafLimitedError   -> retry with backoff, reduce request rate
    HTTP 5xx -> TransientHttpError -> retry
    Timeout  -> TransientHttpError -> retry
    Network  -> TransientHttpError -> retry
    HTTP 4xx -> FatalHttpError    -> fail immediately (404 for unknown coins)

None of these escape the market data manager: the provider waterfall logs
them and moves on to the next provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderHttpError(Exception):
    """
    Base exception for provider HTTP failures.

    Attributes:
        message: Human-readable error description.
        provider: Provider name the request was sent to.
        status_code: HTTP status code (None for non-HTTP errors).
        response_text: Raw response body text.
        payload: Parsed response payload if available.
    """
    message: str
    provider: str | None = None
    status_code: int | None = None
    response_text: str | None = None
    payload: Any | None = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.response_text:
            parts.append(f"response={self.response_text}")
        return " | ".join(parts)


class RateLimitedError(ProviderHttpError):
    """HTTP 429 - provider rate limit exceeded."""


class WafLimitedError(ProviderHttpError):
    """HTTP 403 - provider firewall limit; request rate too high."""


class TransientHttpError(ProviderHttpError):
    """Retryable failure: 5xx, timeouts, connection errors, invalid JSON."""


class FatalHttpError(ProviderHttpError):
    """Non-retryable failure: 4xx client errors and malformed payloads."""
