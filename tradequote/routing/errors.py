"""
Structured swap errors returned by route composition.

Route composition never raises across its boundary. Each failure is an
``Err(SwapError)`` tagged with a ``TradeQuoteErrorCode``:

- **UnsupportedChain**: the sell asset lives on a chain without longtail support
- **UnsupportedTradePair**: no DEX aggregator could route the pair
- **InternalError**: reference data missing (native asset, wrapped token)
- **UnknownError**: provider failure with no better classification
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tradequote.models.quote import QuoteError, TradeQuoteErrorCode


@dataclass(frozen=True)
class SwapError:
    message: str
    code: TradeQuoteErrorCode
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_quote_error(self) -> QuoteError:
        return QuoteError(error=self.code.value, message=self.message)


def make_swap_error(
    message: str,
    code: TradeQuoteErrorCode,
    **details: Any,
) -> SwapError:
    return SwapError(message=message, code=code, details=details)
