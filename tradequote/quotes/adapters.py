from __future__ import annotations

from typing import Protocol

from tradequote.models.quote import ApiQuote, TradeQuoteInput

DEFAULT_POLLING_INTERVAL_S = 20.0


class QuoteProviderAdapter(Protocol):
    """
    One swap provider as seen by the aggregation engine.

    ``fetch_quote`` reports provider-side failures as ``ApiQuote.errors``;
    anything it raises is recorded by the engine as an ``UnknownError`` entry.
    """

    name: str
    polling_interval_s: float | None

    async def fetch_quote(self, quote_input: TradeQuoteInput) -> ApiQuote: ...
