"""
Quote ranking and the telemetry summary of one quote request.

    difference_from_best = (ratio / best_ratio - 1) * -1

The best quote scores 0, worse quotes score positive fractions (0.05 = 5%
worse). Ranking feeds reporting only; it never changes the active quote.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Sequence

from tradequote.models.asset import Asset
from tradequote.models.quote import ApiQuote

QUOTE_META_VERSION = "20240115"


@dataclass(frozen=True)
class QuoteMeta:
    provider: str
    difference_from_best_quote_decimal_percentage: float
    quote_received: bool
    is_streaming: bool
    is_longtail: bool
    trade_type: str | None
    errors: tuple[str, ...]
    is_actionable: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "swapperName": self.provider,
            "differenceFromBestQuoteDecimalPercentage": self.difference_from_best_quote_decimal_percentage,
            "quoteReceived": self.quote_received,
            "isStreaming": self.is_streaming,
            "isLongtail": self.is_longtail,
            "tradeType": self.trade_type,
            "errors": list(self.errors),
            "isActionable": self.is_actionable,
        }


@dataclass(frozen=True)
class QuoteSummary:
    quote_meta: tuple[QuoteMeta, ...]
    sell_asset_id: str
    buy_asset_id: str
    sell_asset_chain_id: str
    buy_asset_chain_id: str
    sell_amount_usd: str | None
    version: str
    is_actionable: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "quoteMeta": [meta.to_payload() for meta in self.quote_meta],
            "sellAssetId": self.sell_asset_id,
            "buyAssetId": self.buy_asset_id,
            "sellAssetChainId": self.sell_asset_chain_id,
            "buyAssetChainId": self.buy_asset_chain_id,
            "sellAmountUsd": self.sell_amount_usd,
            "version": self.version,
            "isActionable": self.is_actionable,
        }


def _sort_key(api_quote: ApiQuote) -> tuple[int, float]:
    if api_quote.is_actionable:
        tier = 0
    elif api_quote.quote is not None:
        tier = 1
    else:
        tier = 2
    return tier, -api_quote.input_output_ratio


def sort_api_quotes(api_quotes: Iterable[ApiQuote]) -> list[ApiQuote]:
    """Actionable quotes first, then quotes with errors, then errors only; best ratio first within each."""
    return sorted(api_quotes, key=_sort_key)


def best_input_output_ratio(api_quotes: Iterable[ApiQuote]) -> float | None:
    ratios = [api_quote.input_output_ratio for api_quote in api_quotes if api_quote.quote is not None]
    return max(ratios) if ratios else None


def difference_from_best(ratio: float, best_ratio: float | None) -> float:
    if not best_ratio:
        return 0.0
    return (ratio / best_ratio - 1) * -1


def build_quote_summary(
    api_quotes: Sequence[ApiQuote],
    *,
    sell_asset: Asset,
    buy_asset: Asset,
    sell_amount_usd: Decimal | None,
) -> QuoteSummary:
    sorted_quotes = sort_api_quotes(api_quotes)
    best_ratio = best_input_output_ratio(sorted_quotes)

    quote_meta = tuple(
        QuoteMeta(
            provider=api_quote.provider,
            difference_from_best_quote_decimal_percentage=difference_from_best(
                api_quote.input_output_ratio, best_ratio
            ),
            quote_received=api_quote.quote is not None,
            is_streaming=bool(api_quote.quote and api_quote.quote.is_streaming),
            is_longtail=bool(api_quote.quote and api_quote.quote.is_longtail),
            trade_type=(
                api_quote.quote.trade_type.value
                if api_quote.quote is not None and api_quote.quote.trade_type is not None
                else None
            ),
            errors=tuple(error.error for error in api_quote.errors),
            is_actionable=api_quote.is_actionable,
        )
        for api_quote in sorted_quotes
    )

    return QuoteSummary(
        quote_meta=quote_meta,
        sell_asset_id=sell_asset.asset_id,
        buy_asset_id=buy_asset.asset_id,
        sell_asset_chain_id=sell_asset.chain_id,
        buy_asset_chain_id=buy_asset.chain_id,
        sell_amount_usd=str(sell_amount_usd) if sell_amount_usd is not None else None,
        version=QUOTE_META_VERSION,
        is_actionable=any(meta.is_actionable for meta in quote_meta),
    )
