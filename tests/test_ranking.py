from decimal import Decimal

import pytest

from tradequote.models.asset import Asset
from tradequote.models.quote import ApiQuote, HopStep, QuoteError, TradeQuote, TradeType
from tradequote.quotes.ranking import (
    QUOTE_META_VERSION,
    build_quote_summary,
    difference_from_best,
    sort_api_quotes,
)

ETH = Asset.from_asset_id("eip155:1/slip44:60", symbol="ETH")
BTC = Asset.from_asset_id("bip122:000000000019d6689c085ae165831e93/slip44:0", symbol="BTC", precision=8)


def api_quote(provider: str, ratio: float, *, errors: tuple[QuoteError, ...] = (), with_quote: bool = True) -> ApiQuote:
    quote = None
    if with_quote:
        quote = TradeQuote(
            id=f"{provider}-1",
            provider=provider,
            steps=(HopStep(ETH, BTC, "1000", "50", allowance_contract="0x0"),),
            rate=Decimal(str(ratio)),
            trade_type=TradeType.L1_TO_L1,
        )
    return ApiQuote(provider=provider, quote=quote, errors=errors, input_output_ratio=ratio)


def test_difference_from_best_percentages() -> None:
    quotes = [api_quote("thorchain", 1.0), api_quote("zrx", 0.95), api_quote("lifi", 0.9)]

    summary = build_quote_summary(quotes, sell_asset=ETH, buy_asset=BTC, sell_amount_usd=Decimal("2500"))

    differences = [meta.difference_from_best_quote_decimal_percentage for meta in summary.quote_meta]
    assert differences == pytest.approx([0.0, 0.05, 0.1])


def test_difference_without_best_is_zero() -> None:
    assert difference_from_best(0.9, None) == 0.0
    assert difference_from_best(0.9, 0.0) == 0.0


def test_sort_puts_actionable_quotes_first() -> None:
    errored = api_quote("zrx", 1.2, errors=(QuoteError(error="UnknownError"),))
    no_quote = api_quote("lifi", 0.0, errors=(QuoteError(error="UnsupportedTradePair"),), with_quote=False)
    worse = api_quote("cowswap", 0.8)
    best = api_quote("thorchain", 0.95)

    ordered = sort_api_quotes([no_quote, worse, errored, best])

    assert [quote.provider for quote in ordered] == ["thorchain", "cowswap", "zrx", "lifi"]


def test_summary_payload_shape() -> None:
    quotes = [
        api_quote("thorchain", 1.0),
        api_quote("lifi", 0.0, errors=(QuoteError(error="UnsupportedTradePair"),), with_quote=False),
    ]

    payload = build_quote_summary(
        quotes,
        sell_asset=ETH,
        buy_asset=BTC,
        sell_amount_usd=Decimal("2500.5"),
    ).to_payload()

    assert payload["version"] == QUOTE_META_VERSION == "20240115"
    assert payload["sellAssetId"] == ETH.asset_id
    assert payload["buyAssetChainId"] == BTC.chain_id
    assert payload["sellAmountUsd"] == "2500.5"
    assert payload["isActionable"] is True
    meta = {entry["swapperName"]: entry for entry in payload["quoteMeta"]}
    assert meta["thorchain"]["isActionable"] is True
    assert meta["thorchain"]["tradeType"] == "L1ToL1"
    assert meta["lifi"]["quoteReceived"] is False
    assert meta["lifi"]["errors"] == ["UnsupportedTradePair"]
    assert meta["lifi"]["isActionable"] is False


def test_request_not_actionable_when_every_quote_has_errors() -> None:
    quotes = [api_quote("zrx", 1.0, errors=(QuoteError(error="UnknownError"),))]

    summary = build_quote_summary(quotes, sell_asset=ETH, buy_asset=BTC, sell_amount_usd=None)

    assert summary.is_actionable is False
    assert summary.sell_amount_usd is None
