"""
Data models for trade quotes and quote requests.

A ``TradeQuote`` is an ordered route of one or more ``HopStep`` legs. Quotes
are immutable: a re-fetch produces a new quote that supersedes the old one.
``ApiQuote`` wraps the latest provider response (quote or structured errors)
as stored in the per-provider quote set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Literal

from tradequote.models.asset import Asset

QuoteOrRate = Literal["quote", "rate"]


class TradeQuoteErrorCode(str, Enum):
    UNSUPPORTED_CHAIN = "UnsupportedChain"
    UNSUPPORTED_TRADE_PAIR = "UnsupportedTradePair"
    INTERNAL_ERROR = "InternalError"
    UNKNOWN_ERROR = "UnknownError"


class TradeType(str, Enum):
    L1_TO_L1 = "L1ToL1"
    LONGTAIL_TO_L1 = "LongTailToL1"
    L1_TO_LONGTAIL = "L1ToLongTail"
    LONGTAIL_TO_LONGTAIL = "LongTailToLongTail"


@dataclass(frozen=True)
class HopStep:
    """
    One leg of a trade route.

    Attributes:
        sell_asset: Asset sold on this leg.
        buy_asset: Asset received on this leg.
        sell_amount_base_unit: Sell amount including protocol fees, base units.
        buy_amount_base_unit: Expected receive amount, base units.
        allowance_contract: Contract the sell token must be approved for.
        aggregator: DEX aggregator contract used for this leg, if any.
    """
    sell_asset: Asset
    buy_asset: Asset
    sell_amount_base_unit: str
    buy_amount_base_unit: str
    allowance_contract: str
    aggregator: str | None = None


@dataclass(frozen=True)
class LongtailData:
    longtail_to_l1_expected_amount_out: int


@dataclass(frozen=True)
class TradeQuote:
    """
    Firm quote or indicative rate produced by one provider.

    A quote is executable once it carries a receive address: only then can
    it be approved and signed.
    """
    id: str
    provider: str
    steps: tuple[HopStep, ...]
    rate: Decimal
    is_streaming: bool = False
    is_longtail: bool = False
    aggregator: str | None = None
    longtail_data: LongtailData | None = None
    receive_address: str | None = None
    affiliate_bps: str = "0"
    potential_affiliate_bps: str = "0"
    slippage_tolerance_percentage_decimal: str | None = None
    trade_type: TradeType | None = None

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("TradeQuote requires at least one hop")

    @property
    def is_executable(self) -> bool:
        return self.receive_address is not None

    @property
    def first_hop(self) -> HopStep:
        return self.steps[0]

    @property
    def last_hop(self) -> HopStep:
        return self.steps[-1]


@dataclass(frozen=True)
class QuoteError:
    error: str
    message: str = ""


@dataclass(frozen=True)
class ApiQuote:
    """
    Latest response of one provider: a quote, structured errors, or both.

    Attributes:
        provider: Provider name, the key in the quote set.
        quote: Returned quote, if any.
        errors: Structured errors; an empty tuple means no errors.
        input_output_ratio: USD value out per USD value in; higher is better.
    """
    provider: str
    quote: TradeQuote | None
    errors: tuple[QuoteError, ...] = field(default_factory=tuple)
    input_output_ratio: float = 0.0

    @property
    def is_actionable(self) -> bool:
        return self.quote is not None and not self.errors


@dataclass(frozen=True)
class TradeQuoteInput:
    """Normalized request shared by every quote provider for one input generation."""
    sell_asset: Asset
    buy_asset: Asset
    sell_amount_base_unit: str
    affiliate_bps: str
    potential_affiliate_bps: str
    allow_multi_hop: bool
    quote_or_rate: QuoteOrRate = "quote"
    sell_account_number: int | None = None
    sell_account_type: str | None = None
    receive_account_number: int | None = None
    receive_address: str | None = None
    slippage_tolerance_percentage_decimal: str | None = None
    pub_key: str | None = None
