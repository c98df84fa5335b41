"""
Data models for market data lookups.

All monetary values are ``Decimal`` so provider strings survive without
float rounding. ``change_percent_24h`` stays a float, matching how providers
report it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class HistoryTimeframe(str, Enum):
    HOUR = "1H"
    DAY = "24H"
    WEEK = "1W"
    MONTH = "1M"
    YEAR = "1Y"
    ALL = "All"


@dataclass(frozen=True)
class MarketData:
    """
    Snapshot of market data for one asset, quoted in USD.

    Attributes:
        price: Spot price.
        market_cap: Market capitalisation.
        volume: Trailing 24h volume.
        change_percent_24h: Price change over 24h, in percent.
    """
    price: Decimal
    market_cap: Decimal
    volume: Decimal
    change_percent_24h: float

    def to_payload(self) -> dict[str, object]:
        return {
            "price": str(self.price),
            "marketCap": str(self.market_cap),
            "volume": str(self.volume),
            "changePercent24Hr": self.change_percent_24h,
        }


ZERO_MARKET_DATA = MarketData(
    price=Decimal("0"),
    market_cap=Decimal("0"),
    volume=Decimal("0"),
    change_percent_24h=0.0,
)


def price_only(price: Decimal) -> MarketData:
    """Market data carrying only a price, every other field zeroed."""
    return MarketData(
        price=price,
        market_cap=Decimal("0"),
        volume=Decimal("0"),
        change_percent_24h=0.0,
    )


@dataclass(frozen=True)
class HistoryPoint:
    date: int
    price: Decimal


@dataclass(frozen=True)
class FindAllMarketArgs:
    count: int = 250
    page: int = 1


MarketCapResult = dict[str, MarketData]
