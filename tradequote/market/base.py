from __future__ import annotations

from typing import Protocol, Sequence

from tradequote.models.market import FindAllMarketArgs, HistoryPoint, HistoryTimeframe, MarketCapResult, MarketData

VOLUME_DESC = "volume_desc"
MARKET_CAP_DESC = "market_cap_desc"


class MarketDataProvider(Protocol):
    """Capability boundary every market data source implements."""

    name: str

    async def find_all(self, args: FindAllMarketArgs, sort: str | None = None) -> MarketCapResult: ...

    async def find_by_asset_id(self, asset_id: str) -> MarketData | None: ...

    async def find_price_history_by_asset_id(
        self, asset_id: str, timeframe: HistoryTimeframe
    ) -> Sequence[HistoryPoint]: ...


class AssetRelationResolver(Protocol):
    def get_related_asset_ids(self, asset_id: str) -> list[str]: ...
