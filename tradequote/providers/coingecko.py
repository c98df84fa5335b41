from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Mapping

from tradequote.market.base import MARKET_CAP_DESC
from tradequote.models.market import FindAllMarketArgs, HistoryPoint, HistoryTimeframe, MarketCapResult, MarketData
from tradequote.providers.errors import FatalHttpError
from tradequote.providers.http import ProviderHttpClient
from tradequote.providers.parsing import to_decimal, to_float

_MAX_PER_PAGE = 250

_TIMEFRAME_DAYS = {
    HistoryTimeframe.HOUR: "1",
    HistoryTimeframe.DAY: "1",
    HistoryTimeframe.WEEK: "7",
    HistoryTimeframe.MONTH: "30",
    HistoryTimeframe.YEAR: "365",
    HistoryTimeframe.ALL: "max",
}


class CoinGeckoMarketService:
    """
    CoinGecko market data provider.

    ``coin_ids`` maps CAIP-19 asset ids to CoinGecko coin ids; assets without
    a mapping are unknown to this provider. It is the only provider that
    honours a sort key in ``find_all`` (``market_cap_desc`` or ``volume_desc``).
    """

    name = "coingecko"

    def __init__(self, client: ProviderHttpClient, *, coin_ids: Mapping[str, str]) -> None:
        self._client = client
        self._coin_ids = dict(coin_ids)
        self._asset_ids = {coin_id: asset_id for asset_id, coin_id in self._coin_ids.items()}

    async def find_all(self, args: FindAllMarketArgs, sort: str | None = None) -> MarketCapResult:
        order = sort or MARKET_CAP_DESC
        per_page = min(args.count, _MAX_PER_PAGE)
        pages = max(1, math.ceil(args.count / per_page)) if per_page > 0 else 0

        result: MarketCapResult = {}
        for offset in range(pages):
            payload = await self._client.get_json(
                "/coins/markets",
                params={
                    "vs_currency": "usd",
                    "order": order,
                    "per_page": per_page,
                    "page": args.page + offset,
                    "sparkline": "false",
                },
            )
            if not isinstance(payload, list):
                raise FatalHttpError("coins/markets response must be a list", provider=self.name, payload=payload)
            for entry in payload:
                if not isinstance(entry, dict):
                    continue
                asset_id = self._asset_ids.get(str(entry.get("id")))
                if asset_id is None or asset_id in result:
                    continue
                result[asset_id] = MarketData(
                    price=to_decimal(entry.get("current_price")),
                    market_cap=to_decimal(entry.get("market_cap")),
                    volume=to_decimal(entry.get("total_volume")),
                    change_percent_24h=to_float(entry.get("price_change_percentage_24h")),
                )
            if len(payload) < per_page:
                break
        return result

    async def find_by_asset_id(self, asset_id: str) -> MarketData | None:
        coin_id = self._coin_ids.get(asset_id)
        if coin_id is None:
            return None

        payload = await self._client.get_json(
            f"/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        market_data = payload.get("market_data") if isinstance(payload, dict) else None
        if not isinstance(market_data, dict):
            raise FatalHttpError("coin response missing market_data", provider=self.name, payload=payload)

        price = self._usd(market_data, "current_price")
        if price is None:
            return None
        return MarketData(
            price=price,
            market_cap=self._usd(market_data, "market_cap") or Decimal("0"),
            volume=self._usd(market_data, "total_volume") or Decimal("0"),
            change_percent_24h=to_float(market_data.get("price_change_percentage_24h")),
        )

    async def find_price_history_by_asset_id(
        self, asset_id: str, timeframe: HistoryTimeframe
    ) -> list[HistoryPoint]:
        coin_id = self._coin_ids.get(asset_id)
        if coin_id is None:
            return []

        payload = await self._client.get_json(
            f"/coins/{coin_id}/market_chart",
            params={"vs_currency": "usd", "days": _TIMEFRAME_DAYS[timeframe]},
        )
        prices = payload.get("prices") if isinstance(payload, dict) else None
        if not isinstance(prices, list):
            raise FatalHttpError("market_chart response missing prices", provider=self.name, payload=payload)

        points: list[HistoryPoint] = []
        for entry in prices:
            if not isinstance(entry, list) or len(entry) < 2 or entry[1] is None:
                continue
            points.append(HistoryPoint(date=int(entry[0]), price=to_decimal(entry[1])))
        return points

    @staticmethod
    def _usd(market_data: dict[str, Any], key: str) -> Decimal | None:
        values = market_data.get(key)
        if not isinstance(values, dict) or values.get("usd") is None:
            return None
        return to_decimal(values["usd"])
