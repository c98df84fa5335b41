from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable, Mapping

from tradequote.models.market import FindAllMarketArgs, HistoryPoint, HistoryTimeframe, MarketCapResult, MarketData
from tradequote.providers.errors import FatalHttpError
from tradequote.providers.http import ProviderHttpClient
from tradequote.providers.parsing import to_decimal, to_float

_MAX_LIMIT = 2000

# (candle interval, lookback window); ALL starts at the CoinCap epoch.
_TIMEFRAME_INTERVALS: dict[HistoryTimeframe, tuple[str, timedelta | None]] = {
    HistoryTimeframe.HOUR: ("m1", timedelta(hours=1)),
    HistoryTimeframe.DAY: ("m15", timedelta(days=1)),
    HistoryTimeframe.WEEK: ("h1", timedelta(days=7)),
    HistoryTimeframe.MONTH: ("h6", timedelta(days=30)),
    HistoryTimeframe.YEAR: ("d1", timedelta(days=365)),
    HistoryTimeframe.ALL: ("d1", None),
}
_ALL_HISTORY_START_MS = 1_367_107_200_000


def _now_ms() -> int:
    return int(time.time() * 1000)


class CoinCapMarketService:
    """
    CoinCap market data provider.

    Results are always ordered by market cap; the sort key is ignored.
    """

    name = "coincap"

    def __init__(
        self,
        client: ProviderHttpClient,
        *,
        coin_ids: Mapping[str, str],
        now_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._client = client
        self._coin_ids = dict(coin_ids)
        self._asset_ids = {coin_id: asset_id for asset_id, coin_id in self._coin_ids.items()}
        self._now_ms = now_ms

    async def find_all(self, args: FindAllMarketArgs, sort: str | None = None) -> MarketCapResult:
        limit = min(args.count, _MAX_LIMIT)
        payload = await self._client.get_json(
            "/assets",
            params={"limit": limit, "offset": (args.page - 1) * limit},
        )
        entries = self._data(payload)
        if not isinstance(entries, list):
            raise FatalHttpError("assets response must hold a data list", provider=self.name, payload=payload)

        result: MarketCapResult = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            asset_id = self._asset_ids.get(str(entry.get("id")))
            if asset_id is None:
                continue
            result[asset_id] = self._market_data(entry)
        return result

    async def find_by_asset_id(self, asset_id: str) -> MarketData | None:
        coin_id = self._coin_ids.get(asset_id)
        if coin_id is None:
            return None

        payload = await self._client.get_json(f"/assets/{coin_id}")
        entry = self._data(payload)
        if not isinstance(entry, dict):
            raise FatalHttpError("asset response must hold a data object", provider=self.name, payload=payload)
        if entry.get("priceUsd") is None:
            return None
        return self._market_data(entry)

    async def find_price_history_by_asset_id(
        self, asset_id: str, timeframe: HistoryTimeframe
    ) -> list[HistoryPoint]:
        coin_id = self._coin_ids.get(asset_id)
        if coin_id is None:
            return []

        interval, lookback = _TIMEFRAME_INTERVALS[timeframe]
        end = self._now_ms()
        start = end - int(lookback.total_seconds() * 1000) if lookback else _ALL_HISTORY_START_MS
        payload = await self._client.get_json(
            f"/assets/{coin_id}/history",
            params={"interval": interval, "start": start, "end": end},
        )
        entries = self._data(payload)
        if not isinstance(entries, list):
            raise FatalHttpError("history response must hold a data list", provider=self.name, payload=payload)

        points: list[HistoryPoint] = []
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("priceUsd") is None or entry.get("time") is None:
                continue
            points.append(HistoryPoint(date=int(entry["time"]), price=to_decimal(entry["priceUsd"])))
        return points

    @staticmethod
    def _data(payload: Any) -> Any:
        return payload.get("data") if isinstance(payload, dict) else None

    @staticmethod
    def _market_data(entry: dict[str, Any]) -> MarketData:
        return MarketData(
            price=to_decimal(entry.get("priceUsd")),
            market_cap=to_decimal(entry.get("marketCapUsd")),
            volume=to_decimal(entry.get("volumeUsd24Hr")),
            change_percent_24h=to_float(entry.get("changePercent24Hr")),
        )
