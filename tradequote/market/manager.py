"""
Market data resolution over an ordered list of unreliable providers.

Providers are tried in priority order (more reliable first). Individual
provider failures are always logged and swallowed; exhausting every provider
degrades to ``None`` / ``[]``, except ``find_all`` which raises
``NoProviderAvailable`` because callers always expect some market set.

Lookup order for ``find_by_asset_id``:
    1. NFT -> all-zero market data, no provider call
    2. prioritized providers (pool specialist first for pool assets)
    3. related assets x base-order providers -> price only, other fields zero
    4. None
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Mapping, Sequence, TypeVar

from tradequote.market.base import VOLUME_DESC, AssetRelationResolver, MarketDataProvider
from tradequote.market.catalog import empty_catalog
from tradequote.market.errors import NoProviderAvailable
from tradequote.models.asset import Asset, is_nft
from tradequote.models.market import (
    ZERO_MARKET_DATA,
    FindAllMarketArgs,
    HistoryPoint,
    HistoryTimeframe,
    MarketCapResult,
    MarketData,
    price_only,
)
from tradequote.obs.logging import log_event

T = TypeVar("T")


class MarketDataManager:
    def __init__(
        self,
        providers: Sequence[MarketDataProvider],
        *,
        relation_resolver: AssetRelationResolver | None = None,
        assets_by_id: Mapping[str, Asset] | None = None,
        pool_provider: str | None = None,
        volume_provider: str | None = "coingecko",
        logger: logging.Logger | None = None,
    ) -> None:
        catalog = empty_catalog()
        self._providers = list(providers)
        self._relation_resolver = relation_resolver if relation_resolver is not None else catalog
        self._assets_by_id = assets_by_id if assets_by_id is not None else catalog
        self._pool_provider = pool_provider
        self._volume_provider = volume_provider
        self._logger = logger or logging.getLogger(__name__)

    @property
    def providers(self) -> list[MarketDataProvider]:
        return list(self._providers)

    async def find_all(self, args: FindAllMarketArgs) -> MarketCapResult:
        result = await self._first_hit(
            self._providers,
            lambda provider: provider.find_all(args),
            operation="find_all",
        )
        if not result:
            log_event(
                self._logger,
                logging.ERROR,
                "market_providers_exhausted",
                "No market provider returned data for find_all",
                providers=[provider.name for provider in self._providers],
            )
            raise NoProviderAvailable("Cannot find market service provider for market data.")
        return result

    async def find_by_asset_id(self, asset_id: str) -> MarketData | None:
        if is_nft(asset_id):
            return ZERO_MARKET_DATA

        data = await self._first_hit(
            self._prioritized_providers(asset_id),
            lambda provider: provider.find_by_asset_id(asset_id),
            operation="find_by_asset_id",
            asset_id=asset_id,
        )
        if data is not None:
            return data

        try:
            related_asset_ids = self._relation_resolver.get_related_asset_ids(asset_id)
        except Exception as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "market_related_assets_failed",
                "Related asset lookup failed",
                asset_id=asset_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None

        for related_asset_id in related_asset_ids:
            related = await self._first_hit(
                self._providers,
                lambda provider: provider.find_by_asset_id(related_asset_id),
                operation="find_by_asset_id",
                asset_id=related_asset_id,
            )
            if related is not None:
                log_event(
                    self._logger,
                    logging.INFO,
                    "market_related_asset_price",
                    "Using related asset price as last resort",
                    asset_id=asset_id,
                    related_asset_id=related_asset_id,
                )
                return price_only(related.price)

        log_event(
            self._logger,
            logging.INFO,
            "market_data_not_found",
            "No market data for asset",
            asset_id=asset_id,
            related_checked=len(related_asset_ids),
        )
        return None

    async def find_price_history_by_asset_id(
        self, asset_id: str, timeframe: HistoryTimeframe
    ) -> list[HistoryPoint]:
        if is_nft(asset_id):
            return []

        history = await self._first_hit(
            self._providers,
            lambda provider: provider.find_price_history_by_asset_id(asset_id, timeframe),
            operation="find_price_history_by_asset_id",
            asset_id=asset_id,
        )
        return list(history) if history else []

    async def find_all_sorted_by_volume_desc(self, count: int) -> list[str]:
        # Only one provider supports volume sorting; no waterfall here.
        provider = self._provider_by_name(self._volume_provider)
        if provider is None:
            log_event(
                self._logger,
                logging.WARNING,
                "market_volume_provider_missing",
                "Volume-sorting provider is not configured",
                volume_provider=self._volume_provider,
            )
            return []
        try:
            result = await provider.find_all(FindAllMarketArgs(count=count), VOLUME_DESC)
        except Exception as exc:
            self._log_provider_failure(provider, "find_all_sorted_by_volume_desc", exc)
            return []
        return list(result.keys())[:count]

    def _prioritized_providers(self, asset_id: str) -> list[MarketDataProvider]:
        asset = self._assets_by_id.get(asset_id)
        pool_provider = self._provider_by_name(self._pool_provider)
        if asset is None or not asset.is_pool or pool_provider is None:
            return list(self._providers)
        return [pool_provider, *(provider for provider in self._providers if provider is not pool_provider)]

    def _provider_by_name(self, name: str | None) -> MarketDataProvider | None:
        if name is None:
            return None
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    async def _first_hit(
        self,
        providers: Sequence[MarketDataProvider],
        call: Callable[[MarketDataProvider], Awaitable[T]],
        *,
        operation: str,
        asset_id: str | None = None,
    ) -> T | None:
        """Return the first truthy provider result; failures are logged and skipped."""
        for provider in providers:
            try:
                result = await call(provider)
            except Exception as exc:
                self._log_provider_failure(provider, operation, exc, asset_id=asset_id)
                continue
            if result:
                log_event(
                    self._logger,
                    logging.DEBUG,
                    "market_provider_hit",
                    f"Provider answered {operation}",
                    provider=provider.name,
                    asset_id=asset_id,
                )
                return result
        return None

    def _log_provider_failure(
        self,
        provider: MarketDataProvider,
        operation: str,
        exc: Exception,
        *,
        asset_id: str | None = None,
    ) -> None:
        log_event(
            self._logger,
            logging.WARNING,
            "market_provider_failed",
            f"Provider failed in {operation}",
            provider=provider.name,
            asset_id=asset_id,
            error_type=type(exc).__name__,
            error=str(exc),
        )
