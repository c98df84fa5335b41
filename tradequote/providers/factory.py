from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from tradequote.config import MarketConfig
from tradequote.market.base import MarketDataProvider
from tradequote.providers.coincap import CoinCapMarketService
from tradequote.providers.coingecko import CoinGeckoMarketService
from tradequote.providers.http import ProviderHttpClient


@dataclass(frozen=True)
class MarketProviderSet:
    providers: list[MarketDataProvider]
    clients: list[ProviderHttpClient]

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()


def build_market_providers(
    config: MarketConfig,
    *,
    logger: logging.Logger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> MarketProviderSet:
    """Instantiate enabled providers in configured priority order."""
    providers: list[MarketDataProvider] = []
    clients: list[ProviderHttpClient] = []
    for entry in config.providers:
        if not entry.enabled or entry.http is None:
            continue
        client = ProviderHttpClient(entry.name, entry.http, logger=logger, transport=transport)
        clients.append(client)
        if entry.name == "coingecko":
            providers.append(CoinGeckoMarketService(client, coin_ids=entry.coin_ids))
        elif entry.name == "coincap":
            providers.append(CoinCapMarketService(client, coin_ids=entry.coin_ids))
    return MarketProviderSet(providers=providers, clients=clients)
