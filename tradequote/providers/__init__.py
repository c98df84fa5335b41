from tradequote.providers.coincap import CoinCapMarketService
from tradequote.providers.coingecko import CoinGeckoMarketService
from tradequote.providers.errors import FatalHttpError, RateLimitedError, TransientHttpError, WafLimitedError
from tradequote.providers.http import ProviderHttpClient

__all__ = [
    "CoinCapMarketService",
    "CoinGeckoMarketService",
    "FatalHttpError",
    "ProviderHttpClient",
    "RateLimitedError",
    "TransientHttpError",
    "WafLimitedError",
]
