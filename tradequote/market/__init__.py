from tradequote.market.base import AssetRelationResolver, MarketDataProvider
from tradequote.market.catalog import AssetCatalog
from tradequote.market.errors import NoProviderAvailable
from tradequote.market.manager import MarketDataManager

__all__ = [
    "AssetCatalog",
    "AssetRelationResolver",
    "MarketDataManager",
    "MarketDataProvider",
    "NoProviderAvailable",
]
