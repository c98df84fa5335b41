from __future__ import annotations

from typing import Iterable, Iterator, Mapping

from tradequote.config import AssetConfig
from tradequote.models.asset import Asset


class AssetCatalog(Mapping[str, Asset]):
    """
    Read-only asset reference data keyed by asset id.

    Doubles as the related-asset resolver: assets sharing a
    ``related_asset_key`` are related to each other, in catalog order.
    """

    def __init__(self, assets: Iterable[Asset]) -> None:
        self._assets: dict[str, Asset] = {}
        self._related: dict[str, list[str]] = {}
        for asset in assets:
            if asset.asset_id in self._assets:
                raise ValueError(f"Duplicate asset id in catalog: {asset.asset_id}")
            self._assets[asset.asset_id] = asset
            if asset.related_asset_key:
                self._related.setdefault(asset.related_asset_key, []).append(asset.asset_id)

    @classmethod
    def from_config(cls, assets: Iterable[AssetConfig]) -> "AssetCatalog":
        return cls(
            Asset.from_asset_id(
                entry.asset_id,
                symbol=entry.symbol,
                precision=entry.precision,
                is_pool=entry.is_pool,
                related_asset_key=entry.related_asset_key,
            )
            for entry in assets
        )

    def __getitem__(self, asset_id: str) -> Asset:
        return self._assets[asset_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def get_related_asset_ids(self, asset_id: str) -> list[str]:
        asset = self._assets.get(asset_id)
        if asset is None or not asset.related_asset_key:
            return []
        return [related for related in self._related[asset.related_asset_key] if related != asset_id]


def empty_catalog() -> AssetCatalog:
    return AssetCatalog(())
