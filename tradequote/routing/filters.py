"""
Buy-asset candidates for a given sell asset.

EVM filters never offer Arbitrum Nova assets: no swapper supports them.
"""

from __future__ import annotations

from typing import Callable, Iterable

from tradequote.models.asset import ARBITRUM_NOVA_CHAIN_ID, Asset, is_evm_chain_id, is_solana_chain_id

ChainIdPredicate = Callable[[str, str], bool]


def _same_chain(buy_chain_id: str, sell_chain_id: str) -> bool:
    return buy_chain_id == sell_chain_id


def _cross_chain(buy_chain_id: str, sell_chain_id: str) -> bool:
    return buy_chain_id != sell_chain_id


def _filter_evm(assets: Iterable[Asset], sell_asset: Asset, predicate: ChainIdPredicate) -> list[Asset]:
    if not is_evm_chain_id(sell_asset.chain_id):
        return []
    return [
        asset
        for asset in assets
        if is_evm_chain_id(asset.chain_id)
        and predicate(asset.chain_id, sell_asset.chain_id)
        and asset.chain_id != ARBITRUM_NOVA_CHAIN_ID
    ]


def _filter_solana(assets: Iterable[Asset], sell_asset: Asset, predicate: ChainIdPredicate) -> list[Asset]:
    if not is_solana_chain_id(sell_asset.chain_id):
        return []
    return [
        asset
        for asset in assets
        if is_solana_chain_id(asset.chain_id) and predicate(asset.chain_id, sell_asset.chain_id)
    ]


def filter_same_chain_evm_buy_assets(assets: Iterable[Asset], sell_asset: Asset) -> list[Asset]:
    return _filter_evm(assets, sell_asset, _same_chain)


def filter_cross_chain_evm_buy_assets(assets: Iterable[Asset], sell_asset: Asset) -> list[Asset]:
    return _filter_evm(assets, sell_asset, _cross_chain)


def filter_same_chain_solana_buy_assets(assets: Iterable[Asset], sell_asset: Asset) -> list[Asset]:
    return _filter_solana(assets, sell_asset, _same_chain)
