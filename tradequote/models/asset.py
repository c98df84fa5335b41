"""
Asset reference data and CAIP identifier helpers.

Assets are addressed with CAIP-19 identifiers
(``<chain_namespace>:<chain_reference>/<asset_namespace>:<asset_reference>``)
and chains with CAIP-2 identifiers (``<chain_namespace>:<chain_reference>``).

Example:
    >>> chain_id_from_asset_id("eip155:1/erc20:0xa0b8...")
    'eip155:1'
    >>> is_nft("eip155:1/erc721:0xabc/42")
    True
"""

from __future__ import annotations

from dataclasses import dataclass

ETH_CHAIN_ID = "eip155:1"
ARBITRUM_NOVA_CHAIN_ID = "eip155:42170"

EVM_NAMESPACE = "eip155"
SOLANA_NAMESPACE = "solana"

NFT_ASSET_NAMESPACES = frozenset({"erc721", "erc1155", "bep721", "bep1155"})


def split_asset_id(asset_id: str) -> tuple[str, str, str]:
    """
    Split a CAIP-19 identifier into chain id, asset namespace and asset reference.

    Raises:
        ValueError: If the identifier is not a CAIP-19 string.
    """
    chain_part, sep, asset_part = asset_id.partition("/")
    if not sep or ":" not in chain_part or ":" not in asset_part:
        raise ValueError(f"Invalid asset id: {asset_id}")
    asset_namespace, _, asset_reference = asset_part.partition(":")
    return chain_part, asset_namespace, asset_reference


def chain_id_from_asset_id(asset_id: str) -> str:
    chain_id, _, _ = split_asset_id(asset_id)
    return chain_id


def chain_namespace(chain_id: str) -> str:
    return chain_id.partition(":")[0]


def is_evm_chain_id(chain_id: str) -> bool:
    return chain_namespace(chain_id) == EVM_NAMESPACE


def is_solana_chain_id(chain_id: str) -> bool:
    return chain_namespace(chain_id) == SOLANA_NAMESPACE


def is_nft(asset_id: str) -> bool:
    try:
        _, asset_namespace, _ = split_asset_id(asset_id)
    except ValueError:
        return False
    return asset_namespace in NFT_ASSET_NAMESPACES


def account_from_account_id(account_id: str) -> str:
    """Return the address part of a CAIP-10 account id (``eip155:1:0xabc`` -> ``0xabc``)."""
    parts = account_id.split(":")
    if len(parts) != 3 or not parts[2]:
        raise ValueError(f"Invalid account id: {account_id}")
    return parts[2]


@dataclass(frozen=True)
class Asset:
    """
    Immutable asset reference data owned by the asset catalog.

    Attributes:
        asset_id: CAIP-19 identifier.
        chain_id: CAIP-2 identifier of the chain the asset lives on.
        symbol: Display ticker.
        precision: Number of decimals between display and base units.
        is_pool: True for liquidity-pool share tokens.
        related_asset_key: Assets sharing this key are the same asset on
            different chains or wrappers (e.g. bridged USDC).
    """
    asset_id: str
    chain_id: str
    symbol: str = ""
    precision: int = 18
    is_pool: bool = False
    related_asset_key: str | None = None

    @property
    def is_nft(self) -> bool:
        return is_nft(self.asset_id)

    @property
    def asset_reference(self) -> str:
        _, _, reference = split_asset_id(self.asset_id)
        return reference

    @classmethod
    def from_asset_id(cls, asset_id: str, **kwargs: object) -> "Asset":
        return cls(asset_id=asset_id, chain_id=chain_id_from_asset_id(asset_id), **kwargs)  # type: ignore[arg-type]
