from tradequote.routing.errors import SwapError, make_swap_error
from tradequote.routing.filters import (
    filter_cross_chain_evm_buy_assets,
    filter_same_chain_evm_buy_assets,
    filter_same_chain_solana_buy_assets,
)
from tradequote.routing.longtail import (
    AggregatorSelection,
    compose_longtail_route,
    compose_longtail_route_from_config,
)
from tradequote.routing.slippage import limit_with_manual_slippage, subtract_basis_point_amount

__all__ = [
    "AggregatorSelection",
    "SwapError",
    "compose_longtail_route",
    "compose_longtail_route_from_config",
    "filter_cross_chain_evm_buy_assets",
    "filter_same_chain_evm_buy_assets",
    "filter_same_chain_solana_buy_assets",
    "limit_with_manual_slippage",
    "make_swap_error",
    "subtract_basis_point_amount",
]
