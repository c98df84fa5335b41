"""
Longtail route composition.

A longtail token is one the primary settlement layer cannot sell directly.
The composer swaps it into the chain's native asset through the best DEX
aggregator, asks the primary layer for quotes selling that native amount, and
prepends the aggregator leg to every returned quote:

    hop 0: longtail token -> native asset   (aggregator, allowance contract)
    hop 1..n: primary quote hops, unchanged and in order

Every failure comes back as ``Err(SwapError)``; collaborator exceptions are
logged and converted to ``UnknownError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Collection, Mapping, Protocol, Sequence

from tradequote.config import ALLOWANCE_CONTRACT, WETH_ADDRESS, RoutingConfig
from tradequote.models.asset import ETH_CHAIN_ID, Asset, split_asset_id
from tradequote.models.quote import HopStep, LongtailData, TradeQuote, TradeQuoteErrorCode, TradeQuoteInput, TradeType
from tradequote.models.result import Err, Ok, Result
from tradequote.obs.logging import log_event
from tradequote.routing.errors import SwapError, make_swap_error

_TOKEN_NAMESPACES = frozenset({"erc20", "bep20"})


class ChainAdapter(Protocol):
    def get_fee_asset_id(self) -> str: ...


class ChainAdapterManager(Protocol):
    def get(self, chain_id: str) -> ChainAdapter | None: ...


@dataclass(frozen=True)
class AggregatorSelection:
    best_aggregator: str | None
    quoted_amount_out: int | None


class AggregatorSelector(Protocol):
    def __call__(
        self,
        native_asset: Asset,
        sell_token: str,
        wrapped_native_token: str,
        sell_amount_base_unit: str,
    ) -> Awaitable[Result[AggregatorSelection, SwapError]]: ...


class PrimaryQuoter(Protocol):
    def __call__(
        self,
        quote_input: TradeQuoteInput,
        streaming_interval: int,
        trade_type: TradeType,
    ) -> Awaitable[Result[list[TradeQuote], SwapError]]: ...


def token_address_from_asset(asset: Asset, wrapped_native_token: str) -> str:
    """Contract address of a token; native assets trade as their wrapped token."""
    _, namespace, reference = split_asset_id(asset.asset_id)
    if namespace in _TOKEN_NAMESPACES:
        return reference
    return wrapped_native_token


def _splice(quote: TradeQuote, leading_hop: HopStep, expected_amount_out: int) -> TradeQuote:
    return replace(
        quote,
        steps=(leading_hop, *quote.steps),
        is_longtail=True,
        aggregator=leading_hop.aggregator,
        longtail_data=LongtailData(longtail_to_l1_expected_amount_out=expected_amount_out),
        trade_type=TradeType.LONGTAIL_TO_L1,
    )


async def compose_longtail_route(
    quote_input: TradeQuoteInput,
    streaming_interval: int,
    assets_by_id: Mapping[str, Asset],
    *,
    chain_adapters: ChainAdapterManager,
    select_aggregator: AggregatorSelector,
    fetch_primary_quotes: PrimaryQuoter,
    allowance_contract: str = ALLOWANCE_CONTRACT,
    supported_chain_ids: Collection[str] = frozenset({ETH_CHAIN_ID}),
    wrapped_native_tokens: Mapping[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> Result[list[TradeQuote], SwapError]:
    log = logger or logging.getLogger(__name__)
    wrapped_tokens = wrapped_native_tokens if wrapped_native_tokens is not None else {ETH_CHAIN_ID: WETH_ADDRESS}
    sell_asset = quote_input.sell_asset
    chain_id = sell_asset.chain_id

    if chain_id not in supported_chain_ids:
        return _fail(
            log,
            f"Longtail routing is not supported on chain {chain_id}",
            TradeQuoteErrorCode.UNSUPPORTED_CHAIN,
            chain_id=chain_id,
        )

    try:
        adapter = chain_adapters.get(chain_id)
        native_asset_id = adapter.get_fee_asset_id() if adapter is not None else None
    except Exception as exc:
        return _fail(
            log,
            f"Chain adapter lookup failed: {exc}",
            TradeQuoteErrorCode.UNKNOWN_ERROR,
            chain_id=chain_id,
            error_type=type(exc).__name__,
        )
    native_asset = assets_by_id.get(native_asset_id) if native_asset_id else None
    if native_asset is None:
        return _fail(
            log,
            "Native asset not found",
            TradeQuoteErrorCode.INTERNAL_ERROR,
            chain_id=chain_id,
            native_asset_id=native_asset_id,
        )

    wrapped_native_token = wrapped_tokens.get(chain_id)
    if not wrapped_native_token:
        return _fail(
            log,
            "Wrapped native token not found",
            TradeQuoteErrorCode.INTERNAL_ERROR,
            chain_id=chain_id,
        )

    try:
        selection_result = await select_aggregator(
            native_asset,
            token_address_from_asset(sell_asset, wrapped_native_token),
            wrapped_native_token,
            quote_input.sell_amount_base_unit,
        )
    except Exception as exc:
        return _fail(
            log,
            f"Aggregator selection failed: {exc}",
            TradeQuoteErrorCode.UNKNOWN_ERROR,
            error_type=type(exc).__name__,
        )
    if selection_result.is_err:
        return selection_result

    selection: AggregatorSelection = selection_result.unwrap()
    if not selection.best_aggregator or not selection.quoted_amount_out:
        return _fail(
            log,
            "No aggregator route for pair",
            TradeQuoteErrorCode.UNSUPPORTED_TRADE_PAIR,
            sell_asset_id=sell_asset.asset_id,
            buy_asset_id=quote_input.buy_asset.asset_id,
        )

    amount_out = int(selection.quoted_amount_out)
    follow_on_input = replace(
        quote_input,
        sell_asset=native_asset,
        sell_amount_base_unit=str(amount_out),
    )

    try:
        primary_result = await fetch_primary_quotes(follow_on_input, streaming_interval, TradeType.LONGTAIL_TO_L1)
    except Exception as exc:
        return _fail(
            log,
            f"Primary quote request failed: {exc}",
            TradeQuoteErrorCode.UNKNOWN_ERROR,
            error_type=type(exc).__name__,
        )
    if primary_result.is_err:
        return primary_result

    primary_quotes: Sequence[TradeQuote] = primary_result.unwrap()
    leading_hop = HopStep(
        sell_asset=sell_asset,
        buy_asset=native_asset,
        sell_amount_base_unit=quote_input.sell_amount_base_unit,
        buy_amount_base_unit=str(amount_out),
        allowance_contract=allowance_contract,
        aggregator=selection.best_aggregator,
    )
    routes = [_splice(quote, leading_hop, amount_out) for quote in primary_quotes]

    log_event(
        log,
        logging.INFO,
        "longtail_route_composed",
        "Composed longtail routes",
        sell_asset_id=sell_asset.asset_id,
        aggregator=selection.best_aggregator,
        routes=len(routes),
    )
    return Ok(routes)


def _fail(log: logging.Logger, message: str, code: TradeQuoteErrorCode, **details: object) -> Err[SwapError]:
    log_event(log, logging.WARNING, "longtail_route_failed", message, code=code.value, **details)
    return Err(make_swap_error(message, code, **details))


async def compose_longtail_route_from_config(
    quote_input: TradeQuoteInput,
    assets_by_id: Mapping[str, Asset],
    routing: RoutingConfig,
    *,
    chain_adapters: ChainAdapterManager,
    select_aggregator: AggregatorSelector,
    fetch_primary_quotes: PrimaryQuoter,
    logger: logging.Logger | None = None,
) -> Result[list[TradeQuote], SwapError]:
    return await compose_longtail_route(
        quote_input,
        routing.streaming_interval,
        assets_by_id,
        chain_adapters=chain_adapters,
        select_aggregator=select_aggregator,
        fetch_primary_quotes=fetch_primary_quotes,
        allowance_contract=routing.allowance_contract,
        supported_chain_ids=frozenset(routing.longtail_chain_ids),
        wrapped_native_tokens=routing.wrapped_native_tokens,
        logger=logger,
    )
