from decimal import Decimal

import pytest

from tradequote.config import ALLOWANCE_CONTRACT, WETH_ADDRESS, RoutingConfig
from tradequote.models.asset import Asset
from tradequote.models.quote import (
    HopStep,
    TradeQuote,
    TradeQuoteErrorCode,
    TradeQuoteInput,
    TradeType,
)
from tradequote.models.result import Err, Ok
from tradequote.routing.errors import make_swap_error
from tradequote.routing.longtail import (
    AggregatorSelection,
    compose_longtail_route,
    compose_longtail_route_from_config,
)

ETH = Asset.from_asset_id("eip155:1/slip44:60", symbol="ETH")
PEPE = Asset.from_asset_id("eip155:1/erc20:0x6982508145454ce325ddbe47a25d4ec3d2311933", symbol="PEPE")
BTC = Asset.from_asset_id("bip122:000000000019d6689c085ae165831e93/slip44:0", symbol="BTC", precision=8)
RUNE = Asset.from_asset_id("cosmos:thorchain-mainnet-v1/slip44:931", symbol="RUNE", precision=8)
AVAX_TOKEN = Asset.from_asset_id("eip155:43114/erc20:0xb97ef9ef8734c71904d8002f8b6bc66dd9c48a6e", symbol="USDC")

AGGREGATOR = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
ASSETS = {asset.asset_id: asset for asset in (ETH, PEPE, BTC)}


class ChainAdapters:
    def __init__(self, fee_asset_ids: dict[str, str]) -> None:
        self._fee_asset_ids = fee_asset_ids

    def get(self, chain_id: str):
        fee_asset_id = self._fee_asset_ids.get(chain_id)
        if fee_asset_id is None:
            return None
        return _Adapter(fee_asset_id)


class _Adapter:
    def __init__(self, fee_asset_id: str) -> None:
        self._fee_asset_id = fee_asset_id

    def get_fee_asset_id(self) -> str:
        return self._fee_asset_id


class Recorder:
    def __init__(self, selection=None, quotes=None) -> None:
        self.selection = selection or Ok(AggregatorSelection(best_aggregator=AGGREGATOR, quoted_amount_out=5000))
        self.quotes = quotes
        self.selector_calls: list[tuple] = []
        self.primary_calls: list[tuple] = []

    async def select_aggregator(self, native_asset, sell_token, wrapped_native_token, sell_amount):
        self.selector_calls.append((native_asset, sell_token, wrapped_native_token, sell_amount))
        return self.selection

    async def fetch_primary_quotes(self, quote_input, streaming_interval, trade_type):
        self.primary_calls.append((quote_input, streaming_interval, trade_type))
        if self.quotes is not None:
            return self.quotes
        return Ok([primary_quote(quote_input.sell_amount_base_unit)])


def primary_quote(sell_amount: str) -> TradeQuote:
    return TradeQuote(
        id="thor-1",
        provider="THORChain",
        steps=(
            HopStep(ETH, RUNE, sell_amount, "900", allowance_contract="0x0"),
            HopStep(RUNE, BTC, "900", "30", allowance_contract="0x0"),
        ),
        rate=Decimal("0.006"),
        is_streaming=True,
    )


def quote_input(sell_asset: Asset = PEPE) -> TradeQuoteInput:
    return TradeQuoteInput(
        sell_asset=sell_asset,
        buy_asset=BTC,
        sell_amount_base_unit="1000000",
        affiliate_bps="49",
        potential_affiliate_bps="55",
        allow_multi_hop=True,
        receive_address="bc1qexample",
    )


async def compose(recorder: Recorder, *, sell_asset: Asset = PEPE, fee_asset_ids=None, **kwargs):
    return await compose_longtail_route(
        quote_input(sell_asset),
        1,
        ASSETS,
        chain_adapters=ChainAdapters(fee_asset_ids if fee_asset_ids is not None else {"eip155:1": ETH.asset_id}),
        select_aggregator=recorder.select_aggregator,
        fetch_primary_quotes=recorder.fetch_primary_quotes,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_prepends_exactly_one_aggregator_hop() -> None:
    recorder = Recorder()

    result = await compose(recorder)

    assert result.is_ok
    [route] = result.unwrap()
    original = primary_quote("5000")
    assert len(route.steps) == len(original.steps) + 1
    assert route.steps[1:] == original.steps
    first = route.first_hop
    assert first.sell_asset == PEPE
    assert first.sell_amount_base_unit == "1000000"
    assert first.buy_asset == ETH
    assert first.buy_amount_base_unit == "5000"
    assert first.allowance_contract == ALLOWANCE_CONTRACT
    assert first.aggregator == AGGREGATOR
    assert route.is_longtail
    assert route.aggregator == AGGREGATOR
    assert route.longtail_data.longtail_to_l1_expected_amount_out == 5000
    assert route.trade_type == TradeType.LONGTAIL_TO_L1
    assert route.is_streaming
    assert route.last_hop.buy_asset == BTC


@pytest.mark.asyncio
async def test_follow_on_request_sells_native_output() -> None:
    recorder = Recorder()

    await compose(recorder)

    native_asset, sell_token, wrapped, amount = recorder.selector_calls[0]
    assert native_asset == ETH
    assert sell_token == PEPE.asset_reference
    assert wrapped == WETH_ADDRESS
    assert amount == "1000000"

    follow_on, streaming_interval, trade_type = recorder.primary_calls[0]
    assert follow_on.sell_asset == ETH
    assert follow_on.sell_amount_base_unit == "5000"
    assert follow_on.buy_asset == BTC
    assert follow_on.affiliate_bps == "49"
    assert streaming_interval == 1
    assert trade_type == TradeType.LONGTAIL_TO_L1


@pytest.mark.asyncio
async def test_every_primary_quote_is_spliced() -> None:
    quotes = [primary_quote("5000"), primary_quote("5000")]
    recorder = Recorder(quotes=Ok(quotes))

    result = await compose(recorder)

    routes = result.unwrap()
    assert len(routes) == 2
    assert all(route.first_hop.aggregator == AGGREGATOR for route in routes)


@pytest.mark.asyncio
async def test_unsupported_chain_makes_no_calls() -> None:
    recorder = Recorder()

    result = await compose(recorder, sell_asset=AVAX_TOKEN)

    assert isinstance(result, Err)
    assert result.unwrap_err().code == TradeQuoteErrorCode.UNSUPPORTED_CHAIN
    assert recorder.selector_calls == []
    assert recorder.primary_calls == []


@pytest.mark.asyncio
async def test_missing_native_asset_is_internal_error() -> None:
    recorder = Recorder()

    no_adapter = await compose(recorder, fee_asset_ids={})
    unknown_asset = await compose(recorder, fee_asset_ids={"eip155:1": "eip155:1/slip44:999"})

    assert no_adapter.unwrap_err().code == TradeQuoteErrorCode.INTERNAL_ERROR
    assert unknown_asset.unwrap_err().code == TradeQuoteErrorCode.INTERNAL_ERROR
    assert recorder.selector_calls == []


@pytest.mark.asyncio
async def test_missing_wrapped_token_is_internal_error() -> None:
    result = await compose(Recorder(), wrapped_native_tokens={})

    assert result.unwrap_err().code == TradeQuoteErrorCode.INTERNAL_ERROR


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "selection",
    [
        AggregatorSelection(best_aggregator=None, quoted_amount_out=5000),
        AggregatorSelection(best_aggregator=AGGREGATOR, quoted_amount_out=None),
    ],
)
async def test_no_aggregator_route_is_unsupported_pair(selection: AggregatorSelection) -> None:
    recorder = Recorder(selection=Ok(selection))

    result = await compose(recorder)

    assert result.unwrap_err().code == TradeQuoteErrorCode.UNSUPPORTED_TRADE_PAIR
    assert recorder.primary_calls == []


@pytest.mark.asyncio
async def test_selector_error_propagates() -> None:
    error = make_swap_error("pool lookup failed", TradeQuoteErrorCode.UNKNOWN_ERROR, pool="0xabc")
    recorder = Recorder(selection=Err(error))

    result = await compose(recorder)

    assert result.unwrap_err() is error


@pytest.mark.asyncio
async def test_primary_error_propagates() -> None:
    error = make_swap_error("no pool", TradeQuoteErrorCode.UNSUPPORTED_TRADE_PAIR)
    recorder = Recorder(quotes=Err(error))

    result = await compose(recorder)

    assert result.unwrap_err() is error


@pytest.mark.asyncio
async def test_collaborator_exception_becomes_error() -> None:
    async def exploding_selector(*args):
        raise RuntimeError("rpc down")

    result = await compose_longtail_route(
        quote_input(),
        1,
        ASSETS,
        chain_adapters=ChainAdapters({"eip155:1": ETH.asset_id}),
        select_aggregator=exploding_selector,
        fetch_primary_quotes=Recorder().fetch_primary_quotes,
    )

    assert result.unwrap_err().code == TradeQuoteErrorCode.UNKNOWN_ERROR
    assert "rpc down" in str(result.unwrap_err())


@pytest.mark.asyncio
async def test_routing_config_drives_composition() -> None:
    recorder = Recorder()
    routing = RoutingConfig(allowance_contract="0xAllowance", streaming_interval=3)

    result = await compose_longtail_route_from_config(
        quote_input(),
        ASSETS,
        routing,
        chain_adapters=ChainAdapters({"eip155:1": ETH.asset_id}),
        select_aggregator=recorder.select_aggregator,
        fetch_primary_quotes=recorder.fetch_primary_quotes,
    )

    assert result.unwrap()[0].first_hop.allowance_contract == "0xAllowance"
    assert recorder.primary_calls[0][1] == 3


class RaisingChainAdapters:
    def get(self, chain_id: str):
        raise KeyError(f"no adapter registered for {chain_id}")


@pytest.mark.asyncio
async def test_chain_adapter_exception_becomes_error() -> None:
    recorder = Recorder()

    result = await compose_longtail_route(
        quote_input(),
        1,
        ASSETS,
        chain_adapters=RaisingChainAdapters(),
        select_aggregator=recorder.select_aggregator,
        fetch_primary_quotes=recorder.fetch_primary_quotes,
    )

    assert result.unwrap_err().code == TradeQuoteErrorCode.UNKNOWN_ERROR
    assert "no adapter registered" in str(result.unwrap_err())
    assert recorder.selector_calls == []
    assert recorder.primary_calls == []
