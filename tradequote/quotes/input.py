"""
Normalized quote-request construction.

``TradeInputs`` holds every dependency that invalidates the shared request.
Either ``should_skip`` holds and no provider is called, or
``build_trade_quote_input`` turns the inputs into one ``TradeQuoteInput``
shared by all adapters of the generation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Mapping, Union

from tradequote.config import FeeModelConfig
from tradequote.fees.model import calculate_fees, to_bps_string
from tradequote.models.asset import Asset, account_from_account_id
from tradequote.models.quote import QuoteOrRate, TradeQuote, TradeQuoteInput

_ZERO = Decimal("0")


class QuoteInputError(ValueError):
    """Raised when a firm quote request lacks required account context."""


class _Skip:
    def __repr__(self) -> str:
        return "SKIP"


SKIP = _Skip()

QuoteRequestInput = Union[TradeQuoteInput, _Skip]


@dataclass(frozen=True)
class AccountMetadata:
    account_number: int | None
    account_type: str | None = None


@dataclass(frozen=True)
class TradeInputs:
    """
    User and session inputs that drive quote re-fetching.

    Attributes:
        sell_amount_crypto_precision: Sell amount in display units.
        sell_asset_usd_rate: USD price of the sell asset, if known.
        sell_account_id: CAIP-10 account id of the selling account.
        receive_address: Manual receive address, else the wallet's.
        fox_voting_power / thor_voting_power: Governance stake snapshots.
        is_voting_power_loading: Stake snapshot still being fetched.
        is_ledger_wallet: Ledger signing needs the sell account public key.
    """
    sell_asset: Asset
    buy_asset: Asset
    sell_amount_crypto_precision: Decimal
    sell_asset_usd_rate: Decimal | None = None
    sell_account_id: str | None = None
    sell_account_metadata: AccountMetadata | None = None
    receive_account_metadata: AccountMetadata | None = None
    receive_address: str | None = None
    slippage_tolerance_percentage_decimal: str | None = None
    fox_voting_power: Decimal | None = None
    thor_voting_power: Decimal | None = None
    is_voting_power_loading: bool = False
    is_ledger_wallet: bool = False
    quote_or_rate: QuoteOrRate = "quote"
    allow_multi_hop: bool = True

    @property
    def sell_amount_usd(self) -> Decimal:
        return (self.sell_asset_usd_rate or _ZERO) * self.sell_amount_crypto_precision


@dataclass(frozen=True)
class ActiveTradeSnapshot:
    """Active trade as seen when the quote session started; never updated afterwards."""
    trade_id: str | None
    hop_index: int = 0
    quote: TradeQuote | None = None
    provider: str | None = None


def to_base_unit(amount: Decimal, precision: int) -> str:
    value = (amount * (Decimal(10) ** precision)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return str(max(value, _ZERO))


def should_skip(inputs: TradeInputs) -> bool:
    if inputs.sell_amount_crypto_precision <= _ZERO:
        return True
    if inputs.quote_or_rate != "quote":
        return False
    return (
        not inputs.sell_account_id
        or inputs.sell_account_metadata is None
        or not inputs.receive_address
        or inputs.is_voting_power_loading
    )


def build_trade_quote_input(
    inputs: TradeInputs,
    *,
    fee_parameters: Mapping[str, FeeModelConfig] | None = None,
) -> TradeQuoteInput:
    """
    Compute affiliate fees and assemble the shared request input.

    Raises:
        QuoteInputError: A firm quote without sell account number or receive address.
    """
    fees = calculate_fees(
        trade_amount_usd=inputs.sell_amount_usd,
        fox_held=inputs.fox_voting_power or _ZERO,
        thor_held=inputs.thor_voting_power or _ZERO,
        fee_model="SWAPPER",
        parameters=fee_parameters,
    )

    sell_metadata = inputs.sell_account_metadata
    sell_account_number = sell_metadata.account_number if sell_metadata else None
    receive_metadata = inputs.receive_account_metadata
    if inputs.quote_or_rate == "quote":
        if sell_account_number is None:
            raise QuoteInputError("sell_account_number is required")
        if not inputs.receive_address:
            raise QuoteInputError("receive_address is required")

    pub_key = None
    if inputs.is_ledger_wallet and inputs.sell_account_id:
        pub_key = account_from_account_id(inputs.sell_account_id)

    return TradeQuoteInput(
        sell_asset=inputs.sell_asset,
        buy_asset=inputs.buy_asset,
        sell_amount_base_unit=to_base_unit(inputs.sell_amount_crypto_precision, inputs.sell_asset.precision),
        affiliate_bps=to_bps_string(fees.fee_bps),
        potential_affiliate_bps=to_bps_string(fees.fee_bps_before_discount),
        allow_multi_hop=inputs.allow_multi_hop,
        quote_or_rate=inputs.quote_or_rate,
        sell_account_number=sell_account_number,
        sell_account_type=sell_metadata.account_type if sell_metadata else None,
        receive_account_number=receive_metadata.account_number if receive_metadata else None,
        receive_address=inputs.receive_address,
        slippage_tolerance_percentage_decimal=inputs.slippage_tolerance_percentage_decimal,
        pub_key=pub_key,
    )
