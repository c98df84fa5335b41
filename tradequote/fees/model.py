"""
Affiliate fee model with a governance-stake discount.

Fee before discount is a tier lookup on the trade's USD value. The discount
scales linearly with the user's voting power up to the model's
``discount_threshold`` (full discount, zero fee):

    discount = min(held / discount_threshold, 1)
    fee_bps  = fee_bps_before_discount * (1 - discount)

The ``SWAPPER`` model discounts on FOX voting power, ``THORSWAP`` on THOR.
Values stay ``Decimal`` until ``to_bps_string`` truncates them to whole basis
points for the quote request.

Example:
    >>> result = calculate_fees(
    ...     trade_amount_usd=Decimal("10000"),
    ...     fox_held=Decimal("0"),
    ...     thor_held=Decimal("0"),
    ...     fee_model="SWAPPER",
    ... )
    >>> result.fee_bps == result.fee_bps_before_discount
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Literal, Mapping

from tradequote.config import FeeModelConfig, FeesConfig

FeeModel = Literal["SWAPPER", "THORSWAP"]

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")

# Which voting power discounts which model.
_STAKE_BY_MODEL = {
    "SWAPPER": "fox",
    "THORSWAP": "thor",
}


@dataclass(frozen=True)
class FeeResult:
    """
    Fee figures for one trade.

    Attributes:
        fee_bps: Fee after the voting-power discount.
        fee_bps_before_discount: Fee the user would pay with no stake.
        discount_percent: Applied discount, 0-100.
    """
    fee_bps: Decimal
    fee_bps_before_discount: Decimal
    discount_percent: Decimal

    @property
    def affiliate_bps(self) -> str:
        return to_bps_string(self.fee_bps)

    @property
    def potential_affiliate_bps(self) -> str:
        return to_bps_string(self.fee_bps_before_discount)


def to_bps_string(value: Decimal) -> str:
    """Render as a non-negative whole number of basis points, truncating."""
    if value <= _ZERO:
        return "0"
    return str(value.to_integral_value(rounding=ROUND_DOWN))


def fee_bps_for_amount(trade_amount_usd: Decimal, model: FeeModelConfig) -> Decimal:
    amount = max(trade_amount_usd, _ZERO)
    fee_bps = model.tiers[0].fee_bps
    for tier in model.tiers:
        if amount >= tier.min_trade_usd:
            fee_bps = tier.fee_bps
    return fee_bps


def calculate_fees(
    *,
    trade_amount_usd: Decimal,
    fox_held: Decimal,
    thor_held: Decimal,
    fee_model: FeeModel,
    parameters: Mapping[str, FeeModelConfig] | None = None,
) -> FeeResult:
    models = parameters if parameters is not None else FeesConfig().models
    model = models.get(fee_model)
    stake = _STAKE_BY_MODEL.get(fee_model)
    if model is None or stake is None:
        raise ValueError(f"Unknown fee model: {fee_model}")

    fee_bps_before_discount = fee_bps_for_amount(trade_amount_usd, model)

    held = fox_held if stake == "fox" else thor_held
    discount = min(max(held, _ZERO) / model.discount_threshold, _ONE)
    fee_bps = max(fee_bps_before_discount * (_ONE - discount), _ZERO)

    return FeeResult(
        fee_bps=fee_bps,
        fee_bps_before_discount=fee_bps_before_discount,
        discount_percent=discount * _HUNDRED,
    )
