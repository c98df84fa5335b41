from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

_BPS_DENOMINATOR = Decimal("10000")


def subtract_basis_point_amount(
    amount: Decimal | int | str,
    basis_points: Decimal | int | str,
    rounding: str = ROUND_DOWN,
) -> str:
    """
    Subtract ``basis_points`` from ``amount`` and round to a whole base unit.

    Example:
        >>> subtract_basis_point_amount("10000", 50)
        '9950'
    """
    value = Decimal(str(amount)) * (Decimal(1) - Decimal(str(basis_points)) / _BPS_DENOMINATOR)
    return str(value.quantize(Decimal(1), rounding=rounding))


def limit_with_manual_slippage(
    *,
    expected_amount_out_base_unit: Decimal | int | str,
    slippage_bps: Decimal | int | str,
) -> str:
    """Minimum acceptable output: the expected amount truncated, less the user's slippage."""
    truncated = Decimal(str(expected_amount_out_base_unit)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return subtract_basis_point_amount(truncated, slippage_bps, ROUND_DOWN)
