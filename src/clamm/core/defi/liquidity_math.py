"""
Liquidity <-> token amount conversions and checked liquidity arithmetic.
"""

from __future__ import annotations

from ..amm_exceptions import InvalidSqrtPrice, LiquidityOverflow, LiquidityUnderflow
from .safe_math import MAX_UINT128, Q96, mul_div
from .sqrt_price_math import get_amount0_delta, get_amount1_delta


def add_delta(x: int, y: int) -> int:
    """
    Add a signed liquidity delta to an unsigned liquidity value.

    Raises:
        LiquidityUnderflow: If the result would be negative
        LiquidityOverflow: If the result would exceed uint128
    """
    z = x + y
    if z < 0:
        raise LiquidityUnderflow(
            f"Liquidity underflow: {x} + ({y})",
            details={"liquidity": x, "delta": y},
        )
    if z > MAX_UINT128:
        raise LiquidityOverflow(
            f"Liquidity overflow: {x} + {y}",
            details={"liquidity": x, "delta": y},
        )
    return z


def _to_uint128(value: int) -> int:
    if value > MAX_UINT128:
        raise LiquidityOverflow("Liquidity does not fit in uint128", details={"liquidity": value})
    return value


def _sorted_interval(sqrt_price_a: int, sqrt_price_b: int) -> tuple[int, int]:
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if sqrt_price_a == sqrt_price_b:
        raise InvalidSqrtPrice(
            "Price interval is empty",
            details={"sqrt_price": sqrt_price_a},
        )
    return sqrt_price_a, sqrt_price_b


def get_liquidity_for_amount0(sqrt_price_a: int, sqrt_price_b: int, amount0: int) -> int:
    """Liquidity backed by amount0 over [a, b], rounded down."""
    sqrt_price_a, sqrt_price_b = _sorted_interval(sqrt_price_a, sqrt_price_b)
    intermediate = mul_div(sqrt_price_a, sqrt_price_b, Q96)
    return _to_uint128(mul_div(amount0, intermediate, sqrt_price_b - sqrt_price_a))


def get_liquidity_for_amount1(sqrt_price_a: int, sqrt_price_b: int, amount1: int) -> int:
    """Liquidity backed by amount1 over [a, b], rounded down."""
    sqrt_price_a, sqrt_price_b = _sorted_interval(sqrt_price_a, sqrt_price_b)
    return _to_uint128(mul_div(amount1, Q96, sqrt_price_b - sqrt_price_a))


def get_liquidity_for_amounts(
    sqrt_price: int,
    sqrt_price_a: int,
    sqrt_price_b: int,
    amount0: int,
    amount1: int,
) -> int:
    """
    Largest liquidity that both desired amounts can back at the current price.

    Args:
        sqrt_price: Current pool sqrt price (Q64.96)
        sqrt_price_a: One range bound
        sqrt_price_b: The other range bound
        amount0: Desired token0 amount
        amount1: Desired token1 amount

    Returns:
        Liquidity, limited by token0 below the range, token1 above it, and
        by whichever side is scarcer inside it
    """
    sqrt_price_a, sqrt_price_b = _sorted_interval(sqrt_price_a, sqrt_price_b)

    if sqrt_price <= sqrt_price_a:
        return get_liquidity_for_amount0(sqrt_price_a, sqrt_price_b, amount0)
    if sqrt_price < sqrt_price_b:
        liquidity0 = get_liquidity_for_amount0(sqrt_price, sqrt_price_b, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_price_a, sqrt_price, amount1)
        return min(liquidity0, liquidity1)
    return get_liquidity_for_amount1(sqrt_price_a, sqrt_price_b, amount1)


def get_amounts_for_liquidity(
    sqrt_price: int,
    sqrt_price_a: int,
    sqrt_price_b: int,
    liquidity: int,
    round_up: bool = False,
) -> tuple[int, int]:
    """
    Token amounts represented by liquidity over [a, b] at the current price.

    Rounds down by default (valuation of what a position holds). Pass
    round_up=True for amounts a provider owes the pool.
    """
    sqrt_price_a, sqrt_price_b = _sorted_interval(sqrt_price_a, sqrt_price_b)

    if sqrt_price <= sqrt_price_a:
        return get_amount0_delta(sqrt_price_a, sqrt_price_b, liquidity, round_up), 0
    if sqrt_price < sqrt_price_b:
        amount0 = get_amount0_delta(sqrt_price, sqrt_price_b, liquidity, round_up)
        amount1 = get_amount1_delta(sqrt_price_a, sqrt_price, liquidity, round_up)
        return amount0, amount1
    return 0, get_amount1_delta(sqrt_price_a, sqrt_price_b, liquidity, round_up)
