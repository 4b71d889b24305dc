"""
Token amounts and next-price computations over a sqrt price interval.

For liquidity L between sqrt prices a < b:
    amount0 = L * (b - a) / (a * b)
    amount1 = L * (b - a)

Amounts the pool receives round up; amounts the pool pays round down.
"""

from __future__ import annotations

from ..amm_exceptions import InvalidSqrtPrice, LiquidityUnderflow
from .safe_math import (
    Q96,
    RESOLUTION,
    div_round_up,
    mul_div,
    mul_div_round_up,
    to_uint160,
)


def get_amount0_delta(
    sqrt_price_a: int,
    sqrt_price_b: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """Calculate token0 amount for liquidity in price range.

    The price arguments may be given in either order.
    """
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if sqrt_price_a <= 0:
        raise InvalidSqrtPrice("Sqrt price must be positive", details={"sqrt_price": sqrt_price_a})
    if liquidity < 0:
        raise LiquidityUnderflow("Liquidity must be non-negative", details={"liquidity": liquidity})

    numerator1 = liquidity << RESOLUTION
    numerator2 = sqrt_price_b - sqrt_price_a

    if round_up:
        return div_round_up(mul_div_round_up(numerator1, numerator2, sqrt_price_b), sqrt_price_a)
    return mul_div(numerator1, numerator2, sqrt_price_b) // sqrt_price_a


def get_amount1_delta(
    sqrt_price_a: int,
    sqrt_price_b: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """Calculate token1 amount for liquidity in price range."""
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if liquidity < 0:
        raise LiquidityUnderflow("Liquidity must be non-negative", details={"liquidity": liquidity})

    return mul_div(liquidity, sqrt_price_b - sqrt_price_a, Q96, round_up=round_up)


def get_amount0_delta_signed(sqrt_price_a: int, sqrt_price_b: int, liquidity: int) -> int:
    """
    Signed token0 delta for a liquidity change.

    Positive liquidity (added) yields a positive amount rounded up, owed to
    the pool. Negative liquidity yields a negative amount rounded down.
    """
    if liquidity < 0:
        return -get_amount0_delta(sqrt_price_a, sqrt_price_b, -liquidity, False)
    return get_amount0_delta(sqrt_price_a, sqrt_price_b, liquidity, True)


def get_amount1_delta_signed(sqrt_price_a: int, sqrt_price_b: int, liquidity: int) -> int:
    """Signed token1 delta for a liquidity change."""
    if liquidity < 0:
        return -get_amount1_delta(sqrt_price_a, sqrt_price_b, -liquidity, False)
    return get_amount1_delta(sqrt_price_a, sqrt_price_b, liquidity, True)


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price: int,
    liquidity: int,
    amount: int,
    add: bool,
) -> int:
    """
    Next sqrt price after adding or removing amount of token0.

    Rounds up so the price never moves further than the amount pays for.
    """
    if amount == 0:
        return sqrt_price

    numerator1 = liquidity << RESOLUTION
    product = amount * sqrt_price

    if add:
        return to_uint160(mul_div_round_up(numerator1, sqrt_price, numerator1 + product))

    if numerator1 <= product:
        raise InvalidSqrtPrice(
            "Token0 output exceeds virtual reserves",
            details={"amount": amount, "liquidity": liquidity},
        )
    return to_uint160(mul_div_round_up(numerator1, sqrt_price, numerator1 - product))


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price: int,
    liquidity: int,
    amount: int,
    add: bool,
) -> int:
    """Next sqrt price after adding or removing amount of token1."""
    if add:
        quotient = (amount << RESOLUTION) // liquidity
        return to_uint160(sqrt_price + quotient)

    quotient = div_round_up(amount << RESOLUTION, liquidity)
    if sqrt_price <= quotient:
        raise InvalidSqrtPrice(
            "Token1 output exceeds virtual reserves",
            details={"amount": amount, "liquidity": liquidity},
        )
    return sqrt_price - quotient


def get_next_sqrt_price_from_input(
    sqrt_price: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool,
) -> int:
    """Calculate new sqrt price after input."""
    if sqrt_price <= 0:
        raise InvalidSqrtPrice("Sqrt price must be positive")
    if liquidity <= 0:
        raise LiquidityUnderflow("Liquidity must be positive")

    if zero_for_one:
        # More token0 in, price goes down
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool,
) -> int:
    """Calculate new sqrt price after output."""
    if sqrt_price <= 0:
        raise InvalidSqrtPrice("Sqrt price must be positive")
    if liquidity <= 0:
        raise LiquidityUnderflow("Liquidity must be positive")

    if zero_for_one:
        # Taking token1 out, price goes down
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price, liquidity, amount_out, False)
