"""
One bounded step of a swap inside a single tick interval.
"""

from __future__ import annotations

from .sqrt_price_math import (
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
)


def compute_swap_step(
    sqrt_price_current: int,
    sqrt_price_target: int,
    liquidity: int,
    amount_remaining: int,
) -> tuple[int, int, int]:
    """
    Compute a single swap step.

    The direction is implied by the prices: target <= current means token0
    in (price falls), otherwise token1 in (price rises).

    Args:
        sqrt_price_current: Price at the start of the step
        sqrt_price_target: Price the step may not move past
        liquidity: Liquidity active over the interval
        amount_remaining: Input still to swap if positive (exact input),
                          output still to receive if negative (exact output)

    Returns:
        (sqrt_price_next, amount_in, amount_out). amount_in rounds up and
        amount_out rounds down, so the pool is never short.
    """
    zero_for_one = sqrt_price_current >= sqrt_price_target
    exact_in = amount_remaining >= 0

    if exact_in:
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target, sqrt_price_current, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current, sqrt_price_target, liquidity, True)

        full_step = amount_remaining >= amount_in
        if full_step:
            sqrt_price_next = sqrt_price_target
        else:
            sqrt_price_next = get_next_sqrt_price_from_input(
                sqrt_price_current, liquidity, amount_remaining, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target, sqrt_price_current, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current, sqrt_price_target, liquidity, False)

        full_step = -amount_remaining >= amount_out
        if full_step:
            sqrt_price_next = sqrt_price_target
        else:
            sqrt_price_next = get_next_sqrt_price_from_output(
                sqrt_price_current, liquidity, -amount_remaining, zero_for_one
            )

    if zero_for_one:
        if not (full_step and exact_in):
            amount_in = get_amount0_delta(sqrt_price_next, sqrt_price_current, liquidity, True)
        if not (full_step and not exact_in):
            amount_out = get_amount1_delta(sqrt_price_next, sqrt_price_current, liquidity, False)
    else:
        if not (full_step and exact_in):
            amount_in = get_amount1_delta(sqrt_price_current, sqrt_price_next, liquidity, True)
        if not (full_step and not exact_in):
            amount_out = get_amount0_delta(sqrt_price_current, sqrt_price_next, liquidity, False)

    if exact_in and not full_step:
        # The step stops inside the interval, so all remaining input is
        # consumed; the rounding remainder stays with the pool.
        amount_in = amount_remaining

    if not exact_in and amount_out > -amount_remaining:
        # Exact output never pays more than requested
        amount_out = -amount_remaining

    return sqrt_price_next, amount_in, amount_out
