"""
Swap Step Tests.
"""

from clamm.core.defi.safe_math import Q96
from clamm.core.defi.sqrt_price_math import (
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
)
from clamm.core.defi.swap_math import compute_swap_step
from clamm.core.defi.tick_math import get_sqrt_ratio_at_tick

LIQUIDITY = 2 * 10**18
PRICE = Q96
PRICE_UP = get_sqrt_ratio_at_tick(100)
PRICE_DOWN = get_sqrt_ratio_at_tick(-100)


class TestExactInput:
    """Positive amount_remaining."""

    def test_capped_at_target_one_for_zero(self):
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_UP, LIQUIDITY, 10**18)
        assert next_price == PRICE_UP
        assert amount_in == get_amount1_delta(PRICE, PRICE_UP, LIQUIDITY, True)
        assert amount_out == get_amount0_delta(PRICE, PRICE_UP, LIQUIDITY, False)
        assert amount_in < 10**18

    def test_capped_at_target_zero_for_one(self):
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_DOWN, LIQUIDITY, 10**18)
        assert next_price == PRICE_DOWN
        assert amount_in == get_amount0_delta(PRICE_DOWN, PRICE, LIQUIDITY, True)
        assert amount_out == get_amount1_delta(PRICE_DOWN, PRICE, LIQUIDITY, False)

    def test_partial_step_consumes_all_input(self):
        amount = 10**15
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_UP, LIQUIDITY, amount)
        assert PRICE < next_price < PRICE_UP
        assert amount_in == amount
        assert next_price == get_next_sqrt_price_from_input(PRICE, LIQUIDITY, amount, False)
        assert amount_out == get_amount0_delta(PRICE, next_price, LIQUIDITY, False)

    def test_partial_step_zero_for_one(self):
        amount = 10**15
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_DOWN, LIQUIDITY, amount)
        assert PRICE_DOWN < next_price < PRICE
        assert amount_in == amount
        assert next_price == get_next_sqrt_price_from_input(PRICE, LIQUIDITY, amount, True)
        assert amount_out == get_amount1_delta(next_price, PRICE, LIQUIDITY, False)

    def test_output_never_exceeds_input_value(self):
        """At price 1 a unit of input buys at most a unit of output."""
        _, amount_in, amount_out = compute_swap_step(PRICE, PRICE_UP, LIQUIDITY, 10**15)
        assert amount_out <= amount_in

    def test_tiny_input_moves_nothing_out(self):
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_DOWN, LIQUIDITY, 1)
        assert amount_in == 1
        assert amount_out == 0
        assert next_price <= PRICE


class TestExactOutput:
    """Negative amount_remaining."""

    def test_capped_at_target(self):
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_UP, LIQUIDITY, -(10**18))
        assert next_price == PRICE_UP
        assert amount_out == get_amount0_delta(PRICE, PRICE_UP, LIQUIDITY, False)
        assert amount_in == get_amount1_delta(PRICE, PRICE_UP, LIQUIDITY, True)

    def test_partial_step_pays_exact_output(self):
        amount = 10**15
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_UP, LIQUIDITY, -amount)
        assert PRICE < next_price < PRICE_UP
        assert amount_out == amount
        assert next_price == get_next_sqrt_price_from_output(PRICE, LIQUIDITY, amount, False)
        assert amount_in == get_amount1_delta(PRICE, next_price, LIQUIDITY, True)
        assert amount_in >= amount_out

    def test_partial_step_zero_for_one(self):
        amount = 10**15
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_DOWN, LIQUIDITY, -amount)
        assert PRICE_DOWN < next_price < PRICE
        assert amount_out == amount
        assert amount_in == get_amount0_delta(next_price, PRICE, LIQUIDITY, True)


class TestDegenerateSteps:
    """Steps that cannot move the price."""

    def test_zero_liquidity_jumps_to_target(self):
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE_UP, 0, 10**18)
        assert next_price == PRICE_UP
        assert amount_in == 0
        assert amount_out == 0

    def test_target_equals_current(self):
        next_price, amount_in, amount_out = compute_swap_step(PRICE, PRICE, LIQUIDITY, 10**18)
        assert next_price == PRICE
        assert amount_in == 0
        assert amount_out == 0
