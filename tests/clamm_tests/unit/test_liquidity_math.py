"""
Liquidity Math Tests.
"""

import pytest

from clamm.core.amm_exceptions import InvalidSqrtPrice, LiquidityOverflow, LiquidityUnderflow
from clamm.core.defi.liquidity_math import (
    add_delta,
    get_amounts_for_liquidity,
    get_liquidity_for_amount0,
    get_liquidity_for_amount1,
    get_liquidity_for_amounts,
)
from clamm.core.defi.safe_math import MAX_UINT128, Q96
from clamm.core.defi.tick_math import get_sqrt_ratio_at_tick

SQRT_LOWER = get_sqrt_ratio_at_tick(84222)
SQRT_CURRENT = 5602277097478614198912276234240
SQRT_UPPER = get_sqrt_ratio_at_tick(86129)


class TestAddDelta:
    """Test signed liquidity updates."""

    def test_add_and_remove(self):
        assert add_delta(1, 0) == 1
        assert add_delta(1, -1) == 0
        assert add_delta(1, 1) == 2

    def test_underflow(self):
        with pytest.raises(LiquidityUnderflow):
            add_delta(0, -1)
        with pytest.raises(LiquidityUnderflow):
            add_delta(3, -4)

    def test_overflow(self):
        assert add_delta(MAX_UINT128 - 1, 1) == MAX_UINT128
        with pytest.raises(LiquidityOverflow):
            add_delta(MAX_UINT128, 1)


class TestLiquidityForAmounts:
    """Test the largest liquidity a pair of amounts can back."""

    def test_price_below_range_uses_token0_only(self):
        liquidity = get_liquidity_for_amounts(SQRT_LOWER - 1, SQRT_LOWER, SQRT_UPPER, 10**18, 0)
        assert liquidity == get_liquidity_for_amount0(SQRT_LOWER, SQRT_UPPER, 10**18)
        assert liquidity > 0

    def test_price_above_range_uses_token1_only(self):
        liquidity = get_liquidity_for_amounts(SQRT_UPPER + 1, SQRT_LOWER, SQRT_UPPER, 0, 5000 * 10**18)
        assert liquidity == get_liquidity_for_amount1(SQRT_LOWER, SQRT_UPPER, 5000 * 10**18)
        assert liquidity > 0

    def test_price_in_range_takes_scarcer_side(self):
        amount0 = 10**18
        amount1 = 5000 * 10**18
        liquidity = get_liquidity_for_amounts(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, amount0, amount1)
        assert liquidity == min(
            get_liquidity_for_amount0(SQRT_CURRENT, SQRT_UPPER, amount0),
            get_liquidity_for_amount1(SQRT_LOWER, SQRT_CURRENT, amount1),
        )

    def test_bound_order_does_not_matter(self):
        forward = get_liquidity_for_amounts(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, 10**18, 5000 * 10**18)
        backward = get_liquidity_for_amounts(SQRT_CURRENT, SQRT_UPPER, SQRT_LOWER, 10**18, 5000 * 10**18)
        assert forward == backward

    def test_amount1_exact(self):
        # L = amount1 / (sqrt_b - sqrt_a) in real terms
        assert get_liquidity_for_amount1(Q96, 2 * Q96, 10**18) == 10**18

    def test_empty_interval_rejected(self):
        with pytest.raises(InvalidSqrtPrice):
            get_liquidity_for_amounts(Q96, Q96, Q96, 1, 1)

    def test_overflow_rejected(self):
        with pytest.raises(LiquidityOverflow):
            get_liquidity_for_amount1(Q96, Q96 + 1, 1 << 100)


class TestAmountsForLiquidity:
    """Test valuation of a liquidity amount."""

    def test_amounts_never_exceed_desired(self):
        amount0 = 10**18
        amount1 = 5000 * 10**18
        liquidity = get_liquidity_for_amounts(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, amount0, amount1)
        owed0, owed1 = get_amounts_for_liquidity(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, liquidity, round_up=True)
        assert owed0 <= amount0
        assert owed1 <= amount1

    def test_single_sided_outside_range(self):
        below = get_amounts_for_liquidity(SQRT_LOWER - 1, SQRT_LOWER, SQRT_UPPER, 10**18)
        above = get_amounts_for_liquidity(SQRT_UPPER, SQRT_LOWER, SQRT_UPPER, 10**18)
        assert below[0] > 0 and below[1] == 0
        assert above[0] == 0 and above[1] > 0

    def test_round_up_is_not_smaller(self):
        down = get_amounts_for_liquidity(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, 10**18)
        up = get_amounts_for_liquidity(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, 10**18, round_up=True)
        assert up[0] >= down[0]
        assert up[1] >= down[1]
