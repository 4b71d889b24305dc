"""
clamm concentrated liquidity engine.

- Tick math: tick <-> sqrt price conversion
- Liquidity math: liquidity <-> token amount conversion
- Tick registry and bitmap: per-tick liquidity and the initialized-tick index
- Swap math: one bounded step of a swap
- Pool: mint, swap, flash and quotes over the pieces above
- Custody: the payment boundary between pool and caller
"""

from .concentrated_liquidity import (
    ConcentratedLiquidityPool,
    Slot0,
    SwapResult,
    SwapStep,
)
from .custody import CustodyProvider, InMemoryCustody, PoolCallbacks
from .liquidity_math import (
    add_delta,
    get_amounts_for_liquidity,
    get_liquidity_for_amounts,
)
from .position import Position, PositionLedger
from .safe_math import Q96, Q128
from .sqrt_price_math import get_amount0_delta, get_amount1_delta
from .swap_math import compute_swap_step
from .tick import TickInfo, TickRegistry
from .tick_bitmap import TickBitmap
from .tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)

__all__ = [
    # Pool
    "ConcentratedLiquidityPool",
    "Slot0",
    "SwapResult",
    "SwapStep",
    # Custody
    "CustodyProvider",
    "InMemoryCustody",
    "PoolCallbacks",
    # Ledgers
    "Position",
    "PositionLedger",
    "TickInfo",
    "TickRegistry",
    "TickBitmap",
    # Math
    "Q96",
    "Q128",
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MAX_SQRT_RATIO",
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
    "get_amount0_delta",
    "get_amount1_delta",
    "get_liquidity_for_amounts",
    "get_amounts_for_liquidity",
    "add_delta",
    "compute_swap_step",
]
