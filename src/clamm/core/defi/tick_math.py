"""
Tick <-> sqrt price conversion.

sqrt_price_x96 = sqrt(1.0001 ** tick) * 2**96

Both directions use the Uniswap V3 TickMath bit-decomposition constants,
so results are bit-exact with on-chain pools.
"""

from __future__ import annotations

import math

from ..amm_exceptions import InvalidSqrtPrice, InvalidTick
from .safe_math import MAX_UINT256

MIN_TICK = -887272
MAX_TICK = 887272

# get_sqrt_ratio_at_tick(MIN_TICK) and get_sqrt_ratio_at_tick(MAX_TICK)
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Q128 multipliers for 1 / sqrt(1.0001) ** (2 ** i), i >= 1
_RATIO_MULTIPLIERS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)

# log_sqrt(1.0001)(2) in Q64.64 and the error bounds of the 14-bit log2
_LOG_SQRT10001_MULTIPLIER = 255738958999603826347141
_TICK_LOW_OFFSET = 3402992956809132418596140100660247210
_TICK_HIGH_OFFSET = 291339464771989622907027621153398088495


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Convert tick to sqrt price in Q64.96 format.

    Args:
        tick: Tick index in [MIN_TICK, MAX_TICK]

    Returns:
        sqrt(1.0001 ** tick) * 2**96, rounded up from Q128.128

    Raises:
        InvalidTick: If tick is out of range
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise InvalidTick(
            f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]",
            details={"tick": tick},
        )

    abs_tick = abs(tick)

    ratio = 0xfffcb933bd6fad37aa2d162d1a594001 if abs_tick & 0x1 else 1 << 128
    for bit, multiplier in _RATIO_MULTIPLIERS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up so the result is never below the true price
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """
    Convert sqrt price to tick.

    Returns the greatest tick whose sqrt ratio is <= sqrt_price_x96, i.e. the
    floor tick.

    Raises:
        InvalidSqrtPrice: If sqrt_price_x96 is outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO]
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 > MAX_SQRT_RATIO:
        raise InvalidSqrtPrice(
            f"Sqrt price {sqrt_price_x96} out of range",
            details={"sqrt_price_x96": sqrt_price_x96},
        )
    if sqrt_price_x96 == MAX_SQRT_RATIO:
        return MAX_TICK

    ratio = sqrt_price_x96 << 32
    msb = ratio.bit_length() - 1

    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64

    # 14 bits of fractional log2 by repeated squaring
    for i in range(14):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << (63 - i)
        r >>= f

    log_sqrt10001 = log_2 * _LOG_SQRT10001_MULTIPLIER

    tick_low = (log_sqrt10001 - _TICK_LOW_OFFSET) >> 128
    tick_high = (log_sqrt10001 + _TICK_HIGH_OFFSET) >> 128

    if tick_low == tick_high:
        return tick_low
    if get_sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96:
        return tick_high
    return tick_low


def tick_to_price(tick: int) -> float:
    """Convert tick to actual price (for display)."""
    return 1.0001 ** tick


def price_to_tick(price: float) -> int:
    """Convert a display price to the floor tick."""
    if price <= 0:
        raise InvalidSqrtPrice("Price must be positive", details={"price": price})
    return math.floor(math.log(price) / math.log(1.0001))


def min_usable_tick(tick_spacing: int) -> int:
    """Lowest tick that is a multiple of tick_spacing."""
    return -(-MIN_TICK // tick_spacing) * tick_spacing


def max_usable_tick(tick_spacing: int) -> int:
    """Highest tick that is a multiple of tick_spacing."""
    return (MAX_TICK // tick_spacing) * tick_spacing
