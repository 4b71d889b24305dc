"""
Fixed-point arithmetic primitives for the pool engine.

Python integers are unbounded, so every bound the on-chain formats impose
(uint128 liquidity, uint160 sqrt prices, uint256 intermediates) is checked
explicitly here instead of being left to wrap.

Rounding convention:
- round_up=True when charging users (amounts owed to the pool)
- round_up=False when paying users (amounts owed by the pool)
"""

from __future__ import annotations

# Q64.96 and Q128.128 fixed point scales
RESOLUTION = 96
Q96 = 1 << RESOLUTION
Q128 = 1 << 128

MAX_UINT128 = (1 << 128) - 1
MAX_UINT160 = (1 << 160) - 1
MAX_UINT256 = (1 << 256) - 1


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """
    Calculate (a * b) / denominator with full precision and controlled rounding.

    The 512-bit intermediate of the on-chain version is free here; only the
    result is bounded to uint256.

    Args:
        a: First multiplicand
        b: Second multiplicand
        denominator: Divisor
        round_up: If True, round up (for charging users)
                  If False, round down (for paying users)

    Returns:
        Result of (a * b) / denominator

    Raises:
        ValueError: If denominator is zero
        OverflowError: If the result does not fit in 256 bits
    """
    if denominator == 0:
        raise ValueError("Division by zero")

    quotient, remainder = divmod(a * b, denominator)
    if round_up and remainder:
        quotient += 1

    if quotient > MAX_UINT256:
        raise OverflowError("mul_div result overflows uint256")
    return quotient


def mul_div_round_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)."""
    return mul_div(a, b, denominator, round_up=True)


def div_round_up(numerator: int, denominator: int) -> int:
    """ceil(numerator / denominator) for non-negative operands."""
    if denominator == 0:
        raise ValueError("Division by zero")
    quotient, remainder = divmod(numerator, denominator)
    return quotient + (1 if remainder else 0)


def to_uint160(value: int) -> int:
    """Check that a sqrt price fits the Q64.96 uint160 slot."""
    if value < 0 or value > MAX_UINT160:
        raise OverflowError(f"Value does not fit in uint160: {value}")
    return value


def most_significant_bit(x: int) -> int:
    """Index of the highest set bit of a positive integer."""
    if x <= 0:
        raise ValueError("most_significant_bit requires a positive value")
    return x.bit_length() - 1


def least_significant_bit(x: int) -> int:
    """Index of the lowest set bit of a positive integer."""
    if x <= 0:
        raise ValueError("least_significant_bit requires a positive value")
    return (x & -x).bit_length() - 1
