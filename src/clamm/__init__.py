"""
clamm - Concentrated Liquidity AMM Engine

Fixed-point pricing and liquidity engine for a two-asset pool where
liquidity providers deposit into price ranges and swaps walk the price
curve implied by every active range.

Main Components:
- Tick math: Q64.96 sqrt prices and the 1.0001 tick ladder
- Tick registry and bitmap: per-tick liquidity and a sparse index over it
- Swap math: single-interval steps and the pool's swap loop
- Custody boundary: callbacks through which callers pay the pool
"""

__version__ = "0.1.0"
__author__ = "clamm Development Team"

__all__ = []
