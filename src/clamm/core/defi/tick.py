"""
Per-tick liquidity bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, Optional

from ..amm_exceptions import LiquidityOverflow
from .liquidity_math import add_delta
from .safe_math import MAX_UINT128
from .tick_math import max_usable_tick, min_usable_tick


def tick_spacing_to_max_liquidity_per_tick(tick_spacing: int) -> int:
    """Largest liquidity_gross a single tick may hold so that the sum over
    every usable tick still fits in uint128."""
    num_ticks = (max_usable_tick(tick_spacing) - min_usable_tick(tick_spacing)) // tick_spacing + 1
    return MAX_UINT128 // num_ticks


@dataclass
class TickInfo:
    """Information stored for each initialized tick."""
    liquidity_gross: int = 0  # Total liquidity referencing this tick
    liquidity_net: int = 0    # Net liquidity change when crossing tick upward

    @property
    def initialized(self) -> bool:
        return self.liquidity_gross > 0


class TickRegistry:
    """
    Sparse map of tick index -> TickInfo.

    Every range contributes +L to liquidity_net at its lower bound and -L at
    its upper bound, so the net values always sum to zero.
    """

    def __init__(self, max_liquidity_per_tick: Optional[int] = None) -> None:
        self.max_liquidity_per_tick = max_liquidity_per_tick or MAX_UINT128
        self._ticks: dict[int, TickInfo] = {}

    def __len__(self) -> int:
        return len(self._ticks)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._ticks))

    def __contains__(self, tick: int) -> bool:
        return tick in self._ticks

    def get(self, tick: int) -> TickInfo:
        """Stored info for tick, or a fresh zero TickInfo (not stored)."""
        return self._ticks.get(tick) or TickInfo()

    def is_initialized(self, tick: int) -> bool:
        info = self._ticks.get(tick)
        return info is not None and info.initialized

    def preview(self, tick: int, liquidity_delta: int, upper: bool) -> tuple[TickInfo, bool]:
        """
        Compute the state update() would store, without storing it.

        Returns:
            (new_info, flipped)

        Raises:
            LiquidityOverflow: If liquidity_gross would exceed the per-tick cap
            LiquidityUnderflow: If liquidity_gross would become negative
        """
        current = self.get(tick)
        gross_after = add_delta(current.liquidity_gross, liquidity_delta)
        if gross_after > self.max_liquidity_per_tick:
            raise LiquidityOverflow(
                f"Tick {tick} liquidity exceeds per-tick maximum",
                details={"tick": tick, "liquidity_gross": gross_after},
            )

        net_after = current.liquidity_net - liquidity_delta if upper else current.liquidity_net + liquidity_delta
        flipped = (gross_after == 0) != (current.liquidity_gross == 0)
        return replace(current, liquidity_gross=gross_after, liquidity_net=net_after), flipped

    def update(self, tick: int, liquidity_delta: int, upper: bool) -> bool:
        """
        Apply a liquidity change to one boundary tick.

        Args:
            tick: Boundary tick
            liquidity_delta: Signed liquidity change
            upper: True if tick is the upper bound of the range

        Returns:
            True if the tick's initialized state flipped; the caller must
            mirror the flip in the tick bitmap
        """
        info, flipped = self.preview(tick, liquidity_delta, upper)
        if info.liquidity_gross == 0:
            self._ticks.pop(tick, None)
        else:
            self._ticks[tick] = info
        return flipped

    def cross(self, tick: int) -> int:
        """Return liquidity_net for tick. Crossing never changes stored state."""
        info = self._ticks.get(tick)
        return info.liquidity_net if info is not None else 0

    def net_liquidity_sum(self) -> int:
        return sum(info.liquidity_net for info in self._ticks.values())
