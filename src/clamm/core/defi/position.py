"""
Per-(owner, tick_lower, tick_upper) liquidity accounting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from ..amm_exceptions import LiquidityUnderflow
from .liquidity_math import add_delta

PositionKey = tuple[str, int, int]


@dataclass
class Position:
    """
    Liquidity position within a price range.

    Represents an LP's share of liquidity between two ticks.
    """

    owner: str = ""

    # Range (in ticks)
    tick_lower: int = 0
    tick_upper: int = 0

    # Liquidity amount
    liquidity: int = 0

    @property
    def key(self) -> PositionKey:
        return self.owner, self.tick_lower, self.tick_upper

    def is_in_range(self, current_tick: int) -> bool:
        """Check if current price is within position's range."""
        return self.tick_lower <= current_tick < self.tick_upper


class PositionLedger:
    """Positions keyed by owner and range. Entries are never removed."""

    def __init__(self) -> None:
        self._positions: dict[PositionKey, Position] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._positions.values()))

    def get(self, owner: str, tick_lower: int, tick_upper: int) -> Position:
        """Return the position for the key, creating an empty one if absent."""
        key = (owner, tick_lower, tick_upper)
        position = self._positions.get(key)
        if position is None:
            position = Position(owner=owner, tick_lower=tick_lower, tick_upper=tick_upper)
            self._positions[key] = position
        return position

    def peek(self, owner: str, tick_lower: int, tick_upper: int) -> Optional[Position]:
        """Return the position for the key without creating it."""
        return self._positions.get((owner, tick_lower, tick_upper))

    @staticmethod
    def check_update(position: Position, liquidity_delta: int) -> int:
        """Liquidity the position would hold after update(), without applying it."""
        if liquidity_delta < 0:
            raise LiquidityUnderflow(
                "Position liquidity can only increase",
                details={"delta": liquidity_delta},
            )
        return add_delta(position.liquidity, liquidity_delta)

    def update(self, position: Position, liquidity_delta: int) -> None:
        """Add liquidity_delta to the position, checked against uint128."""
        position.liquidity = self.check_update(position, liquidity_delta)
