"""
Sparse bitmap index over initialized ticks.

Ticks are compressed by tick_spacing and packed 256 to a word:
word_pos = compressed >> 8, bit_pos = compressed % 256. Python's floor
division and arithmetic shift already round negative ticks toward negative
infinity, which is the compression the index needs.
"""

from __future__ import annotations

from typing import Iterator

from ..amm_exceptions import InvalidTick
from .safe_math import MAX_UINT256, least_significant_bit, most_significant_bit


def position(compressed: int) -> tuple[int, int]:
    """Split a compressed tick into (word_pos, bit_pos)."""
    return compressed >> 8, compressed & 0xFF


class TickBitmap:
    """word index -> 256-bit word; bit b of word w marks compressed tick w * 256 + b."""

    def __init__(self) -> None:
        self._words: dict[int, int] = {}

    def __iter__(self) -> Iterator[tuple[int, int]]:
        return iter(sorted(self._words.items()))

    def word(self, word_pos: int) -> int:
        return self._words.get(word_pos, 0)

    def flip_tick(self, tick: int, tick_spacing: int) -> None:
        """
        Toggle the initialized bit for tick.

        Must be called exactly once per initialization flip reported by the
        tick registry.

        Raises:
            InvalidTick: If tick is not a multiple of tick_spacing
        """
        if tick % tick_spacing != 0:
            raise InvalidTick(
                f"Tick {tick} is not a multiple of spacing {tick_spacing}",
                details={"tick": tick, "tick_spacing": tick_spacing},
            )
        word_pos, bit_pos = position(tick // tick_spacing)
        word = self._words.get(word_pos, 0) ^ (1 << bit_pos)
        if word:
            self._words[word_pos] = word
        else:
            self._words.pop(word_pos, None)

    def is_initialized(self, tick: int, tick_spacing: int) -> bool:
        if tick % tick_spacing != 0:
            return False
        word_pos, bit_pos = position(tick // tick_spacing)
        return bool(self._words.get(word_pos, 0) >> bit_pos & 1)

    def next_initialized_tick_within_one_word(
        self,
        tick: int,
        tick_spacing: int,
        lte: bool,
    ) -> tuple[int, bool]:
        """
        Find the next initialized tick in the word holding tick.

        Args:
            tick: Starting tick
            tick_spacing: Spacing between usable ticks
            lte: Search at-or-below tick (price decreasing) if True,
                 strictly above tick (price increasing) otherwise

        Returns:
            (next_tick, initialized). When no bit is set in the searched
            direction, next_tick is the word's boundary tick and
            initialized is False.
        """
        compressed = tick // tick_spacing

        if lte:
            word_pos, bit_pos = position(compressed)
            # all bits at or to the right of bit_pos
            mask = (1 << bit_pos) - 1 + (1 << bit_pos)
            masked = self._words.get(word_pos, 0) & mask

            initialized = masked != 0
            if initialized:
                next_tick = (compressed - (bit_pos - most_significant_bit(masked))) * tick_spacing
            else:
                next_tick = (compressed - bit_pos) * tick_spacing
            return next_tick, initialized

        # start from the word of the next tick, a tick on a word boundary
        # must not be returned
        word_pos, bit_pos = position(compressed + 1)
        # all bits at or to the left of bit_pos
        mask = ~((1 << bit_pos) - 1) & MAX_UINT256
        masked = self._words.get(word_pos, 0) & mask

        initialized = masked != 0
        if initialized:
            next_tick = (compressed + 1 + (least_significant_bit(masked) - bit_pos)) * tick_spacing
        else:
            next_tick = (compressed + 1 + (0xFF - bit_pos)) * tick_spacing
        return next_tick, initialized
