"""
Concentrated Liquidity Pool Implementation (Uniswap V3 Style).

Provides capital-efficient liquidity provision through:
- Price range positions
- Tick-based price representation
- A swap loop that walks initialized ticks through a sparse bitmap

Every mutating operation is applied in two phases: amounts and the new
state are computed first, the caller is asked to pay through its
PoolCallbacks, balances are verified, and only then is state committed.
A failure anywhere leaves the pool untouched.

Security features:
- Tick spacing validation
- Position bounds checking
- Reentrancy protection
- Rounding that always favors the pool
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from .. import config
from ..amm_exceptions import (
    FlashLoanNotRepaid,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InvalidPriceLimit,
    InvalidTickRange,
    PoolAlreadyInitialized,
    PoolLocked,
    PoolNotInitialized,
    ZeroLiquidity,
)
from .custody import CustodyProvider, InMemoryCustody, PoolCallbacks
from .liquidity_math import add_delta, get_amounts_for_liquidity
from .position import Position, PositionLedger
from .sqrt_price_math import get_amount0_delta_signed, get_amount1_delta_signed
from .swap_math import compute_swap_step
from .tick import TickRegistry, tick_spacing_to_max_liquidity_per_tick
from .tick_bitmap import TickBitmap
from .tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    tick_to_price,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot0:
    """Current price and the tick it falls in."""
    sqrt_price_x96: int
    tick: int


@dataclass(frozen=True)
class SwapStep:
    """One iteration of the swap loop."""
    sqrt_price_start: int
    tick_next: int
    initialized: bool
    sqrt_price_next: int
    amount_in: int
    amount_out: int


@dataclass
class SwapResult:
    """
    Outcome of the swap loop before anything is committed.

    amount0/amount1 are signed from the pool's point of view: positive is
    owed to the pool, negative is owed to the recipient.
    """
    amount0: int
    amount1: int
    sqrt_price_x96: int
    tick: int
    liquidity: int
    steps: list[SwapStep] = field(default_factory=list)


@dataclass
class _SwapState:
    amount_specified_remaining: int
    amount_calculated: int
    sqrt_price_x96: int
    tick: int
    liquidity: int


@dataclass
class ConcentratedLiquidityPool:
    """
    Uniswap V3-style concentrated liquidity pool.

    Key features:
    - LPs provide liquidity in specific price ranges
    - Active liquidity changes as the price crosses range boundaries
    - Custody is delegated to a CustodyProvider; payment is pulled through
      caller callbacks

    Price representation:
    - Uses sqrt price (Q64.96 format) for precision
    - Ticks represent discretized price points
    - tick = floor(log1.0001(price))
    """

    token0: str = "TOKEN0"
    token1: str = "TOKEN1"
    tick_spacing: int = config.DEFAULT_TICK_SPACING
    custody: CustodyProvider = field(default_factory=InMemoryCustody)
    address: str = ""
    enforce_max_liquidity_per_tick: bool = config.ENFORCE_MAX_LIQUIDITY_PER_TICK

    # Current state
    sqrt_price: int = 0  # Q64.96 format
    tick: int = 0
    liquidity: int = 0  # Active liquidity

    # Tick data
    ticks: TickRegistry = field(init=False)
    tick_bitmap: TickBitmap = field(default_factory=TickBitmap, init=False)

    # Positions
    positions: PositionLedger = field(default_factory=PositionLedger, init=False)

    # Reentrancy guard
    _locked: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize pool."""
        config.validate_tick_spacing(self.tick_spacing)
        if self.token0 == self.token1:
            raise ValueError("Pool tokens must differ")

        max_liquidity = None
        if self.enforce_max_liquidity_per_tick:
            max_liquidity = tick_spacing_to_max_liquidity_per_tick(self.tick_spacing)
        self.ticks = TickRegistry(max_liquidity_per_tick=max_liquidity)

        if not self.address:
            addr_hash = hashlib.sha3_256(
                f"clp:{self.token0}:{self.token1}:{self.tick_spacing}:{time.time_ns()}:{id(self)}".encode()
            ).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"

    # ==================== Initialization ====================

    def initialize(self, sqrt_price_x96: int) -> None:
        """
        Set the starting price. Can only be called once.

        Raises:
            PoolAlreadyInitialized: If the price is already set
            InvalidSqrtPrice: If the price is outside the supported range
        """
        if self.sqrt_price != 0:
            raise PoolAlreadyInitialized("Pool is already initialized")

        tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
        self.sqrt_price = sqrt_price_x96
        self.tick = tick

        logger.info(
            "Pool initialized",
            extra={
                "event": "clp.initialize",
                "pool": self.address[:10],
                "sqrt_price_x96": sqrt_price_x96,
                "tick": tick,
            }
        )

    @property
    def slot0(self) -> Slot0:
        return Slot0(sqrt_price_x96=self.sqrt_price, tick=self.tick)

    def balance0(self) -> int:
        return self.custody.balance_of(self.token0, self.address)

    def balance1(self) -> int:
        return self.custody.balance_of(self.token1, self.address)

    # ==================== Position Management ====================

    def mint(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        callbacks: PoolCallbacks,
        data: bytes = b"",
    ) -> tuple[int, int]:
        """
        Add liquidity to the (owner, tick_lower, tick_upper) position.

        Args:
            owner: Position owner
            tick_lower: Lower tick of range
            tick_upper: Upper tick of range
            amount: Liquidity amount
            callbacks: Pays the owed amounts from on_mint
            data: Opaque context forwarded to the callback

        Returns:
            (amount0, amount1) - tokens the caller paid in

        Raises:
            InvalidTickRange: If the range is invalid
            ZeroLiquidity: If amount is not positive
            LiquidityOverflow: If a liquidity counter would exceed its cap
            InsufficientInputAmount: If the callback under-paid
        """
        self._require_initialized()
        self._require_not_locked()

        try:
            self._locked = True

            self._validate_ticks(tick_lower, tick_upper)
            if amount <= 0:
                raise ZeroLiquidity("Mint amount must be positive", details={"amount": amount})

            # Phase 1: check every counter the commit will touch
            self.ticks.preview(tick_lower, amount, upper=False)
            self.ticks.preview(tick_upper, amount, upper=True)
            existing = self.positions.peek(owner, tick_lower, tick_upper)
            PositionLedger.check_update(existing or Position(), amount)

            in_range = tick_lower <= self.tick < tick_upper
            liquidity_after = add_delta(self.liquidity, amount) if in_range else self.liquidity

            amount0, amount1 = self._amounts_for_liquidity(tick_lower, tick_upper, amount)

            # Phase 2: collect payment
            balance0_before = self.balance0() if amount0 > 0 else 0
            balance1_before = self.balance1() if amount1 > 0 else 0

            callbacks.on_mint(amount0, amount1, data)

            if amount0 > 0:
                self._require_received(balance0_before, amount0, self.balance0(), self.token0)
            if amount1 > 0:
                self._require_received(balance1_before, amount1, self.balance1(), self.token1)

            # Phase 3: commit
            if self.ticks.update(tick_lower, amount, upper=False):
                self.tick_bitmap.flip_tick(tick_lower, self.tick_spacing)
            if self.ticks.update(tick_upper, amount, upper=True):
                self.tick_bitmap.flip_tick(tick_upper, self.tick_spacing)

            position = self.positions.get(owner, tick_lower, tick_upper)
            self.positions.update(position, amount)

            self.liquidity = liquidity_after

            logger.info(
                "Position minted",
                extra={
                    "event": "clp.mint",
                    "pool": self.address[:10],
                    "owner": owner,
                    "range": f"[{tick_lower}, {tick_upper}]",
                    "liquidity": amount,
                    "amount0": amount0,
                    "amount1": amount1,
                }
            )

            return amount0, amount1

        finally:
            self._locked = False

    def _amounts_for_liquidity(
        self,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
    ) -> tuple[int, int]:
        """Calculate token amounts a liquidity change over the range is worth."""
        sqrt_price_lower = get_sqrt_ratio_at_tick(tick_lower)
        sqrt_price_upper = get_sqrt_ratio_at_tick(tick_upper)

        if self.tick < tick_lower:
            # Below range - need only token0
            amount0 = get_amount0_delta_signed(sqrt_price_lower, sqrt_price_upper, liquidity)
            amount1 = 0
        elif self.tick < tick_upper:
            # In range - need both
            amount0 = get_amount0_delta_signed(self.sqrt_price, sqrt_price_upper, liquidity)
            amount1 = get_amount1_delta_signed(sqrt_price_lower, self.sqrt_price, liquidity)
        else:
            # Above range - need only token1
            amount0 = 0
            amount1 = get_amount1_delta_signed(sqrt_price_lower, sqrt_price_upper, liquidity)

        return amount0, amount1

    # ==================== Swapping ====================

    def swap(
        self,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        callbacks: PoolCallbacks,
        sqrt_price_limit_x96: Optional[int] = None,
        data: bytes = b"",
    ) -> tuple[int, int]:
        """
        Execute a swap through the pool.

        Args:
            recipient: Receives the output tokens
            zero_for_one: True for token0->token1, False for token1->token0
            amount_specified: Positive for exact input, negative for exact output
            callbacks: Pays the input amount from on_swap
            sqrt_price_limit_x96: Price the swap may not move past
            data: Opaque context forwarded to the callback

        Returns:
            (amount0, amount1) - positive is owed by the recipient side,
            negative was paid to the recipient
        """
        self._require_initialized()
        self._require_not_locked()

        try:
            self._locked = True

            result = self._compute_swap(zero_for_one, amount_specified, sqrt_price_limit_x96)
            amount0, amount1 = result.amount0, result.amount1

            if amount0 != 0 or amount1 != 0:
                if zero_for_one:
                    token_in, amount_in = self.token0, amount0
                    token_out, amount_out = self.token1, -amount1
                else:
                    token_in, amount_in = self.token1, amount1
                    token_out, amount_out = self.token0, -amount0

                if amount_out > 0:
                    self.custody.transfer(token_out, self.address, recipient, amount_out)
                try:
                    balance_before = self.custody.balance_of(token_in, self.address)
                    callbacks.on_swap(amount0, amount1, data)
                    balance_after = self.custody.balance_of(token_in, self.address)
                    self._require_received(balance_before, amount_in, balance_after, token_in)
                except Exception:
                    if amount_out > 0:
                        self._reclaim(token_out, recipient, amount_out)
                    raise

            self._commit_swap(result)

            logger.info(
                "Swap executed",
                extra={
                    "event": "clp.swap",
                    "pool": self.address[:10],
                    "direction": "0->1" if zero_for_one else "1->0",
                    "amount0": amount0,
                    "amount1": amount1,
                    "tick": self.tick,
                    "steps": len(result.steps),
                }
            )

            return amount0, amount1

        finally:
            self._locked = False

    def quote(
        self,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int] = None,
    ) -> SwapResult:
        """
        Simulate a swap without moving tokens or changing state.
        """
        self._require_initialized()
        return self._compute_swap(zero_for_one, amount_specified, sqrt_price_limit_x96)

    def _compute_swap(
        self,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int],
    ) -> SwapResult:
        """
        Run the swap loop against a copy of the pool state.

        Raises:
            InvalidPriceLimit: If the limit is on the wrong side of the price
            InsufficientLiquidity: If active liquidity runs out while amount remains
        """
        if amount_specified == 0:
            return SwapResult(
                amount0=0,
                amount1=0,
                sqrt_price_x96=self.sqrt_price,
                tick=self.tick,
                liquidity=self.liquidity,
                steps=[],
            )

        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

        # A limit equal to the current price is accepted and swaps nothing
        if zero_for_one:
            if not MIN_SQRT_RATIO < sqrt_price_limit_x96 <= self.sqrt_price:
                raise InvalidPriceLimit(
                    "Price limit must be below the current price and above MIN_SQRT_RATIO",
                    details={"limit": sqrt_price_limit_x96, "sqrt_price": self.sqrt_price},
                )
        else:
            if not self.sqrt_price <= sqrt_price_limit_x96 < MAX_SQRT_RATIO:
                raise InvalidPriceLimit(
                    "Price limit must be above the current price and below MAX_SQRT_RATIO",
                    details={"limit": sqrt_price_limit_x96, "sqrt_price": self.sqrt_price},
                )

        exact_input = amount_specified > 0

        state = _SwapState(
            amount_specified_remaining=amount_specified,
            amount_calculated=0,
            sqrt_price_x96=self.sqrt_price,
            tick=self.tick,
            liquidity=self.liquidity,
        )
        steps: list[SwapStep] = []

        # Loop through ticks until amount is fulfilled or price limit reached
        while state.amount_specified_remaining != 0 and state.sqrt_price_x96 != sqrt_price_limit_x96:
            sqrt_price_start = state.sqrt_price_x96

            tick_next, initialized = self.tick_bitmap.next_initialized_tick_within_one_word(
                state.tick, self.tick_spacing, zero_for_one
            )
            # The bitmap does not know the tick bounds
            tick_next = min(max(tick_next, MIN_TICK), MAX_TICK)

            sqrt_price_next = get_sqrt_ratio_at_tick(tick_next)

            # Cap at price limit
            if zero_for_one:
                sqrt_price_target = max(sqrt_price_next, sqrt_price_limit_x96)
            else:
                sqrt_price_target = min(sqrt_price_next, sqrt_price_limit_x96)

            # A zero-width step onto a boundary tick is fine without liquidity
            if state.liquidity == 0 and sqrt_price_target != state.sqrt_price_x96:
                raise InsufficientLiquidity(
                    "No active liquidity left for the remaining amount",
                    details={
                        "tick": state.tick,
                        "amount_remaining": state.amount_specified_remaining,
                    },
                )

            state.sqrt_price_x96, amount_in, amount_out = compute_swap_step(
                state.sqrt_price_x96,
                sqrt_price_target,
                state.liquidity,
                state.amount_specified_remaining,
            )

            if exact_input:
                state.amount_specified_remaining -= amount_in
                state.amount_calculated -= amount_out
            else:
                state.amount_specified_remaining += amount_out
                state.amount_calculated += amount_in

            steps.append(
                SwapStep(
                    sqrt_price_start=sqrt_price_start,
                    tick_next=tick_next,
                    initialized=initialized,
                    sqrt_price_next=state.sqrt_price_x96,
                    amount_in=amount_in,
                    amount_out=amount_out,
                )
            )

            if state.sqrt_price_x96 == sqrt_price_next:
                # Cross tick
                if initialized:
                    liquidity_net = self.ticks.cross(tick_next)
                    if zero_for_one:
                        liquidity_net = -liquidity_net
                    state.liquidity = add_delta(state.liquidity, liquidity_net)
                    logger.debug(
                        "Tick crossed",
                        extra={
                            "event": "clp.tick_crossed",
                            "pool": self.address[:10],
                            "tick": tick_next,
                            "liquidity": state.liquidity,
                        }
                    )

                state.tick = tick_next - 1 if zero_for_one else tick_next
            elif state.sqrt_price_x96 != sqrt_price_start:
                state.tick = get_tick_at_sqrt_ratio(state.sqrt_price_x96)

        if zero_for_one == exact_input:
            amount0 = amount_specified - state.amount_specified_remaining
            amount1 = state.amount_calculated
        else:
            amount0 = state.amount_calculated
            amount1 = amount_specified - state.amount_specified_remaining

        return SwapResult(
            amount0=amount0,
            amount1=amount1,
            sqrt_price_x96=state.sqrt_price_x96,
            tick=state.tick,
            liquidity=state.liquidity,
            steps=steps,
        )

    def _commit_swap(self, result: SwapResult) -> None:
        """Write back price, tick and liquidity, skipping unchanged values."""
        if result.sqrt_price_x96 != self.sqrt_price or result.tick != self.tick:
            self.sqrt_price = result.sqrt_price_x96
            self.tick = result.tick
        if result.liquidity != self.liquidity:
            self.liquidity = result.liquidity

    # ==================== Flash Loans ====================

    def flash(
        self,
        recipient: str,
        amount0: int,
        amount1: int,
        callbacks: PoolCallbacks,
        data: bytes = b"",
    ) -> None:
        """
        Lend tokens for the duration of the callback.

        Ticks, positions, price and liquidity are never touched.

        Raises:
            FlashLoanNotRepaid: If either balance is lower after the callback
        """
        self._require_not_locked()

        try:
            self._locked = True

            balance0_before = self.balance0()
            balance1_before = self.balance1()

            lent0 = lent1 = 0
            try:
                if amount0 > 0:
                    self.custody.transfer(self.token0, self.address, recipient, amount0)
                    lent0 = amount0
                if amount1 > 0:
                    self.custody.transfer(self.token1, self.address, recipient, amount1)
                    lent1 = amount1

                callbacks.on_flash(data)

                balance0_after = self.balance0()
                balance1_after = self.balance1()
                if balance0_after < balance0_before or balance1_after < balance1_before:
                    raise FlashLoanNotRepaid(
                        "Flash loan was not repaid",
                        details={
                            "balance0_before": balance0_before,
                            "balance0_after": balance0_after,
                            "balance1_before": balance1_before,
                            "balance1_after": balance1_after,
                        },
                    )
            except Exception:
                # Pull back only the shortfall; a partial repayment already returned the rest
                shortfall0 = min(lent0, max(balance0_before - self.balance0(), 0))
                shortfall1 = min(lent1, max(balance1_before - self.balance1(), 0))
                if shortfall0:
                    self._reclaim(self.token0, recipient, shortfall0)
                if shortfall1:
                    self._reclaim(self.token1, recipient, shortfall1)
                raise

            logger.info(
                "Flash loan repaid",
                extra={
                    "event": "clp.flash",
                    "pool": self.address[:10],
                    "amount0": amount0,
                    "amount1": amount1,
                }
            )

        finally:
            self._locked = False

    # ==================== Tick Management ====================

    def _validate_ticks(self, tick_lower: int, tick_upper: int) -> None:
        """Validate tick range."""
        if tick_lower >= tick_upper:
            raise InvalidTickRange(
                "tick_lower must be less than tick_upper",
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            )

        if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
            raise InvalidTickRange("Ticks out of range", tick_lower=tick_lower, tick_upper=tick_upper)

        spacing = self.tick_spacing
        if tick_lower % spacing != 0 or tick_upper % spacing != 0:
            raise InvalidTickRange(
                f"Ticks must be multiples of {spacing}",
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            )

    # ==================== View Functions ====================

    def get_position(self, owner: str, tick_lower: int, tick_upper: int) -> dict | None:
        """Get position details."""
        position = self.positions.peek(owner, tick_lower, tick_upper)
        if position is None:
            return None

        amount0, amount1 = get_amounts_for_liquidity(
            self.sqrt_price,
            get_sqrt_ratio_at_tick(tick_lower),
            get_sqrt_ratio_at_tick(tick_upper),
            position.liquidity,
        )

        return {
            "owner": position.owner,
            "tick_lower": position.tick_lower,
            "tick_upper": position.tick_upper,
            "price_lower": tick_to_price(position.tick_lower),
            "price_upper": tick_to_price(position.tick_upper),
            "liquidity": position.liquidity,
            "amount0": amount0,
            "amount1": amount1,
            "in_range": position.is_in_range(self.tick),
        }

    def get_pool_state(self) -> dict:
        """Get current pool state."""
        return {
            "address": self.address,
            "token0": self.token0,
            "token1": self.token1,
            "tick_spacing": self.tick_spacing,
            "sqrt_price": self.sqrt_price,
            "tick": self.tick,
            "price": tick_to_price(self.tick),
            "liquidity": self.liquidity,
            "balance0": self.balance0(),
            "balance1": self.balance1(),
            "positions_count": len(self.positions),
            "initialized_ticks": len(self.ticks),
        }

    # ==================== Helpers ====================

    def _require_received(self, balance_before: int, amount: int, balance_after: int, token: str) -> None:
        if balance_before + amount > balance_after:
            raise InsufficientInputAmount(
                f"Callback paid {balance_after - balance_before} {token}, owed {amount}",
                expected=amount,
                received=balance_after - balance_before,
            )

    def _reclaim(self, token: str, holder: str, amount: int) -> None:
        """Return tokens sent out by an aborted swap or flash loan to the pool."""
        logger.warning(
            "Reclaiming tokens from aborted operation",
            extra={
                "event": "clp.reclaim",
                "pool": self.address[:10],
                "token": token,
                "holder": holder,
                "amount": amount,
            }
        )
        self.custody.transfer(token, holder, self.address, amount)

    def _require_initialized(self) -> None:
        if self.sqrt_price == 0:
            raise PoolNotInitialized("Pool price is not set")

    def _require_not_locked(self) -> None:
        if self._locked:
            raise PoolLocked("Pool is locked")
