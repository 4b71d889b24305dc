"""
AMM-specific exception hierarchy for clamm.

Every failure of a pool operation is a synchronous, non-retryable rejection
of the whole operation. Pool state is never partially committed when one of
these is raised.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class AMMError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Math Errors ====================


class MathError(AMMError):
    """Raised when a fixed-point computation receives an out-of-domain input."""
    pass


class InvalidTick(MathError):
    """Raised when a tick lies outside [MIN_TICK, MAX_TICK] or off the tick spacing."""
    pass


class InvalidSqrtPrice(MathError):
    """Raised when a sqrt price lies outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO]."""
    pass


class LiquidityOverflow(MathError):
    """Raised when a liquidity value would exceed its uint128 (or per-tick) cap."""
    pass


class LiquidityUnderflow(MathError):
    """Raised when a liquidity value would become negative."""
    pass


# ==================== Pool Errors ====================


class PoolError(AMMError):
    """Raised when a pool operation is rejected."""
    pass


class InvalidTickRange(PoolError):
    """Raised when position bounds are out of range, misaligned, or lower >= upper."""

    def __init__(
        self,
        message: str,
        tick_lower: Optional[int] = None,
        tick_upper: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.tick_lower = tick_lower
        self.tick_upper = tick_upper


class ZeroLiquidity(PoolError):
    """Raised when a mint requests zero liquidity."""
    pass


class InsufficientInputAmount(PoolError):
    """Raised when the caller under-supplied tokens during a callback."""

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        received: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.received = received


class InvalidPriceLimit(PoolError):
    """Raised when a swap price limit is on the wrong side of the price or out of bounds."""
    pass


class InsufficientLiquidity(PoolError):
    """Raised when a swap runs out of active liquidity while input remains."""
    pass


class PoolLocked(PoolError):
    """Raised on a reentrant call into a pool that is mid-operation."""
    pass


class PoolNotInitialized(PoolError):
    """Raised when a pool is used before its price has been set."""
    pass


class PoolAlreadyInitialized(PoolError):
    """Raised when initialize() is called twice."""
    pass


class FlashLoanNotRepaid(PoolError):
    """Raised when a flash loan callback returns without restoring balances."""
    pass


# ==================== Custody Errors ====================


class CustodyError(AMMError):
    """Raised by a custody provider when a transfer cannot be executed."""
    pass


class InsufficientBalanceError(CustodyError):
    """Raised when a holder lacks the balance for a transfer."""
    pass
