"""
Boundary between the pool engine and asset custody.

The engine never moves tokens itself. It asks a CustodyProvider for
balances and outbound transfers, and asks the caller, through
PoolCallbacks, to pay what it owes.

Callbacks run while a mint/swap/flash is still in progress. The pool's
state visible to a callback is the pre-operation state: nothing is
committed until the callback returns and the balance check passes, and
tokens sent out before a failing callback are transferred back.
Reentrant calls into the same pool from a callback are rejected with
PoolLocked.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from ..amm_exceptions import CustodyError, InsufficientBalanceError

logger = logging.getLogger(__name__)


class CustodyProvider(ABC):
    """
    Interface for token custody.

    Implementations must apply each transfer atomically.
    """

    @abstractmethod
    def balance_of(self, token: str, holder: str) -> int:
        """Current balance of token held by holder."""

    @abstractmethod
    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        """Move amount of token from sender to recipient."""


@runtime_checkable
class PoolCallbacks(Protocol):
    """
    Capability the caller passes into mint/swap/flash.

    Each hook must arrange for the owed tokens to reach the pool's custody
    account before it returns.
    """

    def on_mint(self, amount0: int, amount1: int, data: bytes) -> None:
        """Pay amount0 of token0 and amount1 of token1 to the pool."""
        ...

    def on_swap(self, amount0_delta: int, amount1_delta: int, data: bytes) -> None:
        """Pay the positive delta; the negative one was already sent to the recipient."""
        ...

    def on_flash(self, data: bytes) -> None:
        """Return the borrowed amounts to the pool."""
        ...


class InMemoryCustody(CustodyProvider):
    """
    In-memory token ledger for testing and simulation.
    """

    def __init__(self) -> None:
        self.balances: dict[str, dict[str, int]] = {}  # holder -> {token -> balance}

    def set_balance(self, holder: str, token: str, amount: int) -> None:
        """Set balance for testing."""
        if amount < 0:
            raise CustodyError("Balance cannot be negative", details={"holder": holder, "token": token})
        self.balances.setdefault(holder, {})[token] = amount

    def balance_of(self, token: str, holder: str) -> int:
        return self.balances.get(holder, {}).get(token, 0)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise CustodyError("Transfer amount cannot be negative", details={"amount": amount})
        sender_balance = self.balance_of(token, sender)
        if sender_balance < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {sender_balance} {token}, needs {amount}",
                details={"holder": sender, "token": token, "required": amount},
            )
        self.balances.setdefault(sender, {})[token] = sender_balance - amount
        recipient_balances = self.balances.setdefault(recipient, {})
        recipient_balances[token] = recipient_balances.get(token, 0) + amount
        logger.debug(
            "Custody transfer",
            extra={
                "event": "custody.transfer",
                "token": token,
                "sender": sender,
                "recipient": recipient,
                "amount": amount,
            },
        )
