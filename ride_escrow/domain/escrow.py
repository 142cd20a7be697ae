"""
Escrowed value and the value-transfer boundary.

Patterns used
-------------
- **Move-only value**: a ``Balance`` can be drained into a new ``Balance``
  (``withdraw_all``) or consumed once (``take``).  Reusing a consumed
  balance raises ``BalanceAlreadyMoved``, so the same funds can never be
  paid out twice.
- **Adapter**: ``ValueTransfer`` is the only way value enters or leaves a
  ride.  ``InMemoryLedger`` implements it over a dict of account balances;
  the service layer seeds it from, and flushes it back to, the database.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import InsufficientFunds

Identity = str

# Amounts and balances are stored as signed 64-bit integers
MAX_AMOUNT = 2**63 - 1


class BalanceAlreadyMoved(RuntimeError):
    """Raised when a consumed balance is used again."""


class Balance:
    """Non-negative amount of value with move-only semantics."""

    __slots__ = ("_value", "_moved")

    def __init__(self, value: int = 0):
        if value < 0:
            raise ValueError("balance cannot be negative")
        self._value = value
        self._moved = False

    @property
    def value(self) -> int:
        self._check_live()
        return self._value

    def join(self, other: "Balance") -> None:
        """Absorb *other* into this balance, consuming it."""
        self._check_live()
        self._value += other.take()

    def withdraw_all(self) -> "Balance":
        """Move the whole amount into a new balance; this one drops to zero."""
        self._check_live()
        drained = Balance(self._value)
        self._value = 0
        return drained

    def take(self) -> int:
        """Consume this balance and return its amount."""
        self._check_live()
        amount = self._value
        self._value = 0
        self._moved = True
        return amount

    def _check_live(self) -> None:
        if self._moved:
            raise BalanceAlreadyMoved("balance has already been moved")

    def __repr__(self) -> str:
        state = "moved" if self._moved else self._value
        return f"Balance({state})"


class ValueTransfer(Protocol):
    """Host-provided value store for riders and drivers."""

    def withdraw(self, owner: Identity, amount: int) -> Balance:
        """Take *amount* out of *owner*'s account."""
        ...

    def transfer(self, balance: Balance, to: Identity) -> None:
        """Consume *balance* and credit it to *to*."""
        ...


@dataclass(frozen=True)
class Payout:
    recipient: Identity
    amount: int


class InMemoryLedger:
    """Dict-backed ``ValueTransfer`` that records every payout."""

    def __init__(self, balances: Optional[dict[Identity, int]] = None):
        self.balances: dict[Identity, int] = defaultdict(int, balances or {})
        self.payouts: list[Payout] = []

    def balance_of(self, owner: Identity) -> int:
        return self.balances[owner]

    def withdraw(self, owner: Identity, amount: int) -> Balance:
        if amount < 0:
            raise ValueError("withdraw amount cannot be negative")
        if self.balances[owner] < amount:
            raise InsufficientFunds(
                f"account {owner} holds {self.balances[owner]}, needs {amount}"
            )
        self.balances[owner] -= amount
        return Balance(amount)

    def transfer(self, balance: Balance, to: Identity) -> None:
        amount = balance.take()
        if amount == 0:
            return
        self.balances[to] += amount
        self.payouts.append(Payout(to, amount))


# ── Escrow helpers ────────────────────────────────────────────────────


def deposit(escrow: Balance, amount: int, payer: Identity, ledger: ValueTransfer) -> None:
    escrow.join(ledger.withdraw(payer, amount))


def value_of(escrow: Balance) -> int:
    return escrow.value


def transfer_to(escrow: Balance, to: Identity, ledger: ValueTransfer) -> int:
    """Drain *escrow* to a single recipient.  Returns the amount moved."""
    drained = escrow.withdraw_all()
    amount = drained.value
    ledger.transfer(drained, to)
    return amount
