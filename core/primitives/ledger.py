"""
StayLedger Ledger Primitive - Wallet Balances and Transactions
==============================================================
Every user has two balances: cash (withdrawable) and bonus (promotional,
spendable on bookings, never withdrawable). Each balance change is one
immutable WalletTransaction that records the split between the two and
the balances on both sides of the change.

RULES (NON-NEGOTIABLE):
- All amounts use integer minor units - NO floats
- Transactions are append-only; only `status` may move forward
- balance_after = balance_before +/- amount (sign fixed by type)
- bonus_balance_after = bonus_balance_before +/- bonus_amount
- Neither balance may ever go negative
- Replaying a user's transactions in sequence order reproduces the
  cached balances exactly

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from core.primitives.reference import Reference


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PAYMENT = "payment"
    REFUND = "refund"
    BONUS = "bonus"


class TransactionStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


CREDIT_TYPES: FrozenSet[TransactionType] = frozenset({
    TransactionType.DEPOSIT,
    TransactionType.REFUND,
    TransactionType.BONUS,
})


STATUS_TRANSITIONS = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.APPROVED,
        TransactionStatus.REJECTED,
        TransactionStatus.COMPLETED,
    }),
    TransactionStatus.APPROVED: frozenset(),
    TransactionStatus.REJECTED: frozenset(),
    TransactionStatus.COMPLETED: frozenset(),
}


def sign_of(tx_type: TransactionType) -> int:
    """+1 for types that add to balances, -1 for types that take from them."""
    return 1 if tx_type in CREDIT_TYPES else -1


# ══════════════════════════════════════════════════════════════
# WALLET ACCOUNT (cached balances)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WalletAccount:
    """
    Cached balances for one user.

    held_balance is the cash reserved by open withdrawal requests; it is
    part of cash_balance but cannot be spent. version counts the ledger
    rows applied so far; the next row gets sequence version + 1.
    """
    user_id: str
    cash_balance: int = 0
    bonus_balance: int = 0
    held_balance: int = 0
    version: int = 0

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id must be non-empty.")
        for name in ("cash_balance", "bonus_balance", "held_balance", "version"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be an int >= 0.")

    @property
    def spendable_cash(self) -> int:
        return self.cash_balance - self.held_balance

    def balances(self) -> Tuple[int, int]:
        return (self.cash_balance, self.bonus_balance)


# ══════════════════════════════════════════════════════════════
# WALLET TRANSACTION (immutable ledger row)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WalletTransaction:
    transaction_id: str
    user_id: str
    sequence: int
    type: TransactionType
    amount: int
    bonus_amount: int
    balance_before: int
    balance_after: int
    bonus_balance_before: int
    bonus_balance_after: int
    created_at: datetime
    description: str = ""
    reference: Optional[Reference] = None
    status: TransactionStatus = TransactionStatus.COMPLETED

    def __post_init__(self):
        if not self.transaction_id:
            raise ValueError("transaction_id must be non-empty.")
        if not isinstance(self.type, TransactionType):
            raise ValueError("type must be TransactionType.")
        if not isinstance(self.status, TransactionStatus):
            raise ValueError("status must be TransactionStatus.")
        if self.sequence < 1:
            raise ValueError("sequence must be >= 1.")
        if self.amount < 0 or self.bonus_amount < 0:
            raise ValueError("transaction amounts must be >= 0.")

    @property
    def total(self) -> int:
        return self.amount + self.bonus_amount

    def is_consistent(self) -> bool:
        sign = sign_of(self.type)
        return (
            self.balance_after == self.balance_before + sign * self.amount
            and self.bonus_balance_after == self.bonus_balance_before + sign * self.bonus_amount
            and self.balance_after >= 0
            and self.bonus_balance_after >= 0
        )

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "user_id": self.user_id,
            "sequence": self.sequence,
            "type": self.type.value,
            "amount": self.amount,
            "bonus_amount": self.bonus_amount,
            "balance_before": self.balance_before,
            "balance_after": self.balance_after,
            "bonus_balance_before": self.bonus_balance_before,
            "bonus_balance_after": self.bonus_balance_after,
            "description": self.description,
            "reference": self.reference.to_dict() if self.reference else None,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }


def replay_balances(transactions: Iterable[WalletTransaction]) -> Tuple[int, int]:
    """Fold a user's ledger rows (in sequence order) into (cash, bonus)."""
    cash = 0
    bonus = 0
    for tx in transactions:
        sign = sign_of(tx.type)
        cash += sign * tx.amount
        bonus += sign * tx.bonus_amount
    return cash, bonus
