"""
StayLedger Wallet Engine - Ledger Service
=========================================
The only writer of wallet balances.

Every balance change goes through WalletLedger.apply_transaction, which,
in one atomic unit under the user's account lock:
    1. snapshots the balances before the change,
    2. checks funds for debiting types,
    3. computes the balances after by the type's sign,
    4. verifies the arithmetic (a failure here is fatal),
    5. saves the account and appends the immutable ledger row with the
       next per-user sequence number.

Sign convention:
    credit  deposit, refund, bonus
    debit   withdrawal, payment

Holds reserve cash for open withdrawal requests without writing a ledger
row; they lower spendable cash, not the cash balance.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from core.errors import (
    InsufficientFundsError,
    InvalidStateError,
    LedgerInvariantError,
    NotFoundError,
    ValidationError,
    raise_if_rejected,
)
from core.primitives.ledger import (
    STATUS_TRANSITIONS,
    TransactionStatus,
    TransactionType,
    WalletAccount,
    WalletTransaction,
    replay_balances,
    sign_of,
)
from core.primitives.reference import Reference
from core.time.clock import Clock

from engines.wallet.policies import sufficient_bonus_policy, sufficient_cash_policy

logger = logging.getLogger("stay.wallet")


# ── Data Records ──────────────────────────────────────────────

@dataclass(frozen=True)
class HistoryPage:
    items: Tuple[WalletTransaction, ...]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0


# ══════════════════════════════════════════════════════════════
# WALLET LEDGER
# ══════════════════════════════════════════════════════════════

class WalletLedger:
    def __init__(self, repository, clock: Clock) -> None:
        self._repo = repository
        self._clock = clock

    # ── Writes ────────────────────────────────────────────────

    def apply_transaction(
        self,
        user_id: str,
        tx_type: TransactionType,
        amount: int,
        bonus_amount: int = 0,
        description: str = "",
        reference: Optional[Reference] = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        consume_hold: int = 0,
    ) -> WalletTransaction:
        """
        Apply one balance change and record it.

        amount is the cash component, bonus_amount the bonus component.
        consume_hold releases that much of the user's hold as part of the
        same change (withdrawal approval).
        """
        if not user_id:
            raise ValidationError("user_id must be non-empty.")
        if not isinstance(tx_type, TransactionType):
            raise ValidationError(f"Unknown transaction type: {tx_type!r}.")
        for label, value in (("amount", amount), ("bonus_amount", bonus_amount), ("consume_hold", consume_hold)):
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValidationError(f"{label} must be an int >= 0.", **{label: value})
        if amount == 0 and bonus_amount == 0:
            raise ValidationError("transaction moves no money.", user_id=user_id)
        if consume_hold and tx_type is not TransactionType.WITHDRAWAL:
            raise ValidationError("only withdrawals consume holds.", tx_type=tx_type.value)

        sign = sign_of(tx_type)
        with self._repo.atomic():
            account = self._repo.lock_account(user_id)

            if consume_hold > account.held_balance:
                raise LedgerInvariantError(
                    "HOLD_COVERS_RELEASE",
                    f"releasing {consume_hold} but only {account.held_balance} is held.",
                    user_id=user_id,
                )
            if sign < 0:
                raise_if_rejected(
                    sufficient_cash_policy(account, amount, releasing_hold=consume_hold),
                    InsufficientFundsError,
                    user_id=user_id,
                )
                raise_if_rejected(
                    sufficient_bonus_policy(account, bonus_amount),
                    InsufficientFundsError,
                    user_id=user_id,
                )

            tx = WalletTransaction(
                transaction_id=str(uuid.uuid4()),
                user_id=user_id,
                sequence=account.version + 1,
                type=tx_type,
                amount=amount,
                bonus_amount=bonus_amount,
                balance_before=account.cash_balance,
                balance_after=account.cash_balance + sign * amount,
                bonus_balance_before=account.bonus_balance,
                bonus_balance_after=account.bonus_balance + sign * bonus_amount,
                created_at=self._clock.now_utc(),
                description=description,
                reference=reference,
                status=status,
            )
            held_after = account.held_balance - consume_hold
            if not tx.is_consistent() or held_after > tx.balance_after:
                logger.error(
                    f"Ledger arithmetic failed for {user_id}: {tx.to_dict()} "
                    f"(held after {held_after})"
                )
                raise LedgerInvariantError(
                    "BALANCE_ARITHMETIC",
                    f"{tx_type.value} of {amount}/{bonus_amount} does not reconcile.",
                    user_id=user_id,
                )

            self._repo.save_account(
                replace(
                    account,
                    cash_balance=tx.balance_after,
                    bonus_balance=tx.bonus_balance_after,
                    held_balance=held_after,
                    version=tx.sequence,
                )
            )
            self._repo.append_transaction(tx)

        logger.info(
            f"Wallet {tx_type.value} #{tx.sequence} for {user_id}: "
            f"cash {tx.balance_before}->{tx.balance_after}, "
            f"bonus {tx.bonus_balance_before}->{tx.bonus_balance_after}"
        )
        return tx

    def place_hold(self, user_id: str, amount: int) -> WalletAccount:
        if amount <= 0:
            raise ValidationError("hold amount must be > 0.", amount=amount)
        with self._repo.atomic():
            account = self._repo.lock_account(user_id)
            raise_if_rejected(
                sufficient_cash_policy(account, amount),
                InsufficientFundsError,
                user_id=user_id,
            )
            account = replace(account, held_balance=account.held_balance + amount)
            self._repo.save_account(account)
        logger.info(f"Hold of {amount} placed for {user_id} (held {account.held_balance})")
        return account

    def release_hold(self, user_id: str, amount: int) -> WalletAccount:
        with self._repo.atomic():
            account = self._repo.lock_account(user_id)
            if amount <= 0 or amount > account.held_balance:
                raise LedgerInvariantError(
                    "HOLD_COVERS_RELEASE",
                    f"releasing {amount} but only {account.held_balance} is held.",
                    user_id=user_id,
                )
            account = replace(account, held_balance=account.held_balance - amount)
            self._repo.save_account(account)
        logger.info(f"Hold of {amount} released for {user_id} (held {account.held_balance})")
        return account

    def mark_transaction(self, transaction_id: str, status: TransactionStatus) -> WalletTransaction:
        """Move a pending row forward. Amounts never change."""
        with self._repo.atomic():
            tx = self._repo.get_transaction(transaction_id)
            if tx is None:
                raise NotFoundError(
                    f"transaction '{transaction_id}' not found.",
                    transaction_id=transaction_id,
                )
            if status not in STATUS_TRANSITIONS[tx.status]:
                raise InvalidStateError(
                    f"transaction {transaction_id} cannot move from "
                    f"'{tx.status.value}' to '{status.value}'.",
                    transaction_id=transaction_id,
                )
            tx = replace(tx, status=status)
            self._repo.update_transaction_status(tx)
        return tx

    # ── Reads ─────────────────────────────────────────────────

    def balance(self, user_id: str) -> WalletAccount:
        return self._repo.get_account(user_id)

    def history(
        self,
        user_id: str,
        tx_type: Optional[TransactionType] = None,
        page: int = 1,
        limit: int = 20,
    ) -> HistoryPage:
        """Newest first, optionally filtered by type."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be >= 1.")
        rows = tuple(reversed(self._repo.list_transactions(user_id, tx_type)))
        start = (page - 1) * limit
        return HistoryPage(items=rows[start:start + limit], total=len(rows), page=page, limit=limit)

    def replay(self, user_id: str) -> Tuple[int, int]:
        """Balances recomputed from the ledger alone: (cash, bonus)."""
        return replay_balances(self._repo.list_transactions(user_id))

    def verify(self, user_id: str) -> WalletAccount:
        """
        Check the cached account against the ledger.

        Raises LedgerInvariantError when a row is internally inconsistent,
        rows do not chain (each before equals the previous after), or the
        replayed balances differ from the cached ones.
        """
        account = self._repo.get_account(user_id)
        rows = self._repo.list_transactions(user_id)

        cash = 0
        bonus = 0
        for expected_sequence, tx in enumerate(rows, start=1):
            if tx.sequence != expected_sequence:
                raise LedgerInvariantError(
                    "SEQUENCE_CONTIGUOUS",
                    f"expected sequence {expected_sequence}, found {tx.sequence}.",
                    user_id=user_id,
                )
            if tx.balance_before != cash or tx.bonus_balance_before != bonus or not tx.is_consistent():
                raise LedgerInvariantError(
                    "ROW_CHAIN",
                    f"row {tx.sequence} does not continue from ({cash}, {bonus}).",
                    user_id=user_id,
                )
            cash, bonus = tx.balance_after, tx.bonus_balance_after

        if (cash, bonus) != replay_balances(rows):
            raise LedgerInvariantError("REPLAY", "signed sum disagrees with row chain.", user_id=user_id)
        if (cash, bonus) != account.balances() or account.version != len(rows):
            raise LedgerInvariantError(
                "CACHED_BALANCE",
                f"cached ({account.cash_balance}, {account.bonus_balance}, v{account.version}) "
                f"but ledger gives ({cash}, {bonus}, v{len(rows)}).",
                user_id=user_id,
            )
        return account
