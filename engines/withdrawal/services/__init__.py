"""
StayLedger Withdrawal Engine - Service Layer
============================================
Cash-out requests with two-party confirmation.

    pending --request_confirmation--> pending_confirmation
    pending_confirmation --approve (after user confirmation)--> approved
    pending | pending_confirmation --reject--> rejected
    approved --complete--> completed

Money convention: debit on approve.
    create   places a hold for the amount (spendable cash drops, cash does not)
    approve  writes a withdrawal ledger row (status pending) consuming the hold
    reject   releases the hold, no ledger row
    complete marks the ledger row completed

Confirmation tokens are random, unique across all requests, single use,
and expire after the configured lifetime. Expiry is checked when the
token is presented.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from core.config.rules import StayRules
from core.errors import (
    InvalidStateError,
    LedgerInvariantError,
    NotFoundError,
    StayError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
    raise_if_rejected,
)
from core.primitives.ledger import TransactionStatus, TransactionType
from core.primitives.reference import Reference, ReferenceKind
from core.primitives.withdrawal import WithdrawalRequest, WithdrawalStatus
from core.primitives.workflow import build_workflow
from core.time.clock import Clock
from core.time.temporal import expires_at, is_expired

from engines.wallet.policies import bank_info_complete_policy, minimum_amount_policy
from engines.wallet.services import WalletLedger
from engines.withdrawal.commands import (
    ConfirmWithdrawalRequest,
    CreateWithdrawalRequest,
    DecideWithdrawalRequest,
)

logger = logging.getLogger("stay.withdrawal")

_PENDING = WithdrawalStatus.PENDING.value
_AWAITING = WithdrawalStatus.PENDING_CONFIRMATION.value
_APPROVED = WithdrawalStatus.APPROVED.value
_REJECTED = WithdrawalStatus.REJECTED.value
_COMPLETED = WithdrawalStatus.COMPLETED.value

WITHDRAWAL_WORKFLOW = build_workflow(
    "Withdrawal",
    _PENDING,
    {
        _PENDING: (_AWAITING, _REJECTED),
        _AWAITING: (_APPROVED, _REJECTED),
        _APPROVED: (_COMPLETED,),
    },
)

_TOKEN_ATTEMPTS = 5


@dataclass(frozen=True)
class IssuedConfirmation:
    """Returned to the caller, who delivers the token to the user."""
    withdrawal: WithdrawalRequest
    token: str


class WithdrawalService:
    def __init__(self, repository, ledger: WalletLedger, clock: Clock, rules: StayRules) -> None:
        self._repo = repository
        self._ledger = ledger
        self._clock = clock
        self._rules = rules

    # ── Create ────────────────────────────────────────────────

    def create_withdrawal(self, request: CreateWithdrawalRequest) -> WithdrawalRequest:
        raise_if_rejected(
            minimum_amount_policy(request.amount, self._rules.withdrawal_min_amount, "withdrawal"),
            ValidationError,
            user_id=request.user_id,
        )
        raise_if_rejected(bank_info_complete_policy(request.bank_info), ValidationError)

        withdrawal = WithdrawalRequest(
            withdrawal_id=str(uuid.uuid4()),
            user_id=request.user_id,
            amount=request.amount,
            bank_info=request.bank_info,
            status=WithdrawalStatus.PENDING,
            created_at=self._clock.now_utc(),
            is_admin_created=request.is_admin_created,
        )
        with self._repo.atomic():
            self._repo.save_withdrawal(withdrawal)
            self._ledger.place_hold(request.user_id, request.amount)

        logger.info(
            f"Withdrawal requested: {withdrawal.withdrawal_id} by {withdrawal.user_id} "
            f"amount {withdrawal.amount}"
        )
        return withdrawal

    # ── Confirmation ──────────────────────────────────────────

    def _new_token(self) -> str:
        for _ in range(_TOKEN_ATTEMPTS):
            token = secrets.token_urlsafe(self._rules.confirmation_token_bytes)
            if self._repo.find_withdrawal_by_token(token) is None:
                return token
        raise StayError("Could not allocate a unique confirmation token.")

    def request_confirmation(self, withdrawal_id: str) -> IssuedConfirmation:
        """
        Issue a confirmation token.

        Allowed from pending. Allowed again from pending_confirmation only
        when the previous token expired before the user confirmed.
        """
        now = self._clock.now_utc()
        with self._repo.atomic():
            withdrawal = self._repo.lock_withdrawal(withdrawal_id)
            if withdrawal.status is WithdrawalStatus.PENDING_CONFIRMATION:
                if withdrawal.is_confirmed:
                    raise InvalidStateError(
                        f"Withdrawal {withdrawal_id} is already confirmed.",
                        withdrawal_id=withdrawal_id,
                    )
                if not is_expired(withdrawal.token_expires_at, now):
                    raise InvalidStateError(
                        f"Withdrawal {withdrawal_id} has a confirmation token that is still valid.",
                        withdrawal_id=withdrawal_id,
                    )
            else:
                WITHDRAWAL_WORKFLOW.require_transition(withdrawal_id, withdrawal.status.value, _AWAITING)

            token = self._new_token()
            withdrawal = replace(
                withdrawal,
                status=WithdrawalStatus.PENDING_CONFIRMATION,
                confirmation_token=token,
                token_expires_at=expires_at(now, self._rules.confirmation_ttl_seconds),
            )
            self._repo.save_withdrawal(withdrawal)

        logger.info(
            f"Withdrawal confirmation issued: {withdrawal_id} "
            f"(expires {withdrawal.token_expires_at.isoformat()})"
        )
        return IssuedConfirmation(withdrawal=withdrawal, token=token)

    def confirm_withdrawal(self, request: ConfirmWithdrawalRequest) -> WithdrawalRequest:
        """Consume the token. The status stays pending_confirmation until staff decide."""
        if not request.token:
            raise TokenInvalidError("Confirmation token is missing.")

        now = self._clock.now_utc()
        with self._repo.atomic():
            found = self._repo.find_withdrawal_by_token(request.token)
            if found is None:
                logger.warning("Withdrawal confirmation rejected: unknown token")
                raise TokenInvalidError("Confirmation token is invalid or already used.")

            withdrawal = self._repo.lock_withdrawal(found.withdrawal_id)
            if withdrawal.confirmation_token != request.token:
                raise TokenInvalidError(
                    "Confirmation token is invalid or already used.",
                    withdrawal_id=withdrawal.withdrawal_id,
                )
            WITHDRAWAL_WORKFLOW.require_state(
                withdrawal.withdrawal_id, withdrawal.status.value, (_AWAITING,),
            )
            if is_expired(withdrawal.token_expires_at, now):
                logger.warning(f"Withdrawal confirmation rejected: token expired for {withdrawal.withdrawal_id}")
                raise TokenExpiredError(
                    "Confirmation token has expired.",
                    withdrawal_id=withdrawal.withdrawal_id,
                )

            withdrawal = replace(
                withdrawal,
                confirmed_at=now,
                user_signature=request.user_signature,
                confirmation_token=None,
                token_expires_at=None,
            )
            self._repo.save_withdrawal(withdrawal)

        logger.info(f"Withdrawal confirmed by user: {withdrawal.withdrawal_id}")
        return withdrawal

    # ── Staff decisions ───────────────────────────────────────

    def approve_withdrawal(self, request: DecideWithdrawalRequest) -> WithdrawalRequest:
        with self._repo.atomic():
            withdrawal = self._repo.lock_withdrawal(request.withdrawal_id)
            WITHDRAWAL_WORKFLOW.require_transition(
                withdrawal.withdrawal_id, withdrawal.status.value, _APPROVED,
            )
            if not withdrawal.is_confirmed:
                raise InvalidStateError(
                    f"Withdrawal {withdrawal.withdrawal_id} has not been confirmed by the user.",
                    withdrawal_id=withdrawal.withdrawal_id,
                )

            self._ledger.apply_transaction(
                withdrawal.user_id,
                TransactionType.WITHDRAWAL,
                amount=withdrawal.amount,
                description=f"Withdrawal to {withdrawal.bank_info.bank_name} "
                            f"{withdrawal.bank_info.account_number}",
                reference=Reference.withdrawal(withdrawal.withdrawal_id),
                status=TransactionStatus.PENDING,
                consume_hold=withdrawal.amount,
            )
            withdrawal = replace(
                withdrawal,
                status=WithdrawalStatus.APPROVED,
                processed_by=request.admin_id,
                processed_at=self._clock.now_utc(),
                admin_signature=request.admin_signature,
                admin_note=request.note,
            )
            self._repo.save_withdrawal(withdrawal)

        logger.info(f"Withdrawal approved: {withdrawal.withdrawal_id} by {request.admin_id}")
        return withdrawal

    def reject_withdrawal(self, request: DecideWithdrawalRequest) -> WithdrawalRequest:
        with self._repo.atomic():
            withdrawal = self._repo.lock_withdrawal(request.withdrawal_id)
            WITHDRAWAL_WORKFLOW.require_transition(
                withdrawal.withdrawal_id, withdrawal.status.value, _REJECTED,
            )
            if withdrawal.holds_funds:
                self._ledger.release_hold(withdrawal.user_id, withdrawal.amount)
            withdrawal = replace(
                withdrawal,
                status=WithdrawalStatus.REJECTED,
                processed_by=request.admin_id,
                processed_at=self._clock.now_utc(),
                admin_signature=request.admin_signature,
                admin_note=request.note,
                confirmation_token=None,
                token_expires_at=None,
            )
            self._repo.save_withdrawal(withdrawal)

        logger.info(f"Withdrawal rejected: {withdrawal.withdrawal_id} by {request.admin_id}")
        return withdrawal

    def complete_withdrawal(self, request: DecideWithdrawalRequest) -> WithdrawalRequest:
        """Staff report the bank transfer as sent."""
        with self._repo.atomic():
            withdrawal = self._repo.lock_withdrawal(request.withdrawal_id)
            WITHDRAWAL_WORKFLOW.require_transition(
                withdrawal.withdrawal_id, withdrawal.status.value, _COMPLETED,
            )
            rows = [
                tx for tx in self._repo.list_transactions(withdrawal.user_id, TransactionType.WITHDRAWAL)
                if tx.reference is not None
                and tx.reference.kind is ReferenceKind.WITHDRAWAL_REQUEST
                and tx.reference.id == withdrawal.withdrawal_id
            ]
            if len(rows) != 1:
                raise LedgerInvariantError(
                    "WITHDRAWAL_ROW",
                    f"expected one ledger row for {withdrawal.withdrawal_id}, found {len(rows)}.",
                    user_id=withdrawal.user_id,
                )
            self._ledger.mark_transaction(rows[0].transaction_id, TransactionStatus.COMPLETED)
            withdrawal = replace(
                withdrawal,
                status=WithdrawalStatus.COMPLETED,
                admin_note=request.note or withdrawal.admin_note,
            )
            self._repo.save_withdrawal(withdrawal)

        logger.info(f"Withdrawal completed: {withdrawal.withdrawal_id} by {request.admin_id}")
        return withdrawal

    # ── Queries ───────────────────────────────────────────────

    def get_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest:
        withdrawal = self._repo.get_withdrawal(withdrawal_id)
        if withdrawal is None:
            raise NotFoundError(f"withdrawal '{withdrawal_id}' not found.", withdrawal_id=withdrawal_id)
        return withdrawal

    def list_withdrawals(self, user_id: Optional[str] = None) -> Tuple[WithdrawalRequest, ...]:
        return self._repo.list_withdrawals(user_id)
