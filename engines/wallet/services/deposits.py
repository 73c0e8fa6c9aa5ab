"""
StayLedger Wallet Engine - Deposit Workflow
===========================================
Bank top-ups reported by the user and approved by staff.

The bonus is fixed when the request is created, from the best running
promotion: among active promotions inside their time window whose
threshold the deposit reaches, the one with the highest threshold wins.

Approval credits the cash (deposit row) and the bonus (bonus row) in one
atomic unit. Rejection writes nothing to the ledger.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Optional

from core.config.rules import StayRules
from core.errors import NotFoundError, ValidationError, raise_if_rejected
from core.primitives.deposit import DepositRequest, DepositStatus, Promotion
from core.primitives.ledger import TransactionType
from core.primitives.reference import Reference
from core.primitives.workflow import build_workflow
from core.time.clock import Clock

from engines.wallet.commands import CreateDepositRequest, DecideDepositRequest
from engines.wallet.policies import minimum_amount_policy, proof_image_required_policy
from engines.wallet.services import WalletLedger

logger = logging.getLogger("stay.wallet")

DEPOSIT_WORKFLOW = build_workflow(
    "Deposit",
    DepositStatus.PENDING.value,
    {
        DepositStatus.PENDING.value: (DepositStatus.APPROVED.value, DepositStatus.REJECTED.value),
    },
)


def best_promotion(promotions, amount: int, now: datetime) -> Optional[Promotion]:
    eligible = [
        p for p in promotions
        if p.is_running(now) and p.deposit_threshold <= amount
    ]
    if not eligible:
        return None
    return max(eligible, key=lambda p: (p.deposit_threshold, p.promotion_id))


class DepositService:
    def __init__(self, repository, ledger: WalletLedger, clock: Clock, rules: StayRules) -> None:
        self._repo = repository
        self._ledger = ledger
        self._clock = clock
        self._rules = rules

    def bonus_for(self, amount: int) -> int:
        promotion = best_promotion(self._repo.list_promotions(), amount, self._clock.now_utc())
        return promotion.bonus_for(amount) if promotion else 0

    def save_promotion(self, promotion: Promotion) -> Promotion:
        with self._repo.atomic():
            self._repo.save_promotion(promotion)
        logger.info(f"Promotion saved: {promotion.promotion_id} (threshold {promotion.deposit_threshold})")
        return promotion

    def create_deposit(self, request: CreateDepositRequest) -> DepositRequest:
        raise_if_rejected(
            minimum_amount_policy(request.amount, self._rules.deposit_min_amount, "deposit"),
            ValidationError,
            user_id=request.user_id,
        )
        raise_if_rejected(proof_image_required_policy(request.proof_image), ValidationError)

        deposit = DepositRequest(
            deposit_id=str(uuid.uuid4()),
            user_id=request.user_id,
            amount=request.amount,
            bonus_amount=self.bonus_for(request.amount),
            proof_image=request.proof_image,
            status=DepositStatus.PENDING,
            created_at=self._clock.now_utc(),
            bank_info=request.bank_info,
            is_admin_created=request.is_admin_created,
        )
        with self._repo.atomic():
            self._repo.save_deposit(deposit)
        logger.info(
            f"Deposit requested: {deposit.deposit_id} by {deposit.user_id} "
            f"amount {deposit.amount} bonus {deposit.bonus_amount}"
        )
        return deposit

    def approve_deposit(self, request: DecideDepositRequest) -> DepositRequest:
        with self._repo.atomic():
            deposit = self._repo.lock_deposit(request.deposit_id)
            DEPOSIT_WORKFLOW.require_transition(
                deposit.deposit_id, deposit.status.value, DepositStatus.APPROVED.value,
            )
            reference = Reference.deposit(deposit.deposit_id)
            self._ledger.apply_transaction(
                deposit.user_id,
                TransactionType.DEPOSIT,
                amount=deposit.amount,
                description=f"Deposit {deposit.deposit_id}",
                reference=reference,
            )
            if deposit.bonus_amount > 0:
                self._ledger.apply_transaction(
                    deposit.user_id,
                    TransactionType.BONUS,
                    amount=0,
                    bonus_amount=deposit.bonus_amount,
                    description=f"Promotion bonus for deposit {deposit.deposit_id}",
                    reference=reference,
                )
            deposit = replace(
                deposit,
                status=DepositStatus.APPROVED,
                approved_by=request.admin_id,
                approved_at=self._clock.now_utc(),
                admin_note=request.note,
                admin_signature=request.admin_signature,
            )
            self._repo.save_deposit(deposit)
        logger.info(f"Deposit approved: {deposit.deposit_id} by {request.admin_id}")
        return deposit

    def reject_deposit(self, request: DecideDepositRequest) -> DepositRequest:
        with self._repo.atomic():
            deposit = self._repo.lock_deposit(request.deposit_id)
            DEPOSIT_WORKFLOW.require_transition(
                deposit.deposit_id, deposit.status.value, DepositStatus.REJECTED.value,
            )
            deposit = replace(
                deposit,
                status=DepositStatus.REJECTED,
                approved_by=request.admin_id,
                approved_at=self._clock.now_utc(),
                admin_note=request.note,
            )
            self._repo.save_deposit(deposit)
        logger.info(f"Deposit rejected: {deposit.deposit_id} by {request.admin_id}")
        return deposit

    def get_deposit(self, deposit_id: str) -> DepositRequest:
        deposit = self._repo.get_deposit(deposit_id)
        if deposit is None:
            raise NotFoundError(f"deposit '{deposit_id}' not found.", deposit_id=deposit_id)
        return deposit
