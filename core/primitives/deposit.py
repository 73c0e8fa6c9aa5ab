"""
StayLedger Deposit Primitive - Top-Up Requests and Promotions
=============================================================
A user tops up the wallet by bank transfer and uploads proof. Staff
approve the request, which credits the cash and, when a promotion
applies, a bonus on top.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from core.primitives.withdrawal import BankInfo


class DepositStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class DepositRequest:
    deposit_id: str
    user_id: str
    amount: int
    bonus_amount: int
    proof_image: str
    status: DepositStatus
    created_at: datetime
    bank_info: Optional[BankInfo] = None
    is_admin_created: bool = False
    admin_note: str = ""
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    admin_signature: str = ""

    def __post_init__(self):
        if not self.deposit_id:
            raise ValueError("deposit_id must be non-empty.")
        if not isinstance(self.amount, int) or self.amount <= 0:
            raise ValueError("amount must be an int > 0.")
        if self.bonus_amount < 0:
            raise ValueError("bonus_amount must be >= 0.")


@dataclass(frozen=True)
class Promotion:
    """
    Deposit bonus offer.

    A deposit of at least deposit_threshold earns either bonus_percent of
    the deposit (floored, capped at max_bonus when set) or the flat
    bonus_amount when no percent is configured.
    """
    promotion_id: str
    name: str
    deposit_threshold: int
    bonus_amount: int = 0
    bonus_percent: Optional[int] = None
    max_bonus: Optional[int] = None
    is_active: bool = True
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.promotion_id:
            raise ValueError("promotion_id must be non-empty.")
        if self.deposit_threshold < 0:
            raise ValueError("deposit_threshold must be >= 0.")
        if self.bonus_amount < 0:
            raise ValueError("bonus_amount must be >= 0.")
        if self.bonus_percent is not None and not 0 < self.bonus_percent <= 100:
            raise ValueError("bonus_percent must be in (0, 100].")
        if self.max_bonus is not None and self.max_bonus < 0:
            raise ValueError("max_bonus must be >= 0.")
        if self.starts_at and self.ends_at and self.starts_at > self.ends_at:
            raise ValueError("starts_at must not be after ends_at.")

    def is_running(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.starts_at is not None and now < self.starts_at:
            return False
        if self.ends_at is not None and now > self.ends_at:
            return False
        return True

    def bonus_for(self, amount: int) -> int:
        if amount < self.deposit_threshold:
            return 0
        if self.bonus_percent:
            bonus = amount * self.bonus_percent // 100
            if self.max_bonus is not None:
                bonus = min(bonus, self.max_bonus)
            return bonus
        return self.bonus_amount
