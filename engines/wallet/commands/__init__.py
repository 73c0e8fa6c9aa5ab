"""
StayLedger Wallet Engine - Commands
===================================
Deposit requests and staff decisions on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.errors import ValidationError
from core.primitives.withdrawal import BankInfo


@dataclass(frozen=True)
class CreateDepositRequest:
    """User (or staff on the user's behalf) reports a bank top-up."""
    user_id: str
    amount: int
    proof_image: str
    bank_info: Optional[BankInfo] = None
    is_admin_created: bool = False

    def __post_init__(self):
        if not self.user_id:
            raise ValidationError("user_id must be non-empty.")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise ValidationError("amount must be an int in minor units.")
        if self.amount <= 0:
            raise ValidationError("amount must be > 0.", amount=self.amount)


@dataclass(frozen=True)
class DecideDepositRequest:
    deposit_id: str
    admin_id: str
    note: str = ""
    admin_signature: str = ""

    def __post_init__(self):
        if not self.deposit_id:
            raise ValidationError("deposit_id must be non-empty.")
        if not self.admin_id:
            raise ValidationError("admin_id must be non-empty.")
