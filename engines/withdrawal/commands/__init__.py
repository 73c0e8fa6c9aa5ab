"""
StayLedger Withdrawal Engine - Commands
=======================================
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import ValidationError
from core.primitives.withdrawal import BankInfo


@dataclass(frozen=True)
class CreateWithdrawalRequest:
    user_id: str
    amount: int
    bank_info: BankInfo
    is_admin_created: bool = False

    def __post_init__(self):
        if not self.user_id:
            raise ValidationError("user_id must be non-empty.")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise ValidationError("amount must be an int in minor units.")
        if not isinstance(self.bank_info, BankInfo):
            raise ValidationError("bank_info must be BankInfo.")


@dataclass(frozen=True)
class ConfirmWithdrawalRequest:
    """The user proves intent with the emailed token and a signature."""
    token: str
    user_signature: str

    def __post_init__(self):
        if not self.user_signature or not self.user_signature.strip():
            raise ValidationError("user_signature is required.")


@dataclass(frozen=True)
class DecideWithdrawalRequest:
    withdrawal_id: str
    admin_id: str
    admin_signature: str = ""
    note: str = ""

    def __post_init__(self):
        if not self.withdrawal_id:
            raise ValidationError("withdrawal_id must be non-empty.")
        if not self.admin_id:
            raise ValidationError("admin_id must be non-empty.")
