"""
StayLedger Withdrawal Primitive - Cash-Out Request
==================================================
A user asks to move wallet cash to a bank account. The request must be
confirmed by the user through a single-use token and approved by staff
before money leaves the wallet.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class WithdrawalStatus(Enum):
    PENDING = "pending"
    PENDING_CONFIRMATION = "pending_confirmation"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


@dataclass(frozen=True)
class BankInfo:
    bank_name: str
    account_number: str
    account_name: str
    transfer_content: str = ""

    def missing_fields(self) -> tuple:
        return tuple(
            name for name in ("bank_name", "account_number", "account_name")
            if not (getattr(self, name) or "").strip()
        )

    def to_dict(self) -> dict:
        return {
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "account_name": self.account_name,
            "transfer_content": self.transfer_content,
        }


@dataclass(frozen=True)
class WithdrawalRequest:
    withdrawal_id: str
    user_id: str
    amount: int
    bank_info: BankInfo
    status: WithdrawalStatus
    created_at: datetime
    is_admin_created: bool = False
    admin_note: str = ""
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    admin_signature: str = ""
    confirmation_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    user_signature: str = ""
    confirmed_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.withdrawal_id:
            raise ValueError("withdrawal_id must be non-empty.")
        if not self.user_id:
            raise ValueError("user_id must be non-empty.")
        if not isinstance(self.amount, int) or self.amount <= 0:
            raise ValueError("amount must be an int > 0.")
        if self.confirmation_token is not None and self.token_expires_at is None:
            raise ValueError("a confirmation token needs an expiry.")

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None

    @property
    def holds_funds(self) -> bool:
        """Open requests reserve their amount against the wallet."""
        return self.status in (WithdrawalStatus.PENDING, WithdrawalStatus.PENDING_CONFIRMATION)
