"""
StayLedger Reference Primitive - What a Ledger Row Points At
============================================================
A wallet transaction may reference the booking it paid for, the deposit
request that funded it, or the withdrawal request it settles. The kind
is explicit so the id is never looked up in the wrong table.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ReferenceKind(Enum):
    BOOKING = "booking"
    DEPOSIT_REQUEST = "deposit_request"
    WITHDRAWAL_REQUEST = "withdrawal_request"


@dataclass(frozen=True)
class Reference:
    kind: ReferenceKind
    id: str

    def __post_init__(self):
        if not isinstance(self.kind, ReferenceKind):
            raise ValueError("kind must be ReferenceKind.")
        if not self.id or not isinstance(self.id, str):
            raise ValueError("reference id must be a non-empty string.")

    @classmethod
    def booking(cls, booking_id: str) -> Reference:
        return cls(ReferenceKind.BOOKING, booking_id)

    @classmethod
    def deposit(cls, deposit_id: str) -> Reference:
        return cls(ReferenceKind.DEPOSIT_REQUEST, deposit_id)

    @classmethod
    def withdrawal(cls, withdrawal_id: str) -> Reference:
        return cls(ReferenceKind.WITHDRAWAL_REQUEST, withdrawal_id)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "id": self.id}

    @classmethod
    def from_parts(cls, kind: Optional[str], ref_id: Optional[str]) -> Optional[Reference]:
        """Rebuild from stored columns; both empty means no reference."""
        if not kind and not ref_id:
            return None
        return cls(ReferenceKind(kind), ref_id)
