"""
StayLedger Booking Primitive - Reservation Record
=================================================
A Booking reserves one unit of a Room for the nights [check_in, check_out).

Price fields:
    room_price      sum of nightly prices at creation
    service_price   sum of service lines (grows with in-stay add-ons)
    total_price     room_price + service_price at creation; never changes
    estimated_price running quote; starts equal to total_price
    final_price     set at checkout from the actual stay

Payment fields:
    paid_from_wallet  cash taken from the guest's wallet
    paid_from_bonus   bonus taken from the guest's wallet
    paid_externally   bank transfer / cash recorded by staff
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from core.time.temporal import StayWindow


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class BookingStatus(Enum):
    PENDING = "pending"
    PENDING_DEPOSIT = "pending_deposit"
    AWAITING_APPROVAL = "awaiting_approval"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold a unit of inventory.
OCCUPYING_STATUSES = frozenset({
    BookingStatus.PENDING_DEPOSIT,
    BookingStatus.AWAITING_APPROVAL,
    BookingStatus.CONFIRMED,
})


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    BANK_TRANSFER = "bank_transfer"
    WALLET = "wallet"
    CASH = "cash"


class PaymentOption(Enum):
    USE_BONUS = "use_bonus"
    USE_MAIN_ONLY = "use_main_only"


# ══════════════════════════════════════════════════════════════
# VALUE OBJECTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ContactInfo:
    full_name: str
    email: str
    phone: str

    def __post_init__(self):
        for name in ("full_name", "email", "phone"):
            value = getattr(self, name)
            if not value or not str(value).strip():
                raise ValueError(f"contact {name} is required.")
        if "@" not in self.email:
            raise ValueError("contact email is malformed.")

    def to_dict(self) -> dict:
        return {"full_name": self.full_name, "email": self.email, "phone": self.phone}


@dataclass(frozen=True)
class BookingServiceLine:
    service_id: str
    name: str
    quantity: int
    unit_price: int
    added_at: datetime

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("service quantity must be >= 1.")
        if self.unit_price < 0:
            raise ValueError("service unit_price must be >= 0.")

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        return {
            "service_id": self.service_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "added_at": self.added_at.isoformat(),
        }


# ══════════════════════════════════════════════════════════════
# BOOKING
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Booking:
    booking_id: str
    guest_id: str
    hotel_id: str
    room_id: str
    check_in: date
    check_out: date
    adults: int
    children: int
    room_price: int
    service_price: int
    total_price: int
    estimated_price: int
    contact: ContactInfo
    status: BookingStatus
    created_at: datetime
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    payment_option: Optional[PaymentOption] = None
    services: Tuple[BookingServiceLine, ...] = field(default_factory=tuple)
    final_price: Optional[int] = None
    paid_from_wallet: int = 0
    paid_from_bonus: int = 0
    paid_externally: int = 0
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    proof_image: str = ""
    special_requests: str = ""
    invoice_number: str = ""
    checkout_note: str = ""
    cancel_reason: str = ""

    def __post_init__(self):
        if not self.booking_id:
            raise ValueError("booking_id must be non-empty.")
        if not self.guest_id:
            raise ValueError("guest_id must be non-empty.")
        if self.check_in >= self.check_out:
            raise ValueError("check_in must be before check_out.")
        if self.adults < 1:
            raise ValueError("adults must be >= 1.")
        if self.children < 0:
            raise ValueError("children must be >= 0.")
        for name in (
            "room_price", "service_price", "total_price", "estimated_price",
            "paid_from_wallet", "paid_from_bonus", "paid_externally",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0.")
        if self.paid_from_wallet + self.paid_from_bonus > self.payable:
            raise ValueError("wallet payments exceed the booking price.")

    # ── Derived ───────────────────────────────────────────────

    @property
    def stay(self) -> StayWindow:
        return StayWindow(self.check_in, self.check_out)

    @property
    def payable(self) -> int:
        return self.final_price if self.final_price is not None else self.total_price

    @property
    def wallet_paid(self) -> int:
        return self.paid_from_wallet + self.paid_from_bonus

    @property
    def total_paid(self) -> int:
        return self.wallet_paid + self.paid_externally

    @property
    def is_checked_in(self) -> bool:
        return self.actual_check_in is not None

    @property
    def occupies_inventory(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    def services_total(self) -> int:
        return sum(line.line_total for line in self.services)
