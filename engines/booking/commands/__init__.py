"""
StayLedger Booking Engine - Commands
====================================
Guest and staff requests against a booking. Shape checks happen here;
anything needing storage (room state, availability, balances) is checked
by the service inside its atomic unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from core.errors import ValidationError
from core.primitives.booking import ContactInfo, PaymentMethod, PaymentOption


def _require_id(value: str, label: str) -> None:
    if not value or not isinstance(value, str):
        raise ValidationError(f"{label} must be a non-empty string.")


@dataclass(frozen=True)
class ServiceSelection:
    service_id: str
    quantity: int = 1

    def __post_init__(self):
        _require_id(self.service_id, "service_id")
        if self.quantity < 1:
            raise ValidationError("service quantity must be >= 1.", service_id=self.service_id)


@dataclass(frozen=True)
class CreateBookingRequest:
    """
    Reserve one unit of a room.

    require_deposit=False creates the booking as `pending`, which does not
    hold inventory until request_deposit is called.
    """
    guest_id: str
    room_id: str
    check_in: date
    check_out: date
    contact: ContactInfo
    adults: int = 1
    children: int = 0
    services: Tuple[ServiceSelection, ...] = ()
    special_requests: str = ""
    require_deposit: bool = True

    def __post_init__(self):
        _require_id(self.guest_id, "guest_id")
        _require_id(self.room_id, "room_id")
        for label, value in (("check_in", self.check_in), ("check_out", self.check_out)):
            if not isinstance(value, date) or isinstance(value, datetime):
                raise ValidationError(f"{label} must be a date.")
        if self.check_in >= self.check_out:
            raise ValidationError(
                f"check_in {self.check_in} must be before check_out {self.check_out}.",
            )
        if not isinstance(self.contact, ContactInfo):
            raise ValidationError("contact must be ContactInfo.")
        if self.adults < 1:
            raise ValidationError("adults must be >= 1.")
        if self.children < 0:
            raise ValidationError("children must be >= 0.")


@dataclass(frozen=True)
class PayBookingRequest:
    booking_id: str
    method: PaymentMethod
    payment_option: Optional[PaymentOption] = None
    proof_image: Optional[str] = None

    def __post_init__(self):
        _require_id(self.booking_id, "booking_id")
        if not isinstance(self.method, PaymentMethod):
            raise ValidationError(f"Unknown payment method: {self.method!r}.")
        if self.method is PaymentMethod.WALLET and not isinstance(self.payment_option, PaymentOption):
            raise ValidationError("wallet payments need a payment_option.")


@dataclass(frozen=True)
class AddServiceRequest:
    booking_id: str
    service_id: str
    quantity: int = 1

    def __post_init__(self):
        _require_id(self.booking_id, "booking_id")
        _require_id(self.service_id, "service_id")
        if self.quantity < 1:
            raise ValidationError("quantity must be >= 1.")


@dataclass(frozen=True)
class CheckOutRequest:
    """
    Settle the stay.

    external_amount is money collected at the desk toward any balance
    still owed; payment_option says how the wallet covers the rest.
    """
    booking_id: str
    payment_option: PaymentOption = PaymentOption.USE_MAIN_ONLY
    external_amount: int = 0
    note: str = ""

    def __post_init__(self):
        _require_id(self.booking_id, "booking_id")
        if not isinstance(self.payment_option, PaymentOption):
            raise ValidationError(f"Unknown payment option: {self.payment_option!r}.")
        if self.external_amount < 0:
            raise ValidationError("external_amount must be >= 0.")


@dataclass(frozen=True)
class CancelBookingRequest:
    booking_id: str
    reason: str = ""
    forfeit_deposit: bool = False

    def __post_init__(self):
        _require_id(self.booking_id, "booking_id")
