"""
StayLedger Booking Engine - Policies
====================================
Stay dates, room state, occupancy and in-stay guards.
"""

from datetime import date
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.primitives.booking import Booking
from core.primitives.room import Room, Service


def stay_dates_policy(
    check_in: date,
    check_out: date,
    today: date,
    allow_past_check_in: bool = False,
) -> Optional[RejectionReason]:
    """Check-in before check-out, and not in the past."""
    if check_in >= check_out:
        return RejectionReason(
            code=ReasonCode.INVALID_STAY_DATES,
            message=f"check_in {check_in} must be before check_out {check_out}.",
            policy_name="stay_dates_policy",
        )
    if not allow_past_check_in and check_in < today:
        return RejectionReason(
            code=ReasonCode.CHECK_IN_IN_PAST,
            message=f"check_in {check_in} is in the past.",
            policy_name="stay_dates_policy",
        )
    return None


def room_active_policy(room: Room) -> Optional[RejectionReason]:
    if not room.is_active:
        return RejectionReason(
            code=ReasonCode.ROOM_INACTIVE,
            message=f"Room {room.room_id} is not available for booking.",
            policy_name="room_active_policy",
        )
    return None


def capacity_policy(room: Room, adults: int, children: int) -> Optional[RejectionReason]:
    if not room.fits(adults, children):
        return RejectionReason(
            code=ReasonCode.CAPACITY_EXCEEDED,
            message=(
                f"Room {room.room_id} takes {room.max_adults} adults and "
                f"{room.max_children} children; requested {adults} and {children}."
            ),
            policy_name="capacity_policy",
        )
    return None


def service_active_policy(service: Service) -> Optional[RejectionReason]:
    if not service.is_active:
        return RejectionReason(
            code=ReasonCode.SERVICE_INACTIVE,
            message=f"Service {service.service_id} is not offered.",
            policy_name="service_active_policy",
        )
    return None


def checked_in_policy(booking: Booking) -> Optional[RejectionReason]:
    """In-stay operations require the guest to have checked in."""
    if not booking.is_checked_in:
        return RejectionReason(
            code=ReasonCode.NOT_CHECKED_IN,
            message=f"Booking {booking.booking_id} has not checked in.",
            policy_name="checked_in_policy",
        )
    return None


def not_checked_in_policy(booking: Booking) -> Optional[RejectionReason]:
    if booking.is_checked_in:
        return RejectionReason(
            code=ReasonCode.ALREADY_CHECKED_IN,
            message=f"Booking {booking.booking_id} is already checked in.",
            policy_name="not_checked_in_policy",
        )
    return None
