"""
StayLedger Availability Engine - Service Layer
==============================================
Decides whether a room has a free unit for every night of a stay.

A booking occupies inventory while it is pending_deposit,
awaiting_approval or confirmed. Two stays overlap when
existing.check_in < requested.check_out and
existing.check_out > requested.check_in (half-open ranges).

When the answer gates an insert, call it inside the atomic unit that
holds the room lock; otherwise two callers can both see the last unit.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from core.primitives.booking import OCCUPYING_STATUSES
from core.primitives.room import Room
from core.time.temporal import StayWindow


class AvailabilityChecker:
    def __init__(self, repository) -> None:
        self._repo = repository

    def overlapping_count(
        self,
        room: Room,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[str] = None,
    ) -> int:
        window = StayWindow(check_in, check_out)
        bookings = self._repo.bookings_overlapping(room.room_id, window, OCCUPYING_STATUSES)
        return sum(1 for b in bookings if b.booking_id != exclude_booking_id)

    def available_units(
        self,
        room: Room,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[str] = None,
    ) -> int:
        return max(room.quantity - self.overlapping_count(room, check_in, check_out, exclude_booking_id), 0)

    def is_available(
        self,
        room: Room,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        return self.available_units(room, check_in, check_out, exclude_booking_id) > 0
