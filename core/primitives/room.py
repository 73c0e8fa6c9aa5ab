"""
StayLedger Room Primitive - Sellable Inventory
==============================================
A Room is a room type with `quantity` identical units. Bookings consume
one unit for each night of the stay. A Service is a priced add-on that can
be attached to a booking at creation or during the stay.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Room:
    room_id: str
    hotel_id: str
    name: str
    base_price: int
    quantity: int = 1
    max_adults: int = 2
    max_children: int = 0
    is_active: bool = True

    def __post_init__(self):
        if not self.room_id:
            raise ValueError("room_id must be non-empty.")
        if not self.hotel_id:
            raise ValueError("hotel_id must be non-empty.")
        if not isinstance(self.base_price, int) or self.base_price < 0:
            raise ValueError("base_price must be an int >= 0.")
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0.")
        if self.max_adults < 1:
            raise ValueError("max_adults must be >= 1.")
        if self.max_children < 0:
            raise ValueError("max_children must be >= 0.")

    def fits(self, adults: int, children: int) -> bool:
        return adults <= self.max_adults and children <= self.max_children


@dataclass(frozen=True)
class Service:
    service_id: str
    name: str
    price: int
    is_active: bool = True

    def __post_init__(self):
        if not self.service_id:
            raise ValueError("service_id must be non-empty.")
        if not self.name:
            raise ValueError("service name must be non-empty.")
        if not isinstance(self.price, int) or self.price < 0:
            raise ValueError("service price must be an int >= 0.")
