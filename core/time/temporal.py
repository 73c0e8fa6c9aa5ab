"""
StayLedger Core Time - Stay Windows and Expiry
==============================================
Pure functions for date interval logic.
All functions take explicit arguments - no hidden clock access.

Stays are half-open: [check_in, check_out). The guest sleeps the night
of check_in and leaves on check_out, so a stay ending on the 3rd and one
starting on the 3rd do not overlap.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, Optional


# ══════════════════════════════════════════════════════════════
# STAY WINDOW - Half-open interval [check_in, check_out)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StayWindow:
    """
    A half-open date interval [check_in, check_out).

    Invariant: check_in < check_out (enforced at construction).
    """

    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if isinstance(self.check_in, datetime) or isinstance(self.check_out, datetime):
            raise ValueError("StayWindow takes calendar dates, not datetimes.")
        if self.check_in >= self.check_out:
            raise ValueError(
                f"StayWindow check_in ({self.check_in}) must be before "
                f"check_out ({self.check_out})."
            )

    def overlaps(self, other: StayWindow) -> bool:
        return self.check_in < other.check_out and self.check_out > other.check_in

    def nights(self) -> Iterator[date]:
        """Yield every night of the stay, check_in first."""
        current = self.check_in
        while current < self.check_out:
            yield current
            current += timedelta(days=1)

    def night_count(self) -> int:
        return (self.check_out - self.check_in).days


def actual_stay(check_in: date, departed_on: date) -> StayWindow:
    """
    Window for the nights actually stayed.

    A guest leaving on the day of arrival is still charged one night.
    """
    if departed_on <= check_in:
        departed_on = check_in + timedelta(days=1)
    return StayWindow(check_in=check_in, check_out=departed_on)


# ══════════════════════════════════════════════════════════════
# EXPIRY
# ══════════════════════════════════════════════════════════════

def expires_at(issued_at: datetime, ttl_seconds: int) -> datetime:
    return issued_at + timedelta(seconds=ttl_seconds)


def is_expired(expiry: Optional[datetime], now: datetime) -> bool:
    """
    True when `expiry` is in the past relative to `now`.

    A missing expiry counts as expired.
    """
    if expiry is None:
        return True
    return now >= expiry
