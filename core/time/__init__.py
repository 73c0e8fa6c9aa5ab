"""
StayLedger Core Time - Public API
=================================
Explicit clock protocol and stay-window helpers.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    set_default_clock,
    today_utc,
)
from core.time.temporal import (
    StayWindow,
    actual_stay,
    expires_at,
    is_expired,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
    "today_utc",
    "StayWindow",
    "actual_stay",
    "expires_at",
    "is_expired",
]
