"""
StayLedger Pricing Primitive - Special Price Rules
==================================================
A special price rule targets a set of rooms, matches nights through a
window, and transforms the running nightly price through a modifier.

The window is a sum type. A date-range window always carries both dates;
a weekend window carries none. A rule with a half-specified window cannot
be constructed.

RULES:
- Prices are integer minor units, modifiers are Decimal (no floats)
- Every modifier step rounds half-up to an integer
- Weekend means Saturday and Sunday
- Date ranges are inclusive on both ends
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import FrozenSet, Union

from core.errors import InvalidRuleError

_HUNDRED = Decimal(100)
_UNIT = Decimal(1)

SATURDAY = 5
SUNDAY = 6


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class RuleKind(Enum):
    DATE_RANGE = "date_range"
    WEEKEND = "weekend"


class ModifierKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(_UNIT, rounding=ROUND_HALF_UP))


# ══════════════════════════════════════════════════════════════
# MODIFIER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PriceModifier:
    """
    Signed price adjustment.

    percentage: value is a percent (20 means +20%, -15 means -15%)
    fixed:      value is minor units added to the price
    """
    kind: ModifierKind
    value: Decimal

    def __post_init__(self):
        if not isinstance(self.kind, ModifierKind):
            raise InvalidRuleError(f"Unknown modifier kind: {self.kind!r}.")
        if isinstance(self.value, float):
            raise InvalidRuleError("modifier value must not be a float.")
        try:
            value = Decimal(self.value)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidRuleError(f"modifier value is not a number: {self.value!r}.") from None
        if not value.is_finite():
            raise InvalidRuleError("modifier value must be finite.")
        if self.kind is ModifierKind.PERCENTAGE and value < -_HUNDRED:
            raise InvalidRuleError("percentage modifier cannot go below -100.")
        object.__setattr__(self, "value", value)

    def apply(self, price: int) -> int:
        if self.kind is ModifierKind.PERCENTAGE:
            return round_half_up(Decimal(price) * (_HUNDRED + self.value) / _HUNDRED)
        return round_half_up(Decimal(price) + self.value)

    def describe(self) -> str:
        sign = "+" if self.value >= 0 else ""
        if self.kind is ModifierKind.PERCENTAGE:
            return f"{sign}{self.value.normalize()}%"
        return f"{sign}{self.value.normalize()}"


# ══════════════════════════════════════════════════════════════
# WINDOWS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DateRangeWindow:
    """Inclusive range of nights [start_date, end_date]."""
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date is None or self.end_date is None:
            raise InvalidRuleError("date_range rule requires start_date and end_date.")
        if isinstance(self.start_date, datetime) or isinstance(self.end_date, datetime):
            raise InvalidRuleError("date_range bounds must be dates.")
        if self.start_date > self.end_date:
            raise InvalidRuleError(
                f"start_date ({self.start_date}) is after end_date ({self.end_date})."
            )

    @property
    def kind(self) -> RuleKind:
        return RuleKind.DATE_RANGE

    def matches(self, night: date) -> bool:
        return self.start_date <= night <= self.end_date


@dataclass(frozen=True)
class WeekendWindow:
    """Every Saturday and Sunday night."""

    @property
    def kind(self) -> RuleKind:
        return RuleKind.WEEKEND

    def matches(self, night: date) -> bool:
        return night.weekday() in (SATURDAY, SUNDAY)


RuleWindow = Union[DateRangeWindow, WeekendWindow]


# ══════════════════════════════════════════════════════════════
# SPECIAL PRICE RULE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SpecialPriceRule:
    rule_id: str
    name: str
    room_ids: FrozenSet[str]
    window: RuleWindow
    modifier: PriceModifier
    created_at: datetime
    is_active: bool = True

    def __post_init__(self):
        if not self.rule_id:
            raise InvalidRuleError("rule_id must be non-empty.")
        if not self.name or not self.name.strip():
            raise InvalidRuleError("rule name must be non-empty.")
        if not isinstance(self.room_ids, frozenset):
            object.__setattr__(self, "room_ids", frozenset(self.room_ids or ()))
        if not self.room_ids:
            raise InvalidRuleError("rule must target at least one room.")
        if not isinstance(self.window, (DateRangeWindow, WeekendWindow)):
            raise InvalidRuleError(f"Unknown rule window: {self.window!r}.")
        if not isinstance(self.modifier, PriceModifier):
            raise InvalidRuleError("modifier must be PriceModifier.")
        if self.created_at is None or self.created_at.tzinfo is None:
            raise InvalidRuleError("created_at must be timezone-aware.")

    @property
    def kind(self) -> RuleKind:
        return self.window.kind

    def sort_key(self) -> tuple:
        return (self.created_at, self.rule_id)

    def applies_to(self, room_id: str, night: date) -> bool:
        return self.is_active and room_id in self.room_ids and self.window.matches(night)


def build_window(kind: str, start_date=None, end_date=None) -> RuleWindow:
    """
    Window from flat fields (API payloads, database rows).

    Raises InvalidRuleError for an unknown kind or a date_range missing a date.
    """
    try:
        rule_kind = RuleKind(kind)
    except ValueError:
        raise InvalidRuleError(f"Unknown rule type: {kind!r}.") from None
    if rule_kind is RuleKind.WEEKEND:
        return WeekendWindow()
    return DateRangeWindow(start_date=start_date, end_date=end_date)


def build_modifier(kind: str, value) -> PriceModifier:
    try:
        modifier_kind = ModifierKind(kind)
    except ValueError:
        raise InvalidRuleError(f"Unknown modifier kind: {kind!r}.") from None
    return PriceModifier(kind=modifier_kind, value=value)
