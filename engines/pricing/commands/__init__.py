"""
StayLedger Pricing Engine - Commands
====================================
Authoring requests for special price rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple, Union

from core.errors import InvalidRuleError


@dataclass(frozen=True)
class UpsertSpecialPriceRuleRequest:
    """
    Create a rule (rule_id None) or replace an existing one.

    Flat shape as it arrives from an admin form; the service turns it into
    a SpecialPriceRule with a typed window.
    """
    name: str
    rule_type: str  # date_range | weekend
    room_ids: Tuple[str, ...]
    modifier_kind: str  # percentage | fixed
    modifier_value: Union[int, str, Decimal]
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True
    rule_id: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidRuleError("name must be non-empty.")
        if not self.room_ids:
            raise InvalidRuleError("room_ids must contain at least one room.")
        if any(not room_id for room_id in self.room_ids):
            raise InvalidRuleError("room_ids must not contain empty ids.")
        if isinstance(self.modifier_value, float):
            raise InvalidRuleError("modifier_value must be int, Decimal or numeric string.")
